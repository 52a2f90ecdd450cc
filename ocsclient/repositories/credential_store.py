import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from ocsclient.config import OCS_BASE_URL, OCS_PASSWORD, OCS_USER
from ocsclient.models.credentials import Credentials


def _key(base_url: str) -> str:
    return base_url.rstrip("/")


class CredentialStore(ABC):
    """Where a provider's user/password pair lives, keyed by base address."""

    @abstractmethod
    def load(self, base_url: str) -> Optional[Credentials]:
        ...

    @abstractmethod
    def save(self, base_url: str, credentials: Credentials) -> bool:
        ...

    def has_credentials(self, base_url: str) -> bool:
        return bool(self.load(base_url))


class InMemoryCredentialStore(CredentialStore):
    def __init__(self, initial: Optional[Dict[str, Credentials]] = None):
        self._lock = threading.Lock()
        self._items = {_key(url): creds for url, creds in (initial or {}).items()}

    def load(self, base_url):
        with self._lock:
            return self._items.get(_key(base_url))

    def save(self, base_url, credentials):
        with self._lock:
            self._items[_key(base_url)] = credentials
        return True


class EnvCredentialStore(CredentialStore):
    """Read-only store backed by OCS_USER / OCS_PASSWORD for OCS_BASE_URL."""

    def __init__(self, base_url: str = OCS_BASE_URL, user: str = OCS_USER, password: str = OCS_PASSWORD):
        self.base_url = _key(base_url)
        self._credentials = Credentials(user, password) if user else None

    def load(self, base_url):
        if _key(base_url) != self.base_url:
            return None
        return self._credentials

    def save(self, base_url, credentials):
        return False
