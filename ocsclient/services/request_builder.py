import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple
from urllib.parse import quote, urlencode

from ocsclient.config import HTTP_USER_AGENT
from ocsclient.models.credentials import Credentials

logger = logging.getLogger(__name__)

QueryParams = Sequence[Tuple[str, Any]]


@dataclass(frozen=True)
class FileUpload:
    file_name: str
    payload: bytes = field(repr=False)
    mime_type: str = "application/octet-stream"


@dataclass(frozen=True)
class RequestDescriptor:
    url: str
    method: str = "GET"
    headers: Tuple[Tuple[str, str], ...] = ()
    form: Tuple[Tuple[str, str], ...] = ()
    files: Tuple[Tuple[str, FileUpload], ...] = ()
    credentials: Optional[Credentials] = None
    resource_path: str = ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self.credentials)

    def header_map(self) -> Dict[str, str]:
        return dict(self.headers)


def build_url(base_url: str, resource_path: str, query_params: Optional[QueryParams] = None) -> str:
    """Join base address and resource path and append the query.

    Parameters keep their order and repeated keys are kept as-is; values are
    percent-encoded (a space becomes %20, not +).
    """
    url = base_url.rstrip("/") + "/" + resource_path.lstrip("/")
    if query_params:
        pairs = [(str(k), "" if v is None else str(v)) for k, v in query_params]
        url += ("&" if "?" in url else "?") + urlencode(pairs, quote_via=quote)
    return url


def basic_auth_header(credentials: Credentials) -> str:
    token = base64.b64encode(f"{credentials.user}:{credentials.password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def build_request(
    url: str,
    credentials: Optional[Credentials] = None,
    *,
    method: str = "GET",
    form: Optional[QueryParams] = None,
    files: Optional[Dict[str, FileUpload]] = None,
    resource_path: str = "",
) -> RequestDescriptor:
    headers = [("Accept", "application/json, application/xml"), ("User-Agent", HTTP_USER_AGENT)]
    if credentials:
        headers.append(("Authorization", basic_auth_header(credentials)))
    else:
        credentials = None

    logger.debug("OCS request %s %s", method, url)
    return RequestDescriptor(
        url=url,
        method=method,
        headers=tuple(headers),
        form=tuple((str(k), "" if v is None else str(v)) for k, v in (form or ())),
        files=tuple((files or {}).items()),
        credentials=credentials,
        resource_path=resource_path,
    )
