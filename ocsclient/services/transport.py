import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Optional

import requests

from ocsclient.config import HTTP_CONNECT_TIMEOUT_S, HTTP_MAX_WORKERS, HTTP_READ_TIMEOUT_S
from ocsclient.errors import TransportError
from ocsclient.services.request_builder import RequestDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    content: bytes = field(repr=False)
    reason: str = ""
    headers: Dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400


class RequestsTransport:
    """Runs request descriptors on a worker pool and hands back futures.

    Connection pooling, TLS, redirects and timeouts all belong to this layer;
    jobs only see a ``Future[TransportResponse]``.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        max_workers: int = HTTP_MAX_WORKERS,
        connect_timeout: float = HTTP_CONNECT_TIMEOUT_S,
        read_timeout: float = HTTP_READ_TIMEOUT_S,
    ):
        self.session = session or requests.Session()
        self.timeout = (connect_timeout, read_timeout)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ocs-transport")

    def execute(self, request: RequestDescriptor) -> "Future[TransportResponse]":
        return self._executor.submit(self.send, request)

    def send(self, request: RequestDescriptor) -> TransportResponse:
        files = None
        if request.files:
            files = {name: (f.file_name, f.payload, f.mime_type) for name, f in request.files}

        try:
            resp = self.session.request(
                request.method,
                request.url,
                headers=request.header_map(),
                data=list(request.form) or None,
                files=files,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise TransportError("TIMEOUT", str(e), path=request.resource_path)
        except requests.ConnectionError as e:
            raise TransportError("CONNECTION_ERROR", str(e), path=request.resource_path)
        except requests.RequestException as e:
            raise TransportError("REQUEST_ERROR", str(e), path=request.resource_path)

        logger.debug("OCS response %s %s -> %s", request.method, request.url, resp.status_code)
        return TransportResponse(
            status_code=resp.status_code,
            content=resp.content,
            reason=resp.reason or "",
            headers=dict(resp.headers),
        )

    def close(self):
        self._executor.shutdown(wait=False)
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
