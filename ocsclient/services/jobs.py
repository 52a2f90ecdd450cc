import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Callable, Generic, List, Optional, Type, TypeVar

from ocsclient.errors import InvalidStateError, OcsError, ParseError, ServiceError, TransportError
from ocsclient.models.enums import JobStatus
from ocsclient.schemas.base import Entity
from ocsclient.schemas.envelopes import Envelope
from ocsclient.services.parsers import FormatParser, ParseResult
from ocsclient.services.request_builder import RequestDescriptor
from ocsclient.services.transport import TransportResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E", bound=Entity)

TERMINAL_STATUSES = (JobStatus.SUCCEEDED, JobStatus.FAILED)


class BaseJob(ABC, Generic[T]):
    """One request/decode cycle against an OCS provider.

    A job is single-shot: ``start`` hands the request to the transport and
    returns at once; completion is signalled exactly once to every callback
    registered with ``on_completion``. The job never looks at provider state,
    everything it needs is captured at construction.
    """

    many = False

    def __init__(self, request: RequestDescriptor, transport, parser: FormatParser,
                 entity_type: Optional[Type[Entity]] = None, lenient: bool = True):
        self.request = request
        self.entity_type = entity_type
        self.lenient = lenient
        self._transport = transport
        self._parser = parser

        self._lock = threading.Lock()
        self._done = threading.Event()
        self._callbacks: List[Callable[["BaseJob[T]"], None]] = []
        self._status = JobStatus.CREATED
        self._transport_future: Optional[Future] = None
        self._value: Optional[T] = None
        self._envelope: Optional[Envelope] = None
        self._error: Optional[OcsError] = None

    def __repr__(self):
        return f"<{type(self).__name__} {self.request.method} {self.request.resource_path} {self._status.value}>"

    @property
    def status(self) -> JobStatus:
        return self._status

    @property
    def is_completed(self) -> bool:
        return self._status in TERMINAL_STATUSES

    @property
    def error(self) -> Optional[OcsError]:
        return self._error

    @property
    def envelope(self) -> Optional[Envelope]:
        return self._envelope

    def start(self) -> "BaseJob[T]":
        with self._lock:
            if self._status is not JobStatus.CREATED:
                raise InvalidStateError(f"job already {self._status.value.lower()}", path=self.request.resource_path)
            self._status = JobStatus.RUNNING
        logger.debug("Job %r started", self)

        try:
            future = self._transport.execute(self.request)
        except OcsError as e:
            self._finish(error=e)
            return self

        self._transport_future = future
        future.add_done_callback(self._on_transport_done)
        return self

    def on_completion(self, callback: Callable[["BaseJob[T]"], None]) -> None:
        with self._lock:
            if not self._done.is_set():
                self._callbacks.append(callback)
                return
        self._notify([callback])

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    def result(self) -> T:
        if not self._done.is_set():
            raise InvalidStateError("job has not completed", path=self.request.resource_path)
        if self._error is not None:
            raise self._error
        return self._value

    def cancel(self) -> bool:
        """Stop listening for completion and discard the transport operation.

        Returns True when the in-flight request was dropped before it ran. Once
        decoding has begun the job may still reach a terminal state; nobody is
        notified about it.
        """
        with self._lock:
            self._callbacks.clear()
            future = self._transport_future
        if future is None:
            return False
        return future.cancel()

    def _on_transport_done(self, future: Future):
        path = self.request.resource_path
        if future.cancelled():
            self._finish(error=TransportError("CANCELLED", "request cancelled", path=path))
            return

        exc = future.exception()
        if exc is not None:
            if not isinstance(exc, OcsError):
                exc = TransportError(type(exc).__name__, str(exc), path=path)
            self._finish(error=exc)
            return

        with self._lock:
            self._status = JobStatus.DECODING
        try:
            value, envelope = self._decode(future.result())
        except OcsError as e:
            if e.path is None:
                e.path = path
            self._finish(error=e)
        else:
            self._finish(value=value, envelope=envelope)

    def _decode(self, response: TransportResponse):
        path = self.request.resource_path
        try:
            parsed = self._parser.parse(response.content, self.entity_type, many=self.many, lenient=self.lenient)
        except ParseError:
            if not response.ok:
                raise TransportError(str(response.status_code), response.reason or "HTTP error", path=path)
            raise

        envelope = parsed.envelope
        if not envelope.is_ok:
            raise ServiceError(envelope.status_code, envelope.message,
                               status_string=envelope.status_string, path=path)
        if not response.ok:
            raise TransportError(str(response.status_code), response.reason or "HTTP error", path=path)
        return self._extract(parsed), envelope

    @abstractmethod
    def _extract(self, parsed: ParseResult) -> T:
        ...

    def _finish(self, value=None, envelope=None, error=None):
        with self._lock:
            if self._done.is_set():
                logger.debug("Ignoring second completion of %r", self)
                return
            self._value = value
            self._envelope = envelope
            self._error = error
            self._status = JobStatus.FAILED if error is not None else JobStatus.SUCCEEDED
            callbacks, self._callbacks = self._callbacks, []
            self._done.set()

        if error is not None:
            logger.debug("Job %r failed: %s", self, error)
        self._notify(callbacks)

    def _notify(self, callbacks):
        for callback in callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception("Completion callback for %r raised", self)


class ItemJob(BaseJob[E]):
    def __init__(self, request, transport, parser, entity_type: Type[E], lenient: bool = True):
        super().__init__(request, transport, parser, entity_type, lenient)

    def _extract(self, parsed):
        return parsed.items[0]


class ListJob(BaseJob[List[E]]):
    many = True

    def __init__(self, request, transport, parser, entity_type: Type[E], lenient: bool = True):
        super().__init__(request, transport, parser, entity_type, lenient)

    @property
    def metadata(self) -> Optional[Envelope]:
        return self._envelope

    def _extract(self, parsed):
        return list(parsed.items)


class PostJob(BaseJob[Envelope]):
    """A request whose only interesting answer is the envelope itself."""

    def __init__(self, request, transport, parser, lenient: bool = True):
        super().__init__(request, transport, parser, None, lenient)

    def _extract(self, parsed):
        return parsed.envelope
