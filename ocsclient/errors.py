from typing import Any, Optional


class OcsError(RuntimeError):
    """Base for every failure a job can terminate with."""

    code = "OCS_ERROR"
    retryable = False

    def __init__(self, message: str, *, path: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message)
        self.path = path
        self.details = details

    def __str__(self) -> str:
        text = super().__str__()
        if self.path:
            return f"{text} [{self.path}]"
        return text


class TransportError(OcsError):
    code = "TRANSPORT_ERROR"
    retryable = True

    def __init__(self, transport_code: str, text: str, *, path: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(f"transport failure {transport_code}: {text}", path=path, details=details)
        self.transport_code = transport_code
        self.text = text


class ParseError(OcsError):
    code = "PARSE_ERROR"


class ServiceError(OcsError):
    code = "SERVICE_ERROR"

    def __init__(self, status_code: int, message: str = "", *, status_string: str = "",
                 path: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(f"service returned {status_code}: {message or status_string}", path=path, details=details)
        self.status_code = status_code
        self.status_string = status_string
        self.message = message


class InvalidStateError(OcsError):
    code = "INVALID_STATE"
