"""
Error taxonomy for the purchase/access workflow.
Core components raise PpvError(kind); the API layer renders {"error": kind}.
"""
from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    NOT_PURCHASABLE = "not_purchasable"
    EVENT_ENDED = "event_ended"
    ALREADY_OWNED = "already_owned"
    ACCESS_DENIED = "access_denied"
    NOT_LIVE = "not_live"
    VALIDATION = "validation"
    INVALID_SIGNATURE = "invalid_signature"
    PROCESSOR_ERROR = "processor_error"  # upstream, retryable by the caller
    GRANT_ERROR = "grant_error"  # downstream, never fatal to a purchase
    UNEXPECTED = "unexpected"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.ACCESS_DENIED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.NOT_PURCHASABLE: 400,
    ErrorKind.VALIDATION: 400,
    ErrorKind.INVALID_SIGNATURE: 400,
    ErrorKind.ALREADY_OWNED: 409,
    ErrorKind.EVENT_ENDED: 409,
    ErrorKind.NOT_LIVE: 409,
    ErrorKind.PROCESSOR_ERROR: 502,
    ErrorKind.GRANT_ERROR: 500,
    ErrorKind.UNEXPECTED: 500,
}


class PpvError(Exception):
    """Raised by checkout / stream gate; kind maps to the response envelope."""

    def __init__(self, kind: ErrorKind, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND.get(self.kind, 500)

    @property
    def retryable(self) -> bool:
        return self.kind == ErrorKind.PROCESSOR_ERROR
