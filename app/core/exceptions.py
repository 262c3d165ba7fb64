"""
Error taxonomy for the auth service.

Services raise ServiceError with an explicit ErrorKind; errors coming back from
the Supabase SDK are translated at the adapter boundary with
translate_upstream_error so the HTTP layer only ever switches on ErrorKind.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UPSTREAM_CONSTRAINT = "upstream_constraint"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    GONE = "gone"
    RATE_LIMITED = "rate_limited"
    UNEXPECTED = "unexpected"

    @property
    def status_code(self) -> int:
        return _STATUS_BY_KIND[self]


_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UPSTREAM_CONSTRAINT: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.GONE: 410,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.UNEXPECTED: 500,
}


class ServiceError(Exception):
    """Base exception for the auth service."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        code: Optional[str] = None,
        details: Optional[List[str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        self.kind = kind
        self.message = message
        self.code = code
        self.details = details
        self.extra = extra or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.code:
            body["code"] = self.code
        if self.details is not None:
            body["details"] = self.details
        body.update(self.extra)
        return body


class ValidationFailed(ServiceError):
    """Raised when request data breaks the field rules."""

    def __init__(self, details: List[str], message: str = "Validation failed"):
        super().__init__(ErrorKind.VALIDATION, message, details=details)


class NotFoundError(ServiceError):
    def __init__(self, message: str = "Not found"):
        super().__init__(ErrorKind.NOT_FOUND, message)


class ConflictError(ServiceError):
    def __init__(self, message: str = "Resource already exists"):
        super().__init__(ErrorKind.CONFLICT, message)


class UnauthorizedError(ServiceError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(ErrorKind.UNAUTHORIZED, message)


class ForbiddenError(ServiceError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(ErrorKind.FORBIDDEN, message)


# Postgres / PostgREST error codes surfaced by the table API
_KIND_BY_DB_CODE = {
    "23505": (ErrorKind.CONFLICT, "Resource already exists"),
    "P0001": (ErrorKind.UPSTREAM_CONSTRAINT, None),
    "22P02": (ErrorKind.UPSTREAM_CONSTRAINT, "Invalid input format"),
    "PGRST116": (ErrorKind.NOT_FOUND, "Not found"),
}

# HTTP statuses surfaced by the auth and storage APIs
_KIND_BY_STATUS = {
    400: (ErrorKind.VALIDATION, "Bad request"),
    401: (ErrorKind.UNAUTHORIZED, "Unauthorized"),
    403: (ErrorKind.FORBIDDEN, "Forbidden"),
    404: (ErrorKind.NOT_FOUND, "Not found"),
    409: (ErrorKind.CONFLICT, "Conflict"),
    422: (ErrorKind.VALIDATION, "Unprocessable request"),
    429: (ErrorKind.RATE_LIMITED, "Too many requests"),
}


def _upstream_message(exc: Exception) -> Optional[str]:
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    text = str(exc)
    return text or None


def _upstream_status(exc: Exception) -> Optional[int]:
    for attr in ("status", "status_code", "statusCode"):
        value = getattr(exc, attr, None)
        if value is None:
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return None


def translate_upstream_error(exc: Exception) -> ServiceError:
    """Map an SDK error (PostgREST APIError, auth AuthApiError, StorageException, ...) to a ServiceError."""
    if isinstance(exc, ServiceError):
        return exc

    message = _upstream_message(exc)
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code in _KIND_BY_DB_CODE:
        kind, default_message = _KIND_BY_DB_CODE[code]
        return ServiceError(kind, default_message or message or "Database constraint violation")

    status = _upstream_status(exc)
    if status in _KIND_BY_STATUS:
        kind, default_message = _KIND_BY_STATUS[status]
        return ServiceError(kind, message or default_message)

    if code:
        logger.error("Unhandled upstream error code: %s (%s)", code, message)
    return ServiceError(ErrorKind.UNEXPECTED, message or "Internal server error")
