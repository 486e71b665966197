"""
Application error taxonomy.

Every error carries the HTTP status it maps to, a short machine code and a
human-readable message. core.exception_handlers turns them into the standard
error envelope.
"""
from typing import Optional


class AppError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An internal error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(AppError):
    status_code = 400
    code = "bad_request"
    default_message = "Bad request"


class Unauthorized(AppError):
    status_code = 401
    code = "unauthorized"
    default_message = "Invalid authorization token"


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "You are not allowed to execute this action"


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    default_message = "Document already exists"


class StorageError(AppError):
    """Any failure of the underlying store (connectivity, constraints, timeouts)."""
    status_code = 500
    code = "storage_error"
    default_message = "Storage failure"


class UpstreamError(AppError):
    """The smart notifications service answered with a non-2xx status or was unreachable."""
    code = "upstream_error"
    default_message = "Smart notifications service error"

    def __init__(self, message: Optional[str] = None, status_code: int = 502):
        super().__init__(message)
        # only propagate real error statuses; anything else becomes a bad gateway
        self.status_code = status_code if 400 <= status_code < 600 else 502
