"""
Application error taxonomy.

Every failure the API reports carries a stable `kind` and an HTTP status.
Services raise these; the handlers registered in main.py turn them into:

    {"success": false, "error": "<kind>", "message": "<human readable>"}
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for errors that map to a structured API response."""

    kind = "Internal"
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, extra: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.extra = extra or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "error": self.kind, "message": self.message}
        body.update(self.extra)
        return body


class InvalidInput(AppError):
    kind = "ValidationError"
    status_code = 400
    default_message = "Invalid input"


class InvalidOperation(AppError):
    kind = "InvalidOperation"
    status_code = 400
    default_message = "Operation not allowed"


class InvalidOrExpired(AppError):
    kind = "InvalidOrExpired"
    status_code = 400
    default_message = "Code is invalid or has expired"


class Unauthorized(AppError):
    kind = "Unauthorized"
    status_code = 401
    default_message = "You are not logged in! Please log in to get access."


class InvalidSignature(Unauthorized):
    default_message = "Invalid token. Please log in again."


class Expired(Unauthorized):
    default_message = "Your session has expired. Please log in again."


class Forbidden(AppError):
    kind = "Forbidden"
    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFound(AppError):
    kind = "NotFound"
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    kind = "Conflict"
    status_code = 409
    default_message = "Already exists"


class UpstreamFailure(AppError):
    kind = "UpstreamFailure"
    status_code = 502
    default_message = "An external provider failed. Please try again later."


class InternalError(AppError):
    pass
