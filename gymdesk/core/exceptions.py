"""
Domain errors raised by services and dependencies.

Each error knows its HTTP status and a stable machine-readable code; the
handlers in gymdesk.main turn them into the JSON envelope
``{"error": message, "code": code, "details": ...}``.
"""
from typing import Any, Dict, Optional


class GymDeskError(Exception):
    """Base class for business-rule and request errors."""

    status_code = 500
    default_code = "internal_error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details
        self.headers = headers

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(GymDeskError):
    """Malformed or missing input, or a request that can never succeed as sent."""

    status_code = 400
    default_code = "validation_error"


class Unauthorized(GymDeskError):
    status_code = 401
    default_code = "unauthorized"

    def __init__(self, message: str = "Authentication required", **kwargs):
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(message, **kwargs)


class Forbidden(GymDeskError):
    """Business rule violation: inactive account, no or expired membership, exhausted visits."""

    status_code = 403
    default_code = "forbidden"


class NotFound(GymDeskError):
    status_code = 404
    default_code = "not_found"


class Conflict(GymDeskError):
    """Duplicate or overlapping state."""

    status_code = 409
    default_code = "conflict"
