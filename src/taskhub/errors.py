"""Error kinds raised by the service layer and rendered by the API."""

from typing import Dict, List, Optional


class TaskHubError(Exception):
    """Base class; each subclass maps to one HTTP status code."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> Dict[str, object]:
        return {"error": self.message}


class ValidationError(TaskHubError):
    """Malformed or out-of-range input, with per-field details."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[List[Dict[str, str]]] = None,
    ):
        super().__init__(message)
        self.details = details or []

    def to_body(self) -> Dict[str, object]:
        body = super().to_body()
        if self.details:
            body["details"] = self.details
        return body


class AuthError(TaskHubError):
    status_code = 401
    default_message = "Invalid credentials"


class Forbidden(TaskHubError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(TaskHubError):
    status_code = 404
    default_message = "Not found"


class ConflictError(TaskHubError):
    status_code = 409
    default_message = "Conflict"


class InternalError(TaskHubError):
    """Unexpected failure; the message sent to clients is always generic."""

    def to_body(self) -> Dict[str, object]:
        return {"error": self.default_message}


def details_from_pydantic(errors) -> List[Dict[str, str]]:
    """Flatten pydantic error dicts into ``{"field", "message"}`` pairs."""
    details = []
    for err in errors:
        # Drop the request-location prefix FastAPI adds ("body", "query", ...).
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc) or "request", "message": err.get("msg", "")})
    return details
