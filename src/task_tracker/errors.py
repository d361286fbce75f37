"""
Error taxonomy for the task tracker.

Every failure a request can end in is one of the TaskTrackerError subclasses
below. Each carries the HTTP status it is surfaced as and renders its own JSON
body, so the app-level exception handler in main.py stays a one-liner.
"""
from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from fastapi import status

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class ConfigurationError(RuntimeError):
    """Fatal startup misconfiguration (missing or unusable DATABASE_URL)."""


class InvalidToken(Exception):
    """Raised by the token service when a bearer token cannot be trusted."""


class DuplicateUsername(Exception):
    """Raised by user stores when the username uniqueness constraint is hit."""


class TaskTrackerError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message}


# PUBLIC_INTERFACE
class ValidationError(TaskTrackerError):
    """
    Malformed or out-of-range input.

    Carries one entry per violated field so clients can highlight all problems
    at once rather than fixing them one round trip at a time.
    """

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors: Sequence[Dict[str, str]]) -> None:
        super().__init__("Request validation failed")
        self.errors: List[Dict[str, str]] = list(errors)

    @property
    def fields(self) -> List[str]:
        return [e["field"] for e in self.errors]

    def to_body(self) -> Dict[str, Any]:
        return {
            "error": "ValidationError",
            "message": self.message,
            "errors": self.errors,
        }

    @classmethod
    def from_pydantic(cls, details: Iterable[Dict[str, Any]]) -> "ValidationError":
        """
        Build from pydantic/FastAPI error details (``exc.errors()``).

        Locations coming from FastAPI are prefixed with the request part
        ('body', 'path', ...); plain model validation has no prefix and is
        reported as 'body'.
        """
        errors: List[Dict[str, str]] = []
        for detail in details:
            loc = [str(part) for part in detail.get("loc", ())]
            location = "body"
            if loc and loc[0] in {"body", "query", "path", "header"}:
                location = loc.pop(0)
            if detail.get("type") == "json_invalid":
                # loc holds a byte offset into the payload, not a field
                loc = []
            message = str(detail.get("msg", "Invalid value"))
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            errors.append(
                {
                    "field": ".".join(loc) or location,
                    "message": message,
                    "location": location,
                }
            )
        return cls(errors)


class Unauthenticated(TaskTrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Conflict(TaskTrackerError):
    # Duplicate usernames are reported as a plain bad request
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(TaskTrackerError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Task not found", detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.detail = detail or "No task exists with the provided id for this user"

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, "message": self.detail}


class InternalError(TaskTrackerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# PUBLIC_INTERFACE
def internal_errors(message: str = "Internal server error") -> Callable[[F], F]:
    """
    Decorator for service operations: TaskTrackerErrors pass through untouched,
    anything else is logged with its traceback and replaced by an
    InternalError carrying only the generic ``message``.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except TaskTrackerError:
                raise
            except Exception as exc:
                logger.exception("%s failed", func.__qualname__)
                raise InternalError(message) from exc

        return wrapper  # type: ignore[return-value]

    return decorator
