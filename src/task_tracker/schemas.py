from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TITLE_MIN_LENGTH = 3
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 6


def _clean_title(v: str) -> str:
    """
    Strip whitespace and enforce the minimum title length.
    """
    s = v.strip()
    if not s:
        raise ValueError("title must not be empty")
    if len(s) < TITLE_MIN_LENGTH:
        raise ValueError(f"title must be at least {TITLE_MIN_LENGTH} characters")
    return s


def _reject_explicit_null(v: Any, field: str) -> Any:
    # Omitted fields never reach validators; only an explicit null does.
    if v is None:
        raise ValueError(f"{field} must not be null")
    return v


_BOOLEAN_STRINGS = {"true": True, "1": True, "false": False, "0": False}


def _coerce_complete(v: Any) -> bool:
    """
    Accept only a JSON boolean, 1/0, or the strings "true", "false", "1", "0".
    Looser spellings such as "yes" or "off" are rejected.
    """
    if v is None:
        raise ValueError("complete must not be null")
    if isinstance(v, bool):
        return v
    if isinstance(v, int) and v in (0, 1):
        return bool(v)
    if isinstance(v, str) and v in _BOOLEAN_STRINGS:
        return _BOOLEAN_STRINGS[v]
    raise ValueError("complete must be a boolean")


# PUBLIC_INTERFACE
class SignupRequest(BaseModel):
    """
    Schema for registering a new user.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "alice", "password": "pw123456"}}
    )

    username: str = Field(..., description="Unique username (3..30 chars after trimming)")
    password: str = Field(..., description=f"Password, at least {PASSWORD_MIN_LENGTH} characters")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("username must not be empty")
        if not (USERNAME_MIN_LENGTH <= len(s) <= USERNAME_MAX_LENGTH):
            raise ValueError(
                f"username length must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
            )
        return s

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"password must be at least {PASSWORD_MIN_LENGTH} characters")
        return v


# PUBLIC_INTERFACE
class LoginRequest(BaseModel):
    """
    Schema for exchanging credentials for a token.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "alice", "password": "pw123456"}}
    )

    username: str = Field(..., description="Registered username")
    password: str = Field(..., description="Account password")

    @field_validator("username", "password")
    @classmethod
    def validate_not_empty(cls, v: str, info) -> str:
        if v == "":
            raise ValueError(f"{info.field_name} must not be empty")
        return v.strip() if info.field_name == "username" else v


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new task.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Buy groceries", "complete": False}}
    )

    title: str = Field(..., description=f"Short title, at least {TITLE_MIN_LENGTH} characters after trimming")
    complete: bool = Field(default=False, description="Completion status flag")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("complete", mode="before")
    @classmethod
    def validate_complete(cls, v: Any) -> bool:
        return _coerce_complete(v)


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Schema for updating an existing task.
    All fields are optional; only provided fields will be updated. Owner and id
    cannot be changed and any other keys are ignored.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Buy groceries and supplies", "complete": True}}
    )

    title: Optional[str] = Field(default=None, description="Short title for the task")
    complete: Optional[bool] = Field(default=None, description="Completion status flag")

    @field_validator("title", mode="before")
    @classmethod
    def validate_not_null(cls, v: Any) -> Any:
        return _reject_explicit_null(v, "title")

    @field_validator("complete", mode="before")
    @classmethod
    def validate_complete(cls, v: Any) -> bool:
        return _coerce_complete(v)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _clean_title(v)

    def changes(self) -> Dict[str, Any]:
        """Return only the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "3f2b8c1e9a4d4e6f8b7a6c5d4e3f2a1b",
                "title": "Buy groceries",
                "complete": False,
                "owner_id": "0c1d2e3f4a5b4c6d8e9f0a1b2c3d4e5f",
                "created_at": "2025-01-25T10:15:30.123456Z",
                "updated_at": "2025-01-26T09:00:00.000001Z",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    complete: bool = Field(..., description="Completion status flag")
    owner_id: str = Field(..., description="Id of the owning user")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class TaskEnvelope(BaseModel):
    message: str = Field(..., description="Human readable status message")
    task: TaskOut


class UserOut(BaseModel):
    """
    Public view of a user; the password hash is never part of it.
    """

    id: str
    username: str
    created_at: datetime


class SignupResponse(BaseModel):
    message: str
    token: str
    user: UserOut


class TokenResponse(BaseModel):
    token: str = Field(..., description="Bearer token valid for one hour")


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str = Field(..., description="Always 'ok' while the process serves requests")
    uptime: float = Field(..., description="Seconds since the application started")
    timestamp: datetime = Field(..., description="Current server time (UTC)")


class ErrorResponse(BaseModel):
    """
    Shape of every non-2xx response. ``message`` and ``errors`` only appear for
    not-found and validation failures respectively.
    """

    error: str
    message: Optional[str] = None
    errors: Optional[List[Dict[str, str]]] = None
