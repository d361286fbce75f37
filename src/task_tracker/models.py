from __future__ import annotations

from datetime import datetime
from typing import TypedDict


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A lightweight domain model representing a task record as held by the
    stores and the task cache.

    Fields:
    - id: Unique opaque identifier (uuid4 hex)
    - title: Short title (trimmed, at least 3 chars; enforced via schemas)
    - complete: Boolean completion flag
    - owner_id: Id of the owning user; never changes after creation
    - created_at: UTC creation timestamp (datetime)
    - updated_at: UTC last update timestamp (datetime)
    """

    id: str
    title: str
    complete: bool
    owner_id: str
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    A registered user. ``password_hash`` never leaves the service layer;
    responses are built from UserOut, which has no such field.
    """

    id: str
    username: str
    password_hash: str
    created_at: datetime
