from __future__ import annotations

import itertools
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional

from .errors import ConfigurationError, DuplicateUsername
from .models import TaskEntity, UserEntity


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """
    Abstract repository contract for task storage backends.

    Every lookup and mutation takes the owner id as part of its predicate: the
    query itself is the access-control boundary, so a task owned by someone
    else behaves exactly like a task that does not exist.
    """

    @abstractmethod
    def create(self, owner_id: str, title: str, complete: bool = False) -> TaskEntity:
        """Create and return a new TaskEntity owned by ``owner_id``."""

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> List[TaskEntity]:
        """Return all tasks of ``owner_id``, newest first."""

    @abstractmethod
    def get_owned(self, task_id: str, owner_id: str) -> Optional[TaskEntity]:
        """Return the task matching both id and owner, or None."""

    @abstractmethod
    def update_owned(self, task_id: str, owner_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        """
        Atomically apply ``changes`` (title and/or complete) to the task matching
        id and owner. Return the updated entity or None if nothing matched.
        """

    @abstractmethod
    def delete_owned(self, task_id: str, owner_id: str) -> bool:
        """Atomically delete the task matching id and owner. Return True if deleted."""


# PUBLIC_INTERFACE
class UserRepository(ABC):
    """Abstract repository contract for the credential store."""

    @abstractmethod
    def create(self, username: str, password_hash: str) -> UserEntity:
        """Persist a new user. Raises DuplicateUsername if the name is taken."""

    @abstractmethod
    def get_by_username(self, username: str) -> Optional[UserEntity]:
        """Return the user with exactly this username, or None."""


_UPDATABLE_FIELDS = ("title", "complete")


class InMemoryTaskRepository(TaskRepository):
    """
    Thread-safe in-memory task repository suitable for testing and single-process runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, TaskEntity] = {}
        # Insertion sequence breaks created_at ties so "newest first" is stable.
        self._seq: Dict[str, int] = {}
        self._counter = itertools.count()

    def create(self, owner_id: str, title: str, complete: bool = False) -> TaskEntity:
        now = utcnow()
        entity: TaskEntity = {
            "id": new_id(),
            "title": title,
            "complete": complete,
            "owner_id": owner_id,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
            self._seq[entity["id"]] = next(self._counter)
        return entity.copy()

    def list_for_owner(self, owner_id: str) -> List[TaskEntity]:
        with self._lock:
            owned = [t for t in self._items.values() if t["owner_id"] == owner_id]
            owned.sort(key=lambda t: (t["created_at"], self._seq[t["id"]]), reverse=True)
            return [t.copy() for t in owned]

    def get_owned(self, task_id: str, owner_id: str) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            if item is None or item["owner_id"] != owner_id:
                return None
            return item.copy()

    def update_owned(self, task_id: str, owner_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None or existing["owner_id"] != owner_id:
                return None

            updated = existing.copy()
            for field in _UPDATABLE_FIELDS:
                if field in changes:
                    updated[field] = changes[field]  # type: ignore[literal-required]
            updated["updated_at"] = utcnow()

            self._items[task_id] = updated
            return updated.copy()

    def delete_owned(self, task_id: str, owner_id: str) -> bool:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None or existing["owner_id"] != owner_id:
                return False
            del self._items[task_id]
            self._seq.pop(task_id, None)
            return True


class InMemoryUserRepository(UserRepository):
    """
    Thread-safe in-memory credential store keyed by username.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._by_username: Dict[str, UserEntity] = {}

    def create(self, username: str, password_hash: str) -> UserEntity:
        user: UserEntity = {
            "id": new_id(),
            "username": username,
            "password_hash": password_hash,
            "created_at": utcnow(),
        }
        with self._lock:
            if username in self._by_username:
                raise DuplicateUsername(username)
            self._by_username[username] = user
        return user.copy()

    def get_by_username(self, username: str) -> Optional[UserEntity]:
        with self._lock:
            user = self._by_username.get(username)
            return None if user is None else user.copy()


@dataclass(frozen=True)
class Stores:
    """The pair of stores the services are wired with."""

    users: UserRepository
    tasks: TaskRepository


# PUBLIC_INTERFACE
def open_stores(database_url: Optional[str]) -> Stores:
    """
    Factory returning the stores selected by ``database_url``.
    - memory://           : InMemoryUserRepository + InMemoryTaskRepository
    - sqlite:///<path>    : SQLiteUserRepository + SQLiteTaskRepository

    Raises ConfigurationError when the URL is missing, uses an unsupported
    scheme, or the store cannot be opened.
    """
    if not database_url:
        raise ConfigurationError("DATABASE_URL is not set")

    scheme, sep, rest = database_url.partition("://")
    scheme = scheme.strip().lower()
    if not sep:
        raise ConfigurationError(f"DATABASE_URL is not a URL: {database_url!r}")

    if scheme == "memory":
        return Stores(users=InMemoryUserRepository(), tasks=InMemoryTaskRepository())

    if scheme == "sqlite":
        # sqlite:///relative.db -> 'relative.db'; sqlite:////abs/path.db -> '/abs/path.db'
        path = rest[1:] if rest.startswith("/") else rest
        if not path:
            raise ConfigurationError("sqlite DATABASE_URL needs a file path, e.g. sqlite:///./data/tasks.db")

        from .db import SQLiteTaskRepository, SQLiteUserRepository, connect_database

        try:
            database = connect_database(path)
        except Exception as exc:
            raise ConfigurationError(f"Cannot open sqlite database at {path!r}: {exc}") from exc
        return Stores(users=SQLiteUserRepository(database), tasks=SQLiteTaskRepository(database))

    raise ConfigurationError(f"Unsupported DATABASE_URL scheme: {scheme!r}")
