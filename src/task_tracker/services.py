from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Type, TypeVar

import pydantic

from .cache import TaskCache
from .errors import (
    Conflict,
    DuplicateUsername,
    NotFound,
    Unauthenticated,
    ValidationError,
    internal_errors,
)
from .models import TaskEntity, UserEntity
from .passwords import PasswordHasher
from .repositories import TaskRepository, UserRepository
from .schemas import LoginRequest, SignupRequest, TaskCreate, TaskUpdate
from .tokens import TokenService

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _validate(model: Type[ModelT], data: Mapping[str, Any]) -> ModelT:
    """Run ``model`` validation and translate failures into our ValidationError."""
    try:
        return model.model_validate(dict(data))
    except pydantic.ValidationError as exc:
        raise ValidationError.from_pydantic(exc.errors()) from exc


# PUBLIC_INTERFACE
class TaskService:
    """
    Request-facing task operations, always scoped to one owner.

    Reads go through the per-owner cache; every successful write invalidates
    the owner's cache entry before returning, so the next list reflects it.
    """

    def __init__(self, store: TaskRepository, cache: TaskCache) -> None:
        self._store = store
        self._cache = cache

    @property
    def cache(self) -> TaskCache:
        return self._cache

    @internal_errors()
    def list_tasks(self, owner_id: str) -> List[TaskEntity]:
        cached = self._cache.get(owner_id)
        if cached is not None:
            logger.debug("Task cache hit for owner %s", owner_id)
            return cached

        logger.debug("Task cache miss for owner %s", owner_id)
        generation = self._cache.generation(owner_id)
        tasks = self._store.list_for_owner(owner_id)
        self._cache.put(owner_id, tasks, generation)
        return tasks

    @internal_errors()
    def create_task(self, owner_id: str, title: Any, complete: Any = False) -> TaskEntity:
        data = _validate(TaskCreate, {"title": title, "complete": complete})
        task = self._store.create(owner_id, data.title, data.complete)
        self._cache.invalidate(owner_id)
        logger.info("Created task %s for owner %s", task["id"], owner_id)
        return task

    @internal_errors("Failed to fetch task")
    def get_task(self, owner_id: str, task_id: str) -> TaskEntity:
        task = self._store.get_owned(task_id, owner_id)
        if task is None:
            raise NotFound()
        return task

    @internal_errors()
    def update_task(self, owner_id: str, task_id: str, patch: Mapping[str, Any]) -> TaskEntity:
        changes = _validate(TaskUpdate, patch).changes()
        task = self._store.update_owned(task_id, owner_id, changes)
        if task is None:
            raise NotFound()
        self._cache.invalidate(owner_id)
        logger.info("Updated task %s for owner %s (%s)", task_id, owner_id, ", ".join(sorted(changes)) or "no fields")
        return task

    @internal_errors()
    def delete_task(self, owner_id: str, task_id: str) -> None:
        if not self._store.delete_owned(task_id, owner_id):
            raise NotFound()
        self._cache.invalidate(owner_id)
        logger.info("Deleted task %s for owner %s", task_id, owner_id)


# PUBLIC_INTERFACE
class AuthService:
    """
    Signup and login orchestration over the credential store, the password
    hasher and the token service.
    """

    def __init__(self, users: UserRepository, hasher: PasswordHasher, tokens: TokenService) -> None:
        self._users = users
        self._hasher = hasher
        self._tokens = tokens

    @internal_errors("Failed to create user")
    def signup(self, username: Any, password: Any) -> Dict[str, Any]:
        """
        Register a user and return ``{"token": ..., "user": <UserEntity>}``.

        Raises:
            ValidationError: username/password fail their constraints.
            Conflict: the username is already taken.
        """
        data = _validate(SignupRequest, {"username": username, "password": password})
        if self._users.get_by_username(data.username) is not None:
            raise Conflict("Username already exists")

        password_hash = self._hasher.hash(data.password)
        try:
            user = self._users.create(data.username, password_hash)
        except DuplicateUsername:
            # Lost a race with a concurrent signup for the same name.
            raise Conflict("Username already exists") from None

        logger.info("Registered user %s (%s)", user["username"], user["id"])
        return {"token": self._tokens.issue(user["id"]), "user": user}

    @internal_errors()
    def login(self, username: Any, password: Any) -> str:
        """
        Return a fresh token for valid credentials.

        Unknown usernames and wrong passwords fail identically so callers
        cannot learn which usernames exist.
        """
        data = _validate(LoginRequest, {"username": username, "password": password})
        user = self._users.get_by_username(data.username)
        if user is None or not self._hasher.verify(data.password, user["password_hash"]):
            logger.warning("Failed login attempt for username %r", data.username)
            raise Unauthenticated("Invalid credentials")
        return self._tokens.issue(user["id"])

    @staticmethod
    def public_user(user: UserEntity) -> Dict[str, Any]:
        return {"id": user["id"], "username": user["username"], "created_at": user["created_at"]}
