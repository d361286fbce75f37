from __future__ import annotations

from typing import Callable, Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from task_tracker.cache import TaskCache
from task_tracker.main import create_app
from task_tracker.repositories import InMemoryUserRepository
from task_tracker.services import AuthService, TaskService
from task_tracker.settings import Settings
from task_tracker.tokens import TokenService

from .fakes import CountingTaskRepository, FakeClock, FakeHasher, FakeWallClock

TEST_SECRET = "test-signing-secret-with-enough-bytes-for-hs256"


@pytest.fixture()
def settings() -> Settings:
    """
    Settings built directly rather than from the environment, so a developer's
    shell or .env cannot leak into the tests.
    """
    return Settings(
        port=8080,
        host="127.0.0.1",
        database_url="memory://",
        jwt_secret=TEST_SECRET,
        cors_allow_origins=["*"],
        log_level="INFO",
    )


@pytest.fixture()
def client(settings: Settings) -> Iterator[TestClient]:
    # Entering the client runs the lifespan, which wires the services.
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture()
def signup(client: TestClient) -> Callable[..., Dict[str, str]]:
    """Register a user and return Authorization headers for it."""

    def _signup(username: str = "alice", password: str = "pw123456") -> Dict[str, str]:
        res = client.post("/signup", json={"username": username, "password": password})
        assert res.status_code == 201, res.text
        return {"Authorization": f"Bearer {res.json()['token']}"}

    return _signup


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def wall_clock() -> FakeWallClock:
    return FakeWallClock()


@pytest.fixture()
def tokens(wall_clock: FakeWallClock) -> TokenService:
    return TokenService(TEST_SECRET, clock=wall_clock)


@pytest.fixture()
def task_store() -> CountingTaskRepository:
    return CountingTaskRepository()


@pytest.fixture()
def task_service(task_store: CountingTaskRepository, clock: FakeClock) -> TaskService:
    return TaskService(task_store, TaskCache(ttl_seconds=600, clock=clock))


@pytest.fixture()
def auth_service(tokens: TokenService) -> AuthService:
    return AuthService(InMemoryUserRepository(), FakeHasher(), tokens)
