"""FastAPI dependencies resolving the services wired onto ``app.state`` at startup."""
from __future__ import annotations

from fastapi import Request

from .services import AuthService, TaskService


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service
