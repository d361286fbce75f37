from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from ..deps import get_task_service
from ..schemas import ErrorResponse, MessageResponse, TaskCreate, TaskEnvelope, TaskOut, TaskUpdate
from ..security import Identity, require_identity
from ..services import TaskService

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
    responses={
        401: {"model": ErrorResponse, "description": "Missing, invalid or expired bearer token"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description="Return all tasks of the authenticated user, newest first.",
    responses={200: {"description": "List retrieved successfully"}},
)
def list_tasks(
    identity: Identity = Depends(require_identity),
    service: TaskService = Depends(get_task_service),
) -> List[TaskOut]:
    """
    List the caller's tasks (served from the per-owner cache when warm).
    """
    return [TaskOut(**t) for t in service.list_tasks(identity.user_id)]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task owned by the authenticated user and return it.",
    responses={
        201: {"description": "Task created successfully"},
        400: {"model": ErrorResponse, "description": "Validation error"},
    },
)
def create_task(
    payload: TaskCreate,
    identity: Identity = Depends(require_identity),
    service: TaskService = Depends(get_task_service),
) -> TaskOut:
    """
    Create a new task.
    """
    created = service.create_task(identity.user_id, payload.title, payload.complete)
    return TaskOut(**created)


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskEnvelope,
    summary="Get Task",
    description="Get a single task of the authenticated user by ID.",
    responses={
        200: {"description": "Task found"},
        404: {"model": ErrorResponse, "description": "No such task for this user"},
    },
)
def get_task(
    task_id: str,
    identity: Identity = Depends(require_identity),
    service: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    """
    Retrieve a single task. Tasks of other users are reported as not found.
    """
    task = service.get_task(identity.user_id, task_id)
    return TaskEnvelope(message="Task retrieved successfully!", task=TaskOut(**task))


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description="Update the title and/or completion flag of a task. Omitted fields are left unchanged.",
    responses={
        200: {"description": "Task updated"},
        400: {"model": ErrorResponse, "description": "Validation error"},
        404: {"model": ErrorResponse, "description": "No such task for this user"},
    },
)
def update_task(
    task_id: str,
    payload: TaskUpdate,
    identity: Identity = Depends(require_identity),
    service: TaskService = Depends(get_task_service),
) -> TaskOut:
    """
    Partial update of a task.
    """
    updated = service.update_task(identity.user_id, task_id, payload.changes())
    return TaskOut(**updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=MessageResponse,
    summary="Delete Task",
    description="Delete a task of the authenticated user by ID.",
    responses={
        200: {"description": "Task deleted"},
        404: {"model": ErrorResponse, "description": "No such task for this user"},
    },
)
def delete_task(
    task_id: str,
    identity: Identity = Depends(require_identity),
    service: TaskService = Depends(get_task_service),
) -> MessageResponse:
    """
    Delete a task. Deleting it again yields 404.
    """
    service.delete_task(identity.user_id, task_id)
    return MessageResponse(message="Task deleted")
