"""
Tasks API endpoints.

CRUD operations for tasks and recurring series, with occurrence scopes.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from cadence.api.deps import CurrentUser, SeriesService
from cadence.core.exceptions import (
    CadenceError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from cadence.models.enums import DeleteScope, UpdateScope
from cadence.models.task import Task, TaskCreate, TaskUpdate

router = APIRouter()


def _to_http_error(exc: CadenceError) -> HTTPException:
    """Map a service error onto an HTTP error."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if isinstance(exc, StorageError):
        if exc.retryable:
            return HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"{exc.message}; the request can be retried",
            )
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=(
                f"{exc.message}; do not retry blindly, reload the series "
                "before repeating the change"
            ),
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)


@router.get("", response_model=list[Task])
async def list_tasks(user: CurrentUser, service: SeriesService) -> list[Task]:
    """List all tasks of the current user, ordered by start date."""
    try:
        return await service.list_tasks(user.id)
    except CadenceError as e:
        raise _to_http_error(e) from e


@router.post("", response_model=list[Task], status_code=status.HTTP_201_CREATED)
async def create_task(
    task: TaskCreate,
    user: CurrentUser,
    service: SeriesService,
) -> list[Task]:
    """
    Create a task.

    With a recurrence, every occurrence of the series is created; the first
    returned row is the series master.
    """
    try:
        return await service.create_task(user.id, task)
    except CadenceError as e:
        raise _to_http_error(e) from e


@router.get("/{task_id}", response_model=Task)
async def get_task(task_id: UUID, user: CurrentUser, service: SeriesService) -> Task:
    """Get a task by ID."""
    try:
        return await service.get_task(user.id, task_id)
    except CadenceError as e:
        raise _to_http_error(e) from e


@router.get("/{task_id}/series", response_model=list[Task])
async def get_task_series(
    task_id: UUID,
    user: CurrentUser,
    service: SeriesService,
) -> list[Task]:
    """List every occurrence of the series the task belongs to."""
    try:
        return await service.list_series(user.id, task_id)
    except CadenceError as e:
        raise _to_http_error(e) from e


@router.patch("/{task_id}", response_model=list[Task])
async def update_task(
    task_id: UUID,
    update: TaskUpdate,
    user: CurrentUser,
    service: SeriesService,
    scope: UpdateScope = Query(UpdateScope.THIS, description="this / following"),
) -> list[Task]:
    """Update a task or part of its series; returns the rows written."""
    try:
        return await service.update_task(user.id, task_id, update, scope)
    except CadenceError as e:
        raise _to_http_error(e) from e


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    user: CurrentUser,
    service: SeriesService,
    scope: DeleteScope = Query(DeleteScope.THIS, description="this / following"),
) -> None:
    """Delete a task, or it and every later occurrence of its series."""
    try:
        await service.delete_task(user.id, task_id, scope)
    except CadenceError as e:
        raise _to_http_error(e) from e
