"""Task API endpoints."""

# FastAPI Depends pattern is safe in function signatures

import logging
from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from taskboard.api.models import (
    SortField,
    SortOrder,
    StatsSnapshot,
    Task,
    TaskDraft,
    TaskPatch,
    TaskPriority,
    TaskStatus,
    WireModel,
)
from taskboard.api.responses import raise_for_result
from taskboard.factory import get_task_controller
from taskboard.tasks.task_cache import PresetConfirmation, TaskCacheController

logger = logging.getLogger(__name__)

router = APIRouter()


class QueryView(WireModel):
    """API model for the current query."""

    search_term: str
    status_filter: TaskStatus | None
    priority_filter: TaskPriority | None
    sort_by: SortField
    sort_order: SortOrder


class QueryUpdate(WireModel):
    """Request model for a partial query change; null clears a filter."""

    search_term: str | None = None
    status_filter: TaskStatus | None = None
    priority_filter: TaskPriority | None = None
    sort_by: SortField | None = None
    sort_order: SortOrder | None = None


class TaskListResponse(BaseModel):
    """API response model for the cached task list."""

    tasks: list[Task]
    query: QueryView
    loading: bool
    search_pending: bool


class StatusChangeRequest(BaseModel):
    """Request model for changing task status."""

    status: TaskStatus


def authenticated_controller() -> TaskCacheController:
    """Dependency: the task controller, only while a user is signed in.

    Raises:
        HTTPException: 401 if the session is not authenticated
    """
    controller = get_task_controller()
    if not controller.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return controller


Controller = Annotated[TaskCacheController, Depends(authenticated_controller)]


def _list_response(controller: TaskCacheController) -> TaskListResponse:
    return TaskListResponse(
        tasks=list(controller.tasks),
        query=QueryView(**asdict(controller.query)),
        loading=controller.is_loading,
        search_pending=controller.search_pending,
    )


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(controller: Controller) -> TaskListResponse:
    """Cached tasks for the current query (no request to the service).

    Returns:
        Tasks in server order plus the query that produced them
    """
    return _list_response(controller)


@router.post("/tasks/reload", response_model=TaskListResponse)
async def reload_tasks(controller: Controller) -> TaskListResponse:
    """Fetch tasks for the current query now.

    Raises:
        HTTPException: 401/502 when the reload fails
    """
    raise_for_result(await controller.reload())
    return _list_response(controller)


@router.put("/query", response_model=TaskListResponse)
async def update_query(request: QueryUpdate, controller: Controller) -> TaskListResponse:
    """Change search, filter or sort.

    Filter and sort changes reload before responding; a search-only change is
    debounced and reported as `search_pending`.
    """
    changes = {name: getattr(request, name) for name in request.model_fields_set}
    if changes.get("search_term") is None:
        changes.pop("search_term", None)
    for name in ("sort_by", "sort_order"):
        if name in changes and changes[name] is None:
            raise HTTPException(status_code=422, detail=f"{name} cannot be null")

    result = await controller.update_query(**changes)
    if result is not None:
        raise_for_result(result)
    return _list_response(controller)


@router.post("/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(draft: TaskDraft, controller: Controller) -> Task:
    """Create a task; it is placed first in the cached list.

    Raises:
        HTTPException: 422 invalid task, 401/502 service failures
    """
    result = await controller.create(draft)
    raise_for_result(result)
    assert result.task is not None
    return result.task


@router.put("/tasks/{task_id}", response_model=Task)
async def update_task(task_id: str, patch: TaskPatch, controller: Controller) -> Task:
    """Partially update a task.

    Args:
        task_id: Task ID
        patch: Fields to change

    Returns:
        The server's copy of the task
    """
    result = await controller.update(task_id, patch)
    raise_for_result(result)
    assert result.task is not None
    return result.task


@router.patch("/tasks/{task_id}/status", response_model=Task)
async def change_task_status(
    task_id: str, request: StatusChangeRequest, controller: Controller
) -> Task:
    """Move a task to another status."""
    result = await controller.change_status(task_id, request.status)
    raise_for_result(result)
    assert result.task is not None
    return result.task


@router.delete("/tasks/{task_id}")
async def delete_task(
    task_id: str, controller: Controller, confirm: bool = False
) -> dict[str, str]:
    """Delete a task.

    Args:
        task_id: Task ID
        confirm: Must be true; the user's answer to the delete prompt

    Raises:
        HTTPException: 400 when not confirmed, 404 unknown task, 401/502 service failures
    """
    result = await controller.delete(task_id, prompt=PresetConfirmation(confirm))
    raise_for_result(result)
    return {"status": "success", "task_id": task_id}


@router.get("/stats", response_model=StatsSnapshot)
async def get_stats(controller: Controller) -> StatsSnapshot:
    """Last applied stats snapshot over all tasks."""
    return controller.stats
