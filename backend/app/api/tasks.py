"""Task CRUD endpoints scoped to the calling user's capability records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, status

from app.api.deps import AUTH_DEP, TASK_SERVICE_DEP
from app.core.error_handling import ApiError
from app.core.errors import AppError, ErrorCode, error_for
from app.schemas.errors import ErrorResponse
from app.schemas.tasks import TaskCreate, TaskRead, TaskResponse, TaskUpdate

if TYPE_CHECKING:
    from app.core.auth import AuthContext
    from app.services.tasks import TaskService

ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}
router = APIRouter(prefix="/tasks", tags=["tasks"], responses=ERROR_RESPONSES)

DEFAULT_DESCRIPTIONS: dict[ErrorCode, str] = {
    ErrorCode.QUERY_FAILED: "failed to execute query",
    ErrorCode.TASK_NOT_FOUND: "no task yet",
    ErrorCode.PERMISSION_NOT_FOUND: "you don't have permission to access task",
    ErrorCode.PERMISSION_DENIED: "permission denied",
    ErrorCode.GRANT_PERMISSION_FAILED: "failed to grant permission",
}


def _api_error(message: str, exc: AppError) -> ApiError:
    """Wrap *exc* for the client, replacing store detail with the public description."""
    if exc.code not in DEFAULT_DESCRIPTIONS:
        return ApiError(message, exc)
    error = error_for(exc.code, DEFAULT_DESCRIPTIONS[exc.code])
    # The original error stays attached so logs keep the internal detail.
    error.__cause__ = exc
    return ApiError(message, error)


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    auth: AuthContext = AUTH_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> TaskResponse:
    """Create a task owned by the caller with full edit and read capability."""
    try:
        await service.create(
            title=payload.title,
            description=payload.description,
            user_id=auth.user_id,
            due_date=payload.due_date,
        )
    except AppError as exc:
        raise _api_error("failed to create task", exc) from exc
    return TaskResponse(message="created")


@router.get("", response_model=TaskResponse)
async def list_tasks(
    auth: AuthContext = AUTH_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> TaskResponse:
    """List tasks the caller holds full capability for."""
    try:
        tasks = await service.fetch_all_for_user(auth.user_id)
    except AppError as exc:
        raise _api_error("failed to fetch tasks", exc) from exc
    return TaskResponse(
        message="fetched",
        tasks=[TaskRead.model_validate(task, from_attributes=True) for task in tasks],
    )


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    auth: AuthContext = AUTH_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> TaskResponse:
    try:
        task = await service.fetch_by_id(task_id=task_id, user_id=auth.user_id)
    except AppError as exc:
        raise _api_error("failed to fetch task", exc) from exc
    return TaskResponse(
        message="fetched",
        tasks=[TaskRead.model_validate(task, from_attributes=True)],
    )


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    payload: TaskUpdate,
    auth: AuthContext = AUTH_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> TaskResponse:
    """Replace a task's title, description and due date; requires edit capability."""
    try:
        await service.update(
            task_id=task_id,
            user_id=auth.user_id,
            title=payload.title,
            description=payload.description,
            due_date=payload.due_date,
        )
    except AppError as exc:
        raise _api_error("failed to update task", exc) from exc
    return TaskResponse(message="updated")


@router.delete("/{task_id}", response_model=TaskResponse)
async def delete_task(
    task_id: int,
    auth: AuthContext = AUTH_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> TaskResponse:
    try:
        await service.delete(task_id=task_id, user_id=auth.user_id)
    except AppError as exc:
        raise _api_error("failed to delete task", exc) from exc
    return TaskResponse(message="deleted")
