"""Task Routes — task creation, assignment and progress.

Invariants:
    - Every route runs its service call through run_in_transaction
    - Task ids travel as the `id` query parameter on /task/* routes

Design Decisions:
    - /tasks (collection) and /task/* (single task actions) kept apart, as the
      web client already addresses them that way
"""

from fastapi import APIRouter, Body, Depends, Query, status

from stm.api.dependencies import get_current_user, get_unit_of_work
from stm.config import Settings, get_settings
from stm.core.domain_types import ProjectId, TaskId, UserId
from stm.core.repository_protocols import UnitOfWork
from stm.schemas.project import ProjectResponse
from stm.schemas.task import TaskCreate, TaskResponse
from stm.services.project_service import ProjectService
from stm.services.task_service import TaskService
from stm.services.transaction import run_in_transaction

router = APIRouter(prefix="/api/v1", tags=["tasks"])


@router.post(
    "/tasks", response_model=list[TaskResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_tasks(
    body: list[TaskCreate] = Body(...),
    project_id: str | None = Query(None),
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
):
    """Create tasks, unbound or appended to an owned project."""
    drafts = [t.to_draft() for t in body]
    tasks = await run_in_transaction(
        uow,
        lambda u: TaskService(u).add_tasks(
            drafts, ProjectId(project_id) if project_id else None, user,
        ),
        settings.request_timeout_seconds,
    )
    return [TaskResponse.from_record(t) for t in tasks]


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
):
    task = await run_in_transaction(
        uow,
        lambda u: TaskService(u).get_task(TaskId(task_id), user),
        settings.request_timeout_seconds,
    )
    return TaskResponse.from_record(task)


@router.get("/tasks/{task_id}/project", response_model=ProjectResponse)
async def get_project_by_task(
    task_id: str,
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
):
    view = await run_in_transaction(
        uow,
        lambda u: ProjectService(u, settings.max_description_length)
        .get_project_by_task(TaskId(task_id), user),
        settings.request_timeout_seconds,
    )
    return ProjectResponse.from_view(view)


@router.post("/task/assignedUser", response_model=TaskResponse)
async def assign_user(
    id: str = Query(..., min_length=1),
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
):
    """Claim the task for the requesting user."""
    task = await run_in_transaction(
        uow,
        lambda u: TaskService(u).assign_user(TaskId(id), user),
        settings.request_timeout_seconds,
    )
    return TaskResponse.from_record(task)


@router.delete("/task/assignedUser", response_model=TaskResponse)
async def unassign_user(
    id: str = Query(..., min_length=1),
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
):
    """Release the requesting user's claim on the task."""
    task = await run_in_transaction(
        uow,
        lambda u: TaskService(u).unassign_user(TaskId(id), user),
        settings.request_timeout_seconds,
    )
    return TaskResponse.from_record(task)


@router.post("/task/processPoints", response_model=TaskResponse)
async def set_process_points(
    id: str = Query(..., min_length=1),
    process_points: int = Query(...),
    version: int | None = Query(None),
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
):
    """Report progress. `version` enables the optimistic concurrency check."""
    task = await run_in_transaction(
        uow,
        lambda u: TaskService(u).set_process_points(
            TaskId(id), process_points, user, version,
        ),
        settings.request_timeout_seconds,
    )
    return TaskResponse.from_record(task)
