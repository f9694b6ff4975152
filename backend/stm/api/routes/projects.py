"""Project Routes — project CRUD, membership and the project's task list.

Invariants:
    - Every route runs its service call through run_in_transaction
    - Project events are published only after the transaction committed
    - The authenticated user is always the acting user; clients never name it

Design Decisions:
    - POST /projects accepts either taskIds of existing unbound tasks or inline
      task drafts (created in the same transaction)
"""

from fastapi import APIRouter, Depends, Query, Response, status

from stm.api.dependencies import get_current_user, get_unit_of_work
from stm.config import Settings, get_settings
from stm.core.domain_types import ProjectId, UserId
from stm.core.repository_protocols import ProjectEventPublisher, UnitOfWork
from stm.infrastructure.project_events import get_event_publisher
from stm.schemas.project import ProjectCreate, ProjectResponse
from stm.schemas.task import TaskResponse
from stm.services.project_service import ProjectService
from stm.services.task_service import TaskService
from stm.services.transaction import run_in_transaction

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


def _project_service(uow: UnitOfWork, settings: Settings) -> ProjectService:
    return ProjectService(uow, settings.max_description_length)


@router.get("", response_model=list[ProjectResponse])
async def get_projects(
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
):
    """All projects the user is a member of."""
    views = await run_in_transaction(
        uow,
        lambda u: _project_service(u, settings).get_projects(user),
        settings.request_timeout_seconds,
    )
    return [ProjectResponse.from_view(v) for v in views]


@router.post(
    "", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED,
)
async def add_project(
    body: ProjectCreate,
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
):
    """Create a project from existing tasks or together with new tasks."""
    draft = body.to_draft()

    async def operation(u: UnitOfWork):
        service = _project_service(u, settings)
        if body.tasks is not None:
            view, _ = await service.create_project_with_tasks(
                draft, [t.to_draft() for t in body.tasks], user,
            )
            return view
        return await service.add_project(draft, user)

    view = await run_in_transaction(uow, operation, settings.request_timeout_seconds)
    return ProjectResponse.from_view(view)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
):
    view = await run_in_transaction(
        uow,
        lambda u: _project_service(u, settings).get_project(ProjectId(project_id), user),
        settings.request_timeout_seconds,
    )
    return ProjectResponse.from_view(view)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
    publisher: ProjectEventPublisher = Depends(get_event_publisher),
):
    """Delete the project and all its tasks. Owner only."""
    event = await run_in_transaction(
        uow,
        lambda u: _project_service(u, settings).delete_project(ProjectId(project_id), user),
        settings.request_timeout_seconds,
    )
    await publisher.publish(event)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/users", response_model=ProjectResponse)
async def add_user(
    project_id: str,
    uid: str = Query(..., min_length=1),
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
    publisher: ProjectEventPublisher = Depends(get_event_publisher),
):
    """Invite user `uid`. Owner only."""
    view, event = await run_in_transaction(
        uow,
        lambda u: _project_service(u, settings).add_user(
            UserId(uid), ProjectId(project_id), user,
        ),
        settings.request_timeout_seconds,
    )
    await publisher.publish(event)
    return ProjectResponse.from_view(view)


@router.delete("/{project_id}/users/{uid}", response_model=ProjectResponse)
async def remove_user(
    project_id: str,
    uid: str,
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
    publisher: ProjectEventPublisher = Depends(get_event_publisher),
):
    view, event = await run_in_transaction(
        uow,
        lambda u: _project_service(u, settings).remove_user(
            ProjectId(project_id), user, UserId(uid),
        ),
        settings.request_timeout_seconds,
    )
    await publisher.publish(event)
    return ProjectResponse.from_view(view)


@router.delete("/{project_id}/users", response_model=ProjectResponse)
async def leave_project(
    project_id: str,
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
    publisher: ProjectEventPublisher = Depends(get_event_publisher),
):
    """The requesting user leaves the project."""
    view, event = await run_in_transaction(
        uow,
        lambda u: _project_service(u, settings).leave_project(ProjectId(project_id), user),
        settings.request_timeout_seconds,
    )
    await publisher.publish(event)
    return ProjectResponse.from_view(view)


@router.get("/{project_id}/tasks", response_model=list[TaskResponse])
async def get_tasks(
    project_id: str,
    user: UserId = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
):
    tasks = await run_in_transaction(
        uow,
        lambda u: TaskService(u).get_tasks(ProjectId(project_id), user),
        settings.request_timeout_seconds,
    )
    return [TaskResponse.from_record(t) for t in tasks]
