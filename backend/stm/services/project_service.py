"""Project Service — project lifecycle, membership and progress aggregation.

Invariants:
    - Every mutation is preceded by a permission check in the same unit of work
    - owner is in users after every successful operation; the owner can
      neither be removed nor leave
    - A task id is bound to at most one project (checked here, enforced again
      by the store's conditional binding)
    - DeleteProject removes child tasks before the project, in the same unit
      of work: a failure in either step leaves both untouched
    - Progress aggregates are recomputed from live tasks on every read
    - Nothing is committed here: the caller's unit of work decides

Design Decisions:
    - Removing a member also releases their task assignments in this project,
      so no task stays claimed by a non-member
    - Events are returned to the caller, not published here: publishing must
      wait until the unit of work has committed
"""

import logging

from stm.core.domain_types import (
    ProjectDraft, ProjectEvent, ProjectEventType, ProjectId, ProjectRecord,
    ProjectView, TaskDraft, TaskId, TaskRecord, UserId,
)
from stm.core.enforce_project import (
    DEFAULT_MAX_DESCRIPTION_LENGTH, aggregate_progress, check_leave,
    check_user_removal, validate_project_draft,
)
from stm.core.errors import (
    ConflictError, ErrorContext, ResourceNotFoundError, ValidationError,
)
from stm.core.repository_protocols import UnitOfWork
from stm.services.permission_service import PermissionService
from stm.services.task_service import TaskService

logger = logging.getLogger(__name__)


class ProjectService:
    """Project operations within one unit of work."""

    def __init__(
        self, uow: UnitOfWork,
        max_description_length: int = DEFAULT_MAX_DESCRIPTION_LENGTH,
    ):
        self.uow = uow
        self.permissions = PermissionService(uow)
        self.tasks = TaskService(uow)
        self.max_description_length = max_description_length

    async def _get_project_or_404(self, project_id: ProjectId) -> ProjectRecord:
        project = await self.uow.projects.get_project(project_id)
        if project is None:
            raise ResourceNotFoundError(
                "Project", project_id, ErrorContext(project_id=project_id),
            )
        return project

    async def _with_progress(self, project: ProjectRecord) -> ProjectView:
        tasks = await self.uow.tasks.get_tasks(project.id)
        return aggregate_progress(project, tasks)

    # ─── Creation ────────────────────────────────────────────────

    async def add_project(
        self, draft: ProjectDraft, requesting_user: UserId,
    ) -> ProjectView:
        """Validate the draft and persist project, members and task binding."""
        validate_project_draft(draft, requesting_user, self.max_description_length)

        existing = await self.uow.tasks.get_tasks_by_ids(draft.task_ids)
        found = {t.id for t in existing}
        missing = [t for t in draft.task_ids if t not in found]
        if missing:
            raise ResourceNotFoundError("Task", missing[0], ErrorContext(task_id=missing[0]))

        if await self.uow.projects.are_tasks_used(draft.task_ids):
            raise ConflictError("The given tasks are already used in other projects")

        project = await self.uow.projects.add_project(draft, draft.owner)
        logger.info(
            f"Created project '{project.name}' with {len(project.task_ids)} tasks",
            extra={"project_id": project.id, "user": requesting_user},
        )
        return await self._with_progress(project)

    async def create_project_with_tasks(
        self,
        draft: ProjectDraft,
        task_drafts: list[TaskDraft],
        requesting_user: UserId,
    ) -> tuple[ProjectView, list[TaskRecord]]:
        """Create the tasks and the project that binds them in one go."""
        if draft.task_ids:
            raise ValidationError(
                "Task ids must not be set when tasks are created with the project",
                field="taskIds",
            )
        tasks = await self.tasks.add_tasks(task_drafts, None, requesting_user)
        draft.task_ids = [t.id for t in tasks]
        view = await self.add_project(draft, requesting_user)
        return view, tasks

    # ─── Reads ───────────────────────────────────────────────────

    async def get_projects(self, requesting_user: UserId) -> list[ProjectView]:
        """All projects the user is a member of, with aggregates."""
        projects = await self.uow.projects.get_projects(requesting_user)
        views = []
        for project in projects:
            result = await self.permissions.verify_membership_project(
                project.id, requesting_user,
            )
            self.permissions.require(result, requesting_user, project_id=project.id)
            views.append(await self._with_progress(project))
        return views

    async def get_project(
        self, project_id: ProjectId, requesting_user: UserId,
    ) -> ProjectView:
        result = await self.permissions.verify_membership_project(
            project_id, requesting_user,
        )
        self.permissions.require(result, requesting_user, project_id=project_id)
        return await self._with_progress(await self._get_project_or_404(project_id))

    async def get_project_by_task(
        self, task_id: TaskId, requesting_user: UserId,
    ) -> ProjectView:
        result = await self.permissions.verify_membership_task(task_id, requesting_user)
        self.permissions.require(result, requesting_user, task_id=task_id)
        project = await self.uow.projects.get_project_by_task(task_id)
        if project is None:
            raise ResourceNotFoundError("Project of task", task_id)
        return await self._with_progress(project)

    # ─── Membership ──────────────────────────────────────────────

    async def add_user(
        self, new_user: UserId, project_id: ProjectId, requesting_user: UserId,
    ) -> tuple[ProjectView, ProjectEvent]:
        """Invite new_user. Owner only; inviting a member again is a Conflict."""
        if not new_user or not new_user.strip():
            raise ValidationError("User to add must be set", field="uid")

        result = await self.permissions.verify_ownership(project_id, requesting_user)
        self.permissions.require(result, requesting_user, project_id=project_id)

        project = await self._get_project_or_404(project_id)
        if new_user in project.users:
            raise ConflictError(
                f"User '{new_user}' already added",
                ErrorContext(project_id=project_id, user=new_user),
            )

        project = await self.uow.projects.add_user(project_id, new_user)
        logger.info(
            f"Added user {new_user} to project {project_id}",
            extra={"project_id": project_id, "user": new_user, "actor": requesting_user},
        )
        event = ProjectEvent(
            ProjectEventType.USER_ADDED, project_id, new_user, requesting_user,
        )
        return await self._with_progress(project), event

    async def _remove_member(
        self, project_id: ProjectId, user: UserId,
    ) -> ProjectRecord:
        released = await self.uow.tasks.unassign_user_in_project(project_id, user)
        if released:
            logger.info(
                f"Released {len(released)} task assignments of user {user}",
                extra={"project_id": project_id, "user": user, "task_ids": released},
            )
        return await self.uow.projects.remove_user(project_id, user)

    async def remove_user(
        self,
        project_id: ProjectId,
        requesting_user: UserId,
        user_to_remove: UserId,
    ) -> tuple[ProjectView, ProjectEvent]:
        """Remove a member: the owner removes anyone but themself, members
        remove themselves."""
        project = await self.uow.projects.get_project(project_id)
        result = check_user_removal(
            project, requesting_user, user_to_remove, project_id,
        )
        self.permissions.require(result, requesting_user, project_id=project_id)

        project = await self._remove_member(project_id, user_to_remove)
        logger.info(
            f"Removed user {user_to_remove} from project {project_id}",
            extra={
                "project_id": project_id, "user": user_to_remove,
                "actor": requesting_user,
            },
        )
        event = ProjectEvent(
            ProjectEventType.USER_REMOVED, project_id, user_to_remove, requesting_user,
        )
        return await self._with_progress(project), event

    async def leave_project(
        self, project_id: ProjectId, requesting_user: UserId,
    ) -> tuple[ProjectView, ProjectEvent]:
        """Self removal. The owner cannot leave, only delete."""
        project = await self.uow.projects.get_project(project_id)
        result = check_leave(project, requesting_user, project_id)
        self.permissions.require(result, requesting_user, project_id=project_id)

        project = await self._remove_member(project_id, requesting_user)
        logger.info(
            f"User {requesting_user} left project {project_id}",
            extra={"project_id": project_id, "user": requesting_user},
        )
        event = ProjectEvent(
            ProjectEventType.USER_LEFT, project_id, requesting_user, requesting_user,
        )
        return await self._with_progress(project), event

    # ─── Deletion ────────────────────────────────────────────────

    async def delete_project(
        self, project_id: ProjectId, requesting_user: UserId,
    ) -> ProjectEvent:
        """Delete all tasks, then the project. Owner only."""
        result = await self.permissions.verify_ownership(project_id, requesting_user)
        self.permissions.require(result, requesting_user, project_id=project_id)

        project = await self._get_project_or_404(project_id)
        # tasks first: their membership check needs the project to exist
        if project.task_ids:
            await self.tasks.delete(project.task_ids, requesting_user)
        await self.uow.projects.delete_project(project_id)
        logger.info(
            f"Deleted project {project_id}",
            extra={"project_id": project_id, "user": requesting_user},
        )
        return ProjectEvent(
            ProjectEventType.PROJECT_DELETED, project_id, requesting_user,
            requesting_user,
        )
