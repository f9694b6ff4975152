"""Task Service — task lifecycle, assignment state machine and progress.

Invariants:
    - Every mutation is preceded by a permission check in the same unit of work
    - AssignUser only moves Unassigned -> Assigned(user); a claimed task fails
      with Conflict and keeps its assignee
    - UnassignUser only by the assignee; on an already unassigned task a member
      gets the unchanged task back (safe retry)
    - SetProcessPoints keeps 0 <= points <= max_process_points; lowering is allowed
    - Nothing is committed here: the caller's unit of work decides

Design Decisions:
    - Store-level conditional assign as the final guard: even if two requests
      pass ensure_assignable, only one UPDATE matches
"""

import logging

from stm.core.domain_types import (
    AssignmentState, ProjectId, TaskDraft, TaskId, TaskRecord, UserId,
)
from stm.core.enforce_task import (
    check_new_process_points, check_version, ensure_assignable,
    validate_task_drafts,
)
from stm.core.errors import (
    ConflictError, ErrorContext, ResourceNotFoundError, ValidationError,
)
from stm.core.repository_protocols import UnitOfWork
from stm.services.permission_service import PermissionService

logger = logging.getLogger(__name__)


class TaskService:
    """Task operations within one unit of work."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.permissions = PermissionService(uow)

    async def _get_task_or_404(self, task_id: TaskId) -> TaskRecord:
        task = await self.uow.tasks.get_task(task_id)
        if task is None:
            raise ResourceNotFoundError(
                "Task", task_id, ErrorContext(task_id=task_id),
            )
        return task

    async def get_tasks(
        self, project_id: ProjectId, requesting_user: UserId,
    ) -> list[TaskRecord]:
        """Tasks of a project in project order. Requires membership."""
        result = await self.permissions.verify_membership_project(
            project_id, requesting_user,
        )
        self.permissions.require(result, requesting_user, project_id=project_id)
        return await self.uow.tasks.get_tasks(project_id)

    async def get_task(self, task_id: TaskId, requesting_user: UserId) -> TaskRecord:
        result = await self.permissions.verify_membership_task(task_id, requesting_user)
        self.permissions.require(result, requesting_user, task_id=task_id)
        return await self._get_task_or_404(task_id)

    async def add_tasks(
        self,
        drafts: list[TaskDraft],
        project_id: ProjectId | None,
        requesting_user: UserId,
    ) -> list[TaskRecord]:
        """Validate all drafts, then persist them as one batch.

        Without project_id the tasks are created unbound and get bound by
        AddProject. With project_id they are appended to that project, which
        only its owner may do.
        """
        validate_task_drafts(drafts)
        if project_id is not None:
            result = await self.permissions.verify_ownership(project_id, requesting_user)
            self.permissions.require(result, requesting_user, project_id=project_id)

        tasks = await self.uow.tasks.add_tasks(drafts, project_id)
        logger.info(
            f"Added all {len(tasks)} tasks",
            extra={
                "project_id": project_id, "user": requesting_user,
                "task_ids": [t.id for t in tasks],
            },
        )
        return tasks

    async def assign_user(self, task_id: TaskId, user: UserId) -> TaskRecord:
        """Claim an unassigned task for user. Requires membership."""
        result = await self.permissions.verify_membership_task(task_id, user)
        self.permissions.require(result, user, task_id=task_id)

        task = await self._get_task_or_404(task_id)
        ensure_assignable(task)

        assigned = await self.uow.tasks.assign_user(task_id, user)
        if assigned is None:
            raise ConflictError(
                f"task {task_id} has already an assigned user, cannot overwrite",
                ErrorContext(task_id=task_id, user=user),
            )
        logger.info(
            f"Assigned user {user} to task {task_id}",
            extra={"task_id": task_id, "user": user},
        )
        return assigned

    async def unassign_user(
        self, task_id: TaskId, requesting_user: UserId,
    ) -> TaskRecord:
        """Release the claim. Only the assignee may do this.

        The project row is read (and locked) before the task row, the same
        order every other task operation takes.
        """
        result = await self.permissions.verify_membership_task(
            task_id, requesting_user,
        )
        self.permissions.require(result, requesting_user, task_id=task_id)

        task = await self._get_task_or_404(task_id)
        if task.assignment_state is AssignmentState.UNASSIGNED:
            # already in the terminal state of this operation
            return task

        result = await self.permissions.verify_assignment(task_id, requesting_user)
        self.permissions.require(result, requesting_user, task_id=task_id)

        task = await self.uow.tasks.unassign_user(task_id)
        logger.info(
            f"Unassigned user {requesting_user} from task {task_id}",
            extra={"task_id": task_id, "user": requesting_user},
        )
        return task

    async def set_process_points(
        self,
        task_id: TaskId,
        new_points: int,
        requesting_user: UserId,
        expected_version: int | None = None,
    ) -> TaskRecord:
        """Update progress.

        With needs_assignment on the project only the assignee may report,
        otherwise any member may. expected_version, when given, must match the
        stored version.
        """
        if await self.permissions.assignment_required(task_id):
            result = await self.permissions.verify_assignment(task_id, requesting_user)
        else:
            result = await self.permissions.verify_membership_task(
                task_id, requesting_user,
            )
        self.permissions.require(result, requesting_user, task_id=task_id)

        task = await self._get_task_or_404(task_id)
        error = check_new_process_points(task, new_points)
        if error:
            raise ValidationError(
                error, field="process_points", context=ErrorContext(task_id=task_id),
            )
        conflict = check_version(task, expected_version)
        if conflict:
            raise ConflictError(conflict, ErrorContext(task_id=task_id))

        task = await self.uow.tasks.set_process_points(task_id, new_points)
        logger.info(
            f"Set process points of task {task_id} to {new_points}",
            extra={"task_id": task_id, "user": requesting_user},
        )
        return task

    async def delete(
        self, task_ids: list[TaskId], requesting_user: UserId,
    ) -> None:
        """Delete tasks as one batch. Requires membership for every task."""
        result = await self.permissions.verify_membership_tasks(
            task_ids, requesting_user,
        )
        self.permissions.require(result, requesting_user)

        await self.uow.tasks.delete_tasks(task_ids)
        logger.info(
            f"Deleted {len(task_ids)} tasks",
            extra={"task_ids": task_ids, "user": requesting_user},
        )
