"""Permission Service — loads records through the unit of work and runs the pure checks.

Invariants:
    - Never mutates: only repository reads
    - Every verify_* returns a PermissionResult (authorized / denied / lookup_failed)
    - require() logs denials at WARNING before raising

Design Decisions:
    - Thin async shell around core/enforce_permissions.py: the decision logic
      stays pure, this class only knows how to fetch the records it needs
"""

import logging

from stm.core.domain_types import ProjectId, TaskId, UserId
from stm.core.enforce_permissions import (
    PermissionResult, authorized, check_assignment, check_membership,
    check_ownership, first_failure, lookup_failed, require,
)
from stm.core.errors import ErrorContext, ResourceNotFoundError
from stm.core.repository_protocols import UnitOfWork

logger = logging.getLogger(__name__)


class PermissionService:
    """Membership, ownership and assignment checks against current state."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def verify_membership_project(
        self, project_id: ProjectId, user: UserId,
    ) -> PermissionResult:
        project = await self.uow.projects.get_project(project_id)
        return check_membership(project, user, project_id)

    async def verify_membership_task(
        self, task_id: TaskId, user: UserId,
    ) -> PermissionResult:
        project = await self.uow.projects.get_project_by_task(task_id)
        if project is None:
            task = await self.uow.tasks.get_task(task_id)
            if task is None:
                return lookup_failed("Task", task_id)
            return lookup_failed("Project of task", task_id)
        return check_membership(project, user, project.id)

    async def verify_membership_tasks(
        self, task_ids: list[TaskId], user: UserId,
    ) -> PermissionResult:
        results = [
            await self.verify_membership_task(task_id, user)
            for task_id in task_ids
        ]
        return first_failure(*results) if results else authorized()

    async def verify_ownership(
        self, project_id: ProjectId, user: UserId,
    ) -> PermissionResult:
        project = await self.uow.projects.get_project(project_id)
        return check_ownership(project, user, project_id)

    async def verify_assignment(
        self, task_id: TaskId, user: UserId,
    ) -> PermissionResult:
        task = await self.uow.tasks.get_task(task_id)
        return check_assignment(task, user, task_id)

    async def assignment_required(self, task_id: TaskId) -> bool:
        """needs_assignment flag of the task's project. NotFound if unbound."""
        project = await self.uow.projects.get_project_by_task(task_id)
        if project is None:
            raise ResourceNotFoundError(
                "Project of task", task_id, ErrorContext(task_id=task_id),
            )
        return project.needs_assignment

    def require(
        self, result: PermissionResult, user: UserId,
        project_id: str | None = None, task_id: str | None = None,
    ) -> None:
        """Raise NotAuthorized / NotFound unless result is authorized."""
        if result.denied:
            logger.warning(
                f"Permission denied: {result.reason}",
                extra={"user": user, "project_id": project_id, "task_id": task_id},
            )
        require(
            result, ErrorContext(project_id=project_id, task_id=task_id, user=user),
        )
