"""Boundary Protocols — persistence port between core/services and storage backends.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All storage access goes through UnitOfWork.projects / UnitOfWork.tasks
    - Lookups return None for missing rows; services map None to NotFound
    - Everything done through one UnitOfWork is committed or rolled back as a group
    - Ids are generated by the backend, never by callers

Design Decisions:
    - Protocol over ABC: structural subtyping, the SQL store and the in-memory
      store share no base class
    - Async in Protocol: implementations do IO, the pure checks that consume
      the returned records are never async themselves
"""

from typing import Protocol

from stm.core.domain_types import (
    ProjectId, TaskId, UserId,
    ProjectRecord, TaskRecord, ProjectDraft, TaskDraft,
)


class ProjectRepository(Protocol):
    """Contract for project persistence — implemented by shell."""
    async def get_projects(self, user: UserId) -> list[ProjectRecord]: ...
    async def get_project(self, project_id: ProjectId) -> ProjectRecord | None: ...
    async def get_project_by_task(self, task_id: TaskId) -> ProjectRecord | None: ...
    async def are_tasks_used(self, task_ids: list[TaskId]) -> bool: ...
    async def add_project(
        self, draft: ProjectDraft, owner: UserId,
    ) -> ProjectRecord: ...
    async def add_user(
        self, project_id: ProjectId, user: UserId,
    ) -> ProjectRecord: ...
    async def remove_user(
        self, project_id: ProjectId, user: UserId,
    ) -> ProjectRecord: ...
    async def delete_project(self, project_id: ProjectId) -> None: ...


class TaskRepository(Protocol):
    """Contract for task persistence — implemented by shell."""
    async def get_tasks(self, project_id: ProjectId) -> list[TaskRecord]: ...
    async def get_task(self, task_id: TaskId) -> TaskRecord | None: ...
    async def get_tasks_by_ids(self, task_ids: list[TaskId]) -> list[TaskRecord]: ...
    async def add_tasks(
        self, drafts: list[TaskDraft], project_id: ProjectId | None,
    ) -> list[TaskRecord]: ...
    async def assign_user(
        self, task_id: TaskId, user: UserId,
    ) -> TaskRecord | None:
        """Assign only if unassigned. None means another holder won."""
        ...
    async def unassign_user(self, task_id: TaskId) -> TaskRecord: ...
    async def unassign_user_in_project(
        self, project_id: ProjectId, user: UserId,
    ) -> list[TaskId]: ...
    async def set_process_points(
        self, task_id: TaskId, points: int,
    ) -> TaskRecord: ...
    async def delete_tasks(self, task_ids: list[TaskId]) -> None: ...


class UnitOfWork(Protocol):
    """One all-or-nothing transactional scope per request."""
    projects: ProjectRepository
    tasks: TaskRepository

    async def __aenter__(self) -> "UnitOfWork": ...
    async def __aexit__(self, exc_type, exc, tb) -> None: ...
    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...


class ProjectEventPublisher(Protocol):
    """Receives committed project changes (see ProjectEvent)."""
    async def publish(self, event) -> None: ...
