"""In-Memory Store — persistence port backed by dicts, for tests and local runs.

Invariants:
    - Units of work are serialized by one asyncio.Lock per store: a unit sees
      no other unit's uncommitted state and no other unit runs in between
    - A unit works on a deep copy of the committed state; commit() swaps the
      copy in, anything else discards it
    - Ids are UUID4 strings generated here, never by callers
    - Semantics mirror SqlUnitOfWork, including the version counter and the
      conditional assignment

Design Decisions:
    - Serializable-by-lock instead of row locks: the simplest isolation that
      still gives "first committer wins" for concurrent claims
"""

import asyncio
import copy
import uuid
from dataclasses import dataclass, field

from stm.core.domain_types import (
    ProjectId, TaskId, UserId,
    ProjectRecord, TaskRecord, ProjectDraft, TaskDraft,
)
from stm.core.errors import ConflictError


@dataclass
class _State:
    projects: dict[ProjectId, ProjectRecord] = field(default_factory=dict)
    tasks: dict[TaskId, TaskRecord] = field(default_factory=dict)
    # task id -> owning project id, for tasks bound to a project
    task_project: dict[TaskId, ProjectId] = field(default_factory=dict)


class InMemoryStore:
    """Committed state shared by all units of work of one process."""

    def __init__(self):
        self.state = _State()
        self.lock = asyncio.Lock()

    def unit_of_work(self) -> "InMemoryUnitOfWork":
        return InMemoryUnitOfWork(self)


class InMemoryProjectRepository:

    def __init__(self, state: _State):
        self.state = state

    async def get_projects(self, user: UserId) -> list[ProjectRecord]:
        return [
            copy.deepcopy(p) for p in self.state.projects.values()
            if user in p.users
        ]

    async def get_project(self, project_id: ProjectId) -> ProjectRecord | None:
        project = self.state.projects.get(project_id)
        return copy.deepcopy(project) if project else None

    async def get_project_by_task(self, task_id: TaskId) -> ProjectRecord | None:
        project_id = self.state.task_project.get(task_id)
        if project_id is None:
            return None
        return await self.get_project(project_id)

    async def are_tasks_used(self, task_ids: list[TaskId]) -> bool:
        return any(t in self.state.task_project for t in task_ids)

    async def add_project(
        self, draft: ProjectDraft, owner: UserId,
    ) -> ProjectRecord:
        project_id = ProjectId(str(uuid.uuid4()))
        for task_id in draft.task_ids:
            if task_id in self.state.task_project:
                raise ConflictError(
                    f"Task '{task_id}' is already used in another project",
                )
            self.state.task_project[task_id] = project_id
            self.state.tasks[task_id].version += 1
        self.state.projects[project_id] = ProjectRecord(
            id=project_id,
            name=draft.name.strip(),
            description=draft.description or "",
            task_ids=list(draft.task_ids),
            users=list(dict.fromkeys([owner, *draft.users])),
            owner=owner,
            needs_assignment=draft.needs_assignment,
        )
        return await self.get_project(project_id)

    async def add_user(
        self, project_id: ProjectId, user: UserId,
    ) -> ProjectRecord:
        project = self.state.projects[project_id]
        if user not in project.users:
            project.users.append(user)
        return await self.get_project(project_id)

    async def remove_user(
        self, project_id: ProjectId, user: UserId,
    ) -> ProjectRecord:
        project = self.state.projects[project_id]
        project.users = [u for u in project.users if u != user]
        return await self.get_project(project_id)

    async def delete_project(self, project_id: ProjectId) -> None:
        self.state.projects.pop(project_id, None)
        for task_id, owner_id in list(self.state.task_project.items()):
            if owner_id == project_id:
                del self.state.task_project[task_id]


class InMemoryTaskRepository:

    def __init__(self, state: _State):
        self.state = state

    async def get_tasks(self, project_id: ProjectId) -> list[TaskRecord]:
        project = self.state.projects.get(project_id)
        if project is None:
            return []
        return [
            copy.deepcopy(self.state.tasks[t])
            for t in project.task_ids if t in self.state.tasks
        ]

    async def get_task(self, task_id: TaskId) -> TaskRecord | None:
        task = self.state.tasks.get(task_id)
        return copy.deepcopy(task) if task else None

    async def get_tasks_by_ids(self, task_ids: list[TaskId]) -> list[TaskRecord]:
        return [
            copy.deepcopy(self.state.tasks[t])
            for t in task_ids if t in self.state.tasks
        ]

    async def add_tasks(
        self, drafts: list[TaskDraft], project_id: ProjectId | None,
    ) -> list[TaskRecord]:
        created = []
        for draft in drafts:
            task = TaskRecord(
                id=TaskId(str(uuid.uuid4())),
                process_points=draft.process_points,
                max_process_points=draft.max_process_points,
                geometry=draft.geometry,
            )
            self.state.tasks[task.id] = task
            if project_id is not None:
                self.state.task_project[task.id] = project_id
                self.state.projects[project_id].task_ids.append(task.id)
            created.append(copy.deepcopy(task))
        return created

    async def assign_user(
        self, task_id: TaskId, user: UserId,
    ) -> TaskRecord | None:
        task = self.state.tasks[task_id]
        if task.assigned_user:
            return None
        task.assigned_user = user
        task.version += 1
        return copy.deepcopy(task)

    async def unassign_user(self, task_id: TaskId) -> TaskRecord:
        task = self.state.tasks[task_id]
        task.assigned_user = None
        task.version += 1
        return copy.deepcopy(task)

    async def unassign_user_in_project(
        self, project_id: ProjectId, user: UserId,
    ) -> list[TaskId]:
        released = []
        for task_id in self.state.projects[project_id].task_ids:
            task = self.state.tasks.get(task_id)
            if task and task.assigned_user == user:
                task.assigned_user = None
                task.version += 1
                released.append(task_id)
        return released

    async def set_process_points(
        self, task_id: TaskId, points: int,
    ) -> TaskRecord:
        task = self.state.tasks[task_id]
        task.process_points = points
        task.version += 1
        return copy.deepcopy(task)

    async def delete_tasks(self, task_ids: list[TaskId]) -> None:
        for task_id in task_ids:
            self.state.tasks.pop(task_id, None)
            project_id = self.state.task_project.pop(task_id, None)
            project = self.state.projects.get(project_id) if project_id else None
            if project:
                project.task_ids = [t for t in project.task_ids if t != task_id]


class InMemoryUnitOfWork:
    """Copy-on-enter, swap-on-commit transactional scope."""

    def __init__(self, store: InMemoryStore):
        self.store = store
        self._working: _State | None = None
        self.projects: InMemoryProjectRepository | None = None
        self.tasks: InMemoryTaskRepository | None = None

    async def __aenter__(self) -> "InMemoryUnitOfWork":
        await self.store.lock.acquire()
        self._begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._working = None
        self.store.lock.release()

    def _begin(self) -> None:
        self._working = copy.deepcopy(self.store.state)
        self.projects = InMemoryProjectRepository(self._working)
        self.tasks = InMemoryTaskRepository(self._working)

    async def commit(self) -> None:
        self.store.state = self._working
        self._begin()

    async def rollback(self) -> None:
        self._begin()
