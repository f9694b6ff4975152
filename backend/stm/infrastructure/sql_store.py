"""SQL Store — SQLAlchemy implementation of the persistence port.

Invariants:
    - One SqlUnitOfWork wraps exactly one AsyncSession (one request)
    - Nothing is committed until SqlUnitOfWork.commit(); leaving the scope
      without commit rolls everything back
    - Single-row reads lock the row (SELECT ... FOR UPDATE) so a permission
      check and the following write see the same state; SQLite ignores the lock
    - assign_user is a conditional UPDATE (... WHERE assigned_user IS NULL):
      of two concurrent claims exactly one affects a row
    - Every task UPDATE increments version
    - SQLAlchemy exceptions leave the scope as DatabaseError

Design Decisions:
    - Explicit statements instead of ORM relationships: predictable SQL, no
      async lazy loads
    - populate_existing on reads: rows touched by bulk UPDATEs in the same
      session are re-read from the database, not served stale from the
      identity map
"""

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stm.core.domain_types import (
    ProjectId, TaskId, UserId,
    ProjectRecord, TaskRecord, ProjectDraft, TaskDraft,
)
from stm.core.errors import ConflictError
from stm.infrastructure.database import to_database_error
from stm.models.project import Project
from stm.models.project_user import ProjectUser
from stm.models.task import Task



def _task_record(row: Task) -> TaskRecord:
    return TaskRecord(
        id=TaskId(row.id),
        process_points=row.process_points,
        max_process_points=row.max_process_points,
        geometry=row.geometry,
        assigned_user=UserId(row.assigned_user) if row.assigned_user else None,
        version=row.version,
    )


class SqlProjectRepository:
    """Projects and their members."""

    def __init__(self, db: AsyncSession, lock_reads: bool = True):
        self.db = db
        self.lock_reads = lock_reads

    async def _members(self, project_id: str) -> list[UserId]:
        result = await self.db.execute(
            select(ProjectUser.user_id)
            .where(ProjectUser.project_id == project_id)
            .order_by(ProjectUser.user_id),
        )
        return [UserId(u) for u in result.scalars().all()]

    async def _task_ids(self, project_id: str) -> list[TaskId]:
        result = await self.db.execute(
            select(Task.id)
            .where(Task.project_id == project_id)
            .order_by(Task.position, Task.id),
        )
        return [TaskId(t) for t in result.scalars().all()]

    async def _to_record(self, row: Project) -> ProjectRecord:
        return ProjectRecord(
            id=ProjectId(row.id),
            name=row.name,
            description=row.description,
            task_ids=await self._task_ids(row.id),
            users=await self._members(row.id),
            owner=UserId(row.owner),
            needs_assignment=row.needs_assignment,
        )

    async def get_projects(self, user: UserId) -> list[ProjectRecord]:
        result = await self.db.execute(
            select(Project)
            .join(ProjectUser, ProjectUser.project_id == Project.id)
            .where(ProjectUser.user_id == user)
            .order_by(Project.created_at, Project.id)
            .execution_options(populate_existing=True),
        )
        return [await self._to_record(p) for p in result.scalars().all()]

    async def get_project(self, project_id: ProjectId) -> ProjectRecord | None:
        query = (
            select(Project)
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        if self.lock_reads:
            query = query.with_for_update()
        result = await self.db.execute(query)
        row = result.scalar_one_or_none()
        return await self._to_record(row) if row else None

    async def get_project_by_task(self, task_id: TaskId) -> ProjectRecord | None:
        query = (
            select(Project)
            .join(Task, Task.project_id == Project.id)
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        if self.lock_reads:
            query = query.with_for_update(of=Project)
        result = await self.db.execute(query)
        row = result.scalar_one_or_none()
        return await self._to_record(row) if row else None

    async def are_tasks_used(self, task_ids: list[TaskId]) -> bool:
        result = await self.db.execute(
            select(func.count())
            .select_from(Task)
            .where(Task.id.in_(task_ids))
            .where(Task.project_id.is_not(None)),
        )
        return result.scalar_one() > 0

    async def add_project(
        self, draft: ProjectDraft, owner: UserId,
    ) -> ProjectRecord:
        project = Project(
            name=draft.name.strip(),
            description=draft.description or "",
            owner=owner,
            needs_assignment=draft.needs_assignment,
        )
        self.db.add(project)
        await self.db.flush()

        # dict.fromkeys keeps first-seen order and drops duplicate members
        for user in dict.fromkeys([owner, *draft.users]):
            self.db.add(ProjectUser(project_id=project.id, user_id=user))

        for position, task_id in enumerate(draft.task_ids):
            result = await self.db.execute(
                update(Task)
                .where(Task.id == task_id)
                .where(Task.project_id.is_(None))
                .values(
                    project_id=project.id, position=position,
                    version=Task.version + 1,
                )
                .execution_options(synchronize_session=False),
            )
            if result.rowcount != 1:
                raise ConflictError(
                    f"Task '{task_id}' is already used in another project",
                )
        await self.db.flush()
        return await self._to_record(project)

    async def add_user(
        self, project_id: ProjectId, user: UserId,
    ) -> ProjectRecord:
        self.db.add(ProjectUser(project_id=project_id, user_id=user))
        await self.db.flush()
        return await self.get_project(project_id)

    async def remove_user(
        self, project_id: ProjectId, user: UserId,
    ) -> ProjectRecord:
        await self.db.execute(
            delete(ProjectUser)
            .where(ProjectUser.project_id == project_id)
            .where(ProjectUser.user_id == user),
        )
        return await self.get_project(project_id)

    async def delete_project(self, project_id: ProjectId) -> None:
        await self.db.execute(
            delete(ProjectUser).where(ProjectUser.project_id == project_id),
        )
        await self.db.execute(delete(Project).where(Project.id == project_id))


class SqlTaskRepository:
    """Tasks, their assignment and progress."""

    def __init__(self, db: AsyncSession, lock_reads: bool = True):
        self.db = db
        self.lock_reads = lock_reads

    async def get_tasks(self, project_id: ProjectId) -> list[TaskRecord]:
        result = await self.db.execute(
            select(Task)
            .where(Task.project_id == project_id)
            .order_by(Task.position, Task.id)
            .execution_options(populate_existing=True),
        )
        return [_task_record(t) for t in result.scalars().all()]

    async def get_task(self, task_id: TaskId) -> TaskRecord | None:
        query = (
            select(Task)
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        if self.lock_reads:
            query = query.with_for_update()
        result = await self.db.execute(query)
        row = result.scalar_one_or_none()
        return _task_record(row) if row else None

    async def get_tasks_by_ids(self, task_ids: list[TaskId]) -> list[TaskRecord]:
        result = await self.db.execute(
            select(Task)
            .where(Task.id.in_(task_ids))
            .execution_options(populate_existing=True),
        )
        by_id = {t.id: t for t in result.scalars().all()}
        return [_task_record(by_id[t]) for t in task_ids if t in by_id]

    async def add_tasks(
        self, drafts: list[TaskDraft], project_id: ProjectId | None,
    ) -> list[TaskRecord]:
        next_position = 0
        if project_id is not None:
            result = await self.db.execute(
                select(func.max(Task.position))
                .where(Task.project_id == project_id),
            )
            current = result.scalar_one_or_none()
            next_position = 0 if current is None else current + 1

        rows = [
            Task(
                project_id=project_id,
                position=next_position + offset,
                process_points=draft.process_points,
                max_process_points=draft.max_process_points,
                geometry=draft.geometry,
                assigned_user=None,
                version=1,
            )
            for offset, draft in enumerate(drafts)
        ]
        self.db.add_all(rows)
        await self.db.flush()
        return [_task_record(row) for row in rows]

    async def _update(self, task_id: TaskId, **values) -> int:
        result = await self.db.execute(
            update(Task)
            .where(Task.id == task_id)
            .values(version=Task.version + 1, **values)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount

    async def assign_user(
        self, task_id: TaskId, user: UserId,
    ) -> TaskRecord | None:
        result = await self.db.execute(
            update(Task)
            .where(Task.id == task_id)
            .where(Task.assigned_user.is_(None))
            .values(assigned_user=user, version=Task.version + 1)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            return None
        return await self.get_task(task_id)

    async def unassign_user(self, task_id: TaskId) -> TaskRecord:
        await self._update(task_id, assigned_user=None)
        return await self.get_task(task_id)

    async def unassign_user_in_project(
        self, project_id: ProjectId, user: UserId,
    ) -> list[TaskId]:
        result = await self.db.execute(
            select(Task.id)
            .where(Task.project_id == project_id)
            .where(Task.assigned_user == user),
        )
        task_ids = [TaskId(t) for t in result.scalars().all()]
        for task_id in task_ids:
            await self._update(task_id, assigned_user=None)
        return task_ids

    async def set_process_points(
        self, task_id: TaskId, points: int,
    ) -> TaskRecord:
        await self._update(task_id, process_points=points)
        return await self.get_task(task_id)

    async def delete_tasks(self, task_ids: list[TaskId]) -> None:
        if not task_ids:
            return
        await self.db.execute(delete(Task).where(Task.id.in_(task_ids)))


class SqlUnitOfWork:
    """Transactional scope over one AsyncSession."""

    def __init__(self, db: AsyncSession, lock_reads: bool = True):
        self.db = db
        self.projects = SqlProjectRepository(db, lock_reads)
        self.tasks = SqlTaskRepository(db, lock_reads)
        self._committed = False

    async def __aenter__(self) -> "SqlUnitOfWork":
        self._committed = False
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None or not self._committed:
            await self.rollback()
        if exc_type is not None and issubclass(exc_type, SQLAlchemyError):
            raise to_database_error(exc, "transaction") from exc

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise to_database_error(e, "commit") from e
        self._committed = True

    async def rollback(self) -> None:
        await self.db.rollback()
