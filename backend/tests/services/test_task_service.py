"""Task Service — tests for creation, assignment, progress and deletion.

Tests cover:
    - unbound creation and appending to an owned project
    - the assignment state machine, including concurrent claims
    - unassign by the assignee only; repeating it is harmless
    - the project row is read before the task row
    - progress bounds, needs_assignment and the version check
"""

import asyncio

import pytest

from stm.core.domain_types import ProjectId, TaskId, UserId
from stm.core.errors import (
    ConflictError, NotAuthorizedError, ResourceNotFoundError, ValidationError,
)
from stm.infrastructure.memory_store import InMemoryProjectRepository, InMemoryTaskRepository
from stm.services.task_service import TaskService
from tests.factories import seed_project, task_draft


# ─── creation and reads ──────────────────────────────────────────

async def test_add_unbound_tasks(tasks, store):
    created = await tasks("add_tasks", [task_draft(3), task_draft(4)], None, UserId("alice"))
    assert [t.max_process_points for t in created] == [3, 4]
    assert all(t.assigned_user is None for t in created)
    assert len({t.id for t in created}) == 2
    assert not any(t.id in store.state.task_project for t in created)


async def test_owner_appends_tasks_to_project(tasks, project):
    [added] = await tasks(
        "add_tasks", [task_draft(8)], project.project.id, UserId("alice"),
    )
    listed = await tasks("get_tasks", project.project.id, UserId("bob"))
    assert [t.id for t in listed][-1] == added.id
    assert len(listed) == 3


async def test_member_cannot_append_tasks(tasks, project):
    with pytest.raises(NotAuthorizedError):
        await tasks("add_tasks", [task_draft()], project.project.id, UserId("bob"))


async def test_invalid_batch_persists_nothing(tasks, store):
    with pytest.raises(ValidationError):
        await tasks("add_tasks", [task_draft(), task_draft(max_points=0)], None, UserId("alice"))
    assert store.state.tasks == {}


async def test_get_tasks_keeps_project_order(tasks, project):
    listed = await tasks("get_tasks", project.project.id, UserId("alice"))
    assert [t.id for t in listed] == project.project.task_ids
    assert [t.max_process_points for t in listed] == [10, 5]


async def test_get_tasks_by_stranger_is_not_authorized(tasks, project):
    with pytest.raises(NotAuthorizedError):
        await tasks("get_tasks", project.project.id, UserId("carol"))


async def test_get_unknown_task_is_not_found(tasks):
    with pytest.raises(ResourceNotFoundError):
        await tasks("get_task", TaskId("missing"), UserId("alice"))


# ─── assignment ──────────────────────────────────────────────────

async def test_second_claim_is_conflict_and_keeps_assignee(tasks, project, store):
    """bob claims task1; a later claim by alice fails and bob stays assigned."""
    task_id = project.project.task_ids[0]
    claimed = await tasks("assign_user", task_id, UserId("bob"))
    assert claimed.assigned_user == "bob"

    with pytest.raises(ConflictError):
        await tasks("assign_user", task_id, UserId("alice"))

    assert store.state.tasks[task_id].assigned_user == "bob"


async def test_non_member_cannot_claim(tasks, project):
    with pytest.raises(NotAuthorizedError):
        await tasks("assign_user", project.project.task_ids[0], UserId("carol"))


async def test_claiming_unknown_task_is_not_found(tasks):
    with pytest.raises(ResourceNotFoundError):
        await tasks("assign_user", TaskId("missing"), UserId("alice"))


async def test_concurrent_claims_have_one_winner(store, project):
    task_id = project.project.task_ids[0]

    async def claim(user):
        async with store.unit_of_work() as uow:
            task = await TaskService(uow).assign_user(task_id, UserId(user))
            await uow.commit()
            return task

    results = await asyncio.gather(
        claim("alice"), claim("bob"), return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 1 and isinstance(losers[0], ConflictError)
    assert store.state.tasks[task_id].assigned_user == winners[0].assigned_user


async def test_assignee_unassigns(tasks, project):
    task_id = project.project.task_ids[0]
    await tasks("assign_user", task_id, UserId("bob"))
    released = await tasks("unassign_user", task_id, UserId("bob"))
    assert released.assigned_user is None


async def test_other_user_cannot_unassign(tasks, project):
    task_id = project.project.task_ids[0]
    await tasks("assign_user", task_id, UserId("bob"))
    with pytest.raises(NotAuthorizedError):
        await tasks("unassign_user", task_id, UserId("alice"))


async def test_repeated_unassign_is_harmless(tasks, project):
    task_id = project.project.task_ids[0]
    await tasks("assign_user", task_id, UserId("bob"))
    first = await tasks("unassign_user", task_id, UserId("bob"))
    second = await tasks("unassign_user", task_id, UserId("bob"))
    assert second.assigned_user is None
    assert second.version == first.version


async def test_stranger_cannot_unassign_unassigned_task(tasks, project):
    with pytest.raises(NotAuthorizedError):
        await tasks("unassign_user", project.project.task_ids[0], UserId("carol"))


async def test_task_can_be_claimed_again_after_release(tasks, project):
    task_id = project.project.task_ids[0]
    await tasks("assign_user", task_id, UserId("bob"))
    await tasks("unassign_user", task_id, UserId("bob"))
    claimed = await tasks("assign_user", task_id, UserId("alice"))
    assert claimed.assigned_user == "alice"


# ─── row read order ──────────────────────────────────────────────

@pytest.fixture
def row_reads(monkeypatch):
    """Records whether the project or the task row is read, in order."""
    reads = []
    get_project_by_task = InMemoryProjectRepository.get_project_by_task
    get_task = InMemoryTaskRepository.get_task

    async def read_project(self, task_id):
        reads.append("project")
        return await get_project_by_task(self, task_id)

    async def read_task(self, task_id):
        reads.append("task")
        return await get_task(self, task_id)

    monkeypatch.setattr(InMemoryProjectRepository, "get_project_by_task", read_project)
    monkeypatch.setattr(InMemoryTaskRepository, "get_task", read_task)
    return reads


async def test_unassign_of_unassigned_task_reads_project_first(tasks, project, row_reads):
    row_reads.clear()
    await tasks("unassign_user", project.project.task_ids[0], UserId("bob"))
    assert row_reads[0] == "project"
    assert "task" in row_reads


async def test_unassign_of_claimed_task_reads_project_first(tasks, project, row_reads):
    task_id = project.project.task_ids[0]
    await tasks("assign_user", task_id, UserId("bob"))
    row_reads.clear()
    await tasks("unassign_user", task_id, UserId("bob"))
    assert row_reads[0] == "project"
    assert "task" in row_reads


@pytest.mark.parametrize("method, args", [
    ("get_task", ()),
    ("assign_user", ()),
    ("set_process_points", (3,)),
])
async def test_task_operations_read_project_first(tasks, project, row_reads, method, args):
    row_reads.clear()
    await tasks(method, project.project.task_ids[0], *args, UserId("bob"))
    assert row_reads[0] == "project"


# ─── process points ──────────────────────────────────────────────

async def test_member_reports_progress_without_assignment_rule(tasks, project):
    task = await tasks("set_process_points", project.project.task_ids[0], 10, UserId("bob"))
    assert task.process_points == 10


async def test_points_above_max_are_rejected(tasks, project):
    with pytest.raises(ValidationError):
        await tasks("set_process_points", project.project.task_ids[1], 6, UserId("bob"))


async def test_points_can_be_lowered(tasks, project):
    task_id = project.project.task_ids[0]
    await tasks("set_process_points", task_id, 8, UserId("bob"))
    task = await tasks("set_process_points", task_id, 2, UserId("bob"))
    assert task.process_points == 2


async def test_needs_assignment_restricts_progress_to_assignee(tasks, store):
    view = await seed_project(store, users=["alice", "bob", "carol"], needs_assignment=True)
    task_id = view.project.task_ids[0]
    await tasks("assign_user", task_id, UserId("bob"))

    with pytest.raises(NotAuthorizedError):
        await tasks("set_process_points", task_id, 5, UserId("carol"))

    task = await tasks("set_process_points", task_id, 5, UserId("bob"))
    assert task.process_points == 5


async def test_stale_version_is_conflict(tasks, project):
    task_id = project.project.task_ids[0]
    first = await tasks("set_process_points", task_id, 1, UserId("bob"))

    with pytest.raises(ConflictError):
        await tasks("set_process_points", task_id, 2, UserId("alice"), first.version - 1)

    current = await tasks("set_process_points", task_id, 3, UserId("alice"), first.version)
    assert current.process_points == 3
    assert current.version == first.version + 1


async def test_progress_on_unbound_task_is_not_found(tasks):
    [task] = await tasks("add_tasks", [task_draft()], None, UserId("alice"))
    with pytest.raises(ResourceNotFoundError):
        await tasks("set_process_points", task.id, 1, UserId("alice"))


# ─── deletion ────────────────────────────────────────────────────

async def test_member_deletes_tasks(tasks, project, store):
    await tasks("delete", project.project.task_ids[:1], UserId("bob"))
    assert project.project.task_ids[0] not in store.state.tasks
    remaining = await tasks("get_tasks", project.project.id, UserId("bob"))
    assert [t.id for t in remaining] == project.project.task_ids[1:]


async def test_stranger_cannot_delete_tasks(tasks, project, store):
    with pytest.raises(NotAuthorizedError):
        await tasks("delete", project.project.task_ids, UserId("carol"))
    assert all(t in store.state.tasks for t in project.project.task_ids)


async def test_delete_with_unknown_task_deletes_nothing(tasks, project, store):
    with pytest.raises(ResourceNotFoundError):
        await tasks("delete", [*project.project.task_ids, TaskId("missing")], UserId("bob"))
    assert all(t in store.state.tasks for t in project.project.task_ids)


async def test_get_tasks_of_unknown_project_is_not_found(tasks):
    with pytest.raises(ResourceNotFoundError):
        await tasks("get_tasks", ProjectId("missing"), UserId("alice"))
