"""Service test fixtures — in-memory store and a unit-of-work runner.

Invariants:
    - Every test gets a fresh InMemoryStore
    - `run` executes one service call in its own committed unit of work,
      exactly as a request would

Design Decisions:
    - In-memory store over SQLite here: service rules are storage-agnostic,
      the SQL adapter has its own tests in test_sql_store.py
"""

import pytest

from stm.infrastructure.memory_store import InMemoryStore
from stm.services.project_service import ProjectService
from stm.services.task_service import TaskService
from stm.services.transaction import run_in_transaction
from tests.factories import seed_project


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def run(store):
    """run(lambda uow: ...) -> result, committed on success."""
    async def _run(operation, timeout_seconds=None):
        return await run_in_transaction(
            store.unit_of_work(), operation, timeout_seconds,
        )
    return _run


@pytest.fixture
def projects(run):
    """Call a ProjectService method in its own unit of work."""
    async def _call(method, *args, **kwargs):
        return await run(lambda uow: getattr(ProjectService(uow), method)(*args, **kwargs))
    return _call


@pytest.fixture
def tasks(run):
    """Call a TaskService method in its own unit of work."""
    async def _call(method, *args, **kwargs):
        return await run(lambda uow: getattr(TaskService(uow), method)(*args, **kwargs))
    return _call


@pytest.fixture
async def project(store):
    """alice owns, bob is a member; two tasks with 10 and 5 max points."""
    return await seed_project(store)
