"""Domain Types — identifiers, enums and plain records shared by core and shell.

Invariants:
    - ProjectId, TaskId, UserId wrap str — ids are opaque and assigned by storage
    - ProjectRecord.owner is always contained in ProjectRecord.users
    - TaskRecord.assigned_user is None when the task is unassigned
    - Records are snapshots: mutating one never writes to a store

Design Decisions:
    - NewType over wrapper classes: zero runtime cost, full type-checker support
    - Dataclasses for records: repositories return them instead of ORM rows so
      services work unchanged against the SQL and the in-memory store
    - Aggregates (total/done process points) live on ProjectView, never on the
      persisted record, so they can only come from live tasks
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

ProjectId = NewType("ProjectId", str)
TaskId = NewType("TaskId", str)
UserId = NewType("UserId", str)


# ─── Enums ───────────────────────────────────────────────────────

class PermissionOutcome(str, Enum):
    """Three-valued result of every permission check."""
    AUTHORIZED = "authorized"
    DENIED = "denied"
    LOOKUP_FAILED = "lookup_failed"


class AssignmentState(str, Enum):
    """Task assignment state machine. There is no terminal state."""
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"


class ProjectEventType(str, Enum):
    """Committed changes observers may be notified about."""
    USER_ADDED = "user_added"
    USER_REMOVED = "user_removed"
    USER_LEFT = "user_left"
    PROJECT_DELETED = "project_deleted"


# ─── Records ─────────────────────────────────────────────────────

@dataclass
class ProjectRecord:
    """Persisted project state."""
    id: ProjectId
    name: str
    description: str
    task_ids: list[TaskId]
    users: list[UserId]
    owner: UserId
    needs_assignment: bool = False


@dataclass
class TaskRecord:
    """Persisted task state."""
    id: TaskId
    process_points: int
    max_process_points: int
    geometry: str
    assigned_user: UserId | None = None
    version: int = 1

    @property
    def assignment_state(self) -> AssignmentState:
        if self.assigned_user:
            return AssignmentState.ASSIGNED
        return AssignmentState.UNASSIGNED


@dataclass
class ProjectView:
    """Project plus process point aggregates recomputed from its tasks."""
    project: ProjectRecord
    total_process_points: int = 0
    done_process_points: int = 0


# ─── Drafts ──────────────────────────────────────────────────────

@dataclass
class ProjectDraft:
    """Project as submitted by a client. id must be unset."""
    name: str
    owner: UserId | None
    users: list[UserId] = field(default_factory=list)
    task_ids: list[TaskId] = field(default_factory=list)
    description: str = ""
    needs_assignment: bool = False
    id: ProjectId | None = None


@dataclass
class TaskDraft:
    """Task as submitted by a client, before storage assigns an id."""
    max_process_points: int
    geometry: str
    process_points: int = 0


@dataclass(frozen=True)
class ProjectEvent:
    """A committed project change, emitted after the unit of work commits."""
    type: ProjectEventType
    project_id: ProjectId
    user: UserId
    actor: UserId
