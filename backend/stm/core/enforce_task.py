"""Task Rules — draft validation, process point bounds, assignment transitions.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - 0 <= process_points <= max_process_points, max_process_points >= 1
    - Lowering process points is allowed (no monotonicity rule)
    - Assignment: Unassigned -> Assigned(u) -> Unassigned; never Assigned(u) -> Assigned(v)

Design Decisions:
    - validate_task_drafts reports the index of the first offending draft so a
      client submitting a batch knows which one to fix
"""

from stm.core.domain_types import AssignmentState, TaskDraft, TaskRecord
from stm.core.errors import ConflictError, ErrorContext, ValidationError
from stm.core.geometry import check_polygon_feature


def check_draft_process_points(draft: TaskDraft) -> str | None:
    if (
        draft.process_points < 0
        or draft.max_process_points < 1
        or draft.max_process_points < draft.process_points
    ):
        return (
            f"process points of task are out of range "
            f"({draft.process_points} / {draft.max_process_points})"
        )
    return None


def check_draft(draft: TaskDraft) -> str | None:
    """All rules for one draft — first error wins."""
    return (
        check_draft_process_points(draft)
        or check_polygon_feature(draft.geometry)
    )


def validate_task_drafts(drafts: list[TaskDraft]) -> None:
    """Raise ValidationError naming the first offending draft."""
    if not drafts:
        raise ValidationError("No tasks have been specified", field="tasks")
    for index, draft in enumerate(drafts):
        error = check_draft(draft)
        if error:
            raise ValidationError(f"task {index}: {error}", field=f"tasks.{index}")


def check_new_process_points(task: TaskRecord, new_points: int) -> str | None:
    """New points must be within [0, max_process_points], both inclusive."""
    if new_points < 0 or task.max_process_points < new_points:
        return (
            f"process points out of range: {new_points} not in "
            f"[0, {task.max_process_points}]"
        )
    return None


def ensure_assignable(task: TaskRecord) -> None:
    """Only an unassigned task may be claimed."""
    if task.assignment_state is AssignmentState.ASSIGNED:
        raise ConflictError(
            f"task {task.id} has already an assigned user, cannot overwrite",
            ErrorContext(task_id=task.id),
        )


def check_version(task: TaskRecord, expected_version: int | None) -> str | None:
    """Optimistic concurrency: a stale expected_version is a conflict."""
    if expected_version is not None and task.version != expected_version:
        return (
            f"task {task.id} was modified concurrently "
            f"(expected version {expected_version}, found {task.version})"
        )
    return None
