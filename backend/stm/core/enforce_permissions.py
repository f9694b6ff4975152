"""Permission Decisions — pure membership, ownership and assignment checks.

Invariants:
    - All functions are PURE: records in, PermissionResult out, no IO
    - Every check yields exactly one of AUTHORIZED, DENIED, LOOKUP_FAILED
    - A missing record always yields LOOKUP_FAILED, never DENIED or AUTHORIZED
    - require() is the only place a result becomes an exception

Design Decisions:
    - Explicit result object over "no exception means allowed": a caller asking
      "is the user NOT the owner" must test result.denied, so a failed lookup
      can never be read as either answer
"""

from dataclasses import dataclass

from stm.core.domain_types import (
    PermissionOutcome, ProjectRecord, TaskRecord, UserId,
)
from stm.core.errors import (
    ErrorContext, NotAuthorizedError, ResourceNotFoundError,
)


@dataclass(frozen=True)
class PermissionResult:
    """Outcome of one permission check plus what to report if it fails."""
    outcome: PermissionOutcome
    reason: str = ""
    resource_type: str | None = None
    resource_id: str | None = None

    @property
    def authorized(self) -> bool:
        return self.outcome is PermissionOutcome.AUTHORIZED

    @property
    def denied(self) -> bool:
        return self.outcome is PermissionOutcome.DENIED

    @property
    def lookup_failed(self) -> bool:
        return self.outcome is PermissionOutcome.LOOKUP_FAILED


def authorized() -> PermissionResult:
    return PermissionResult(PermissionOutcome.AUTHORIZED)


def denied(reason: str) -> PermissionResult:
    return PermissionResult(PermissionOutcome.DENIED, reason)


def lookup_failed(resource_type: str, resource_id: str) -> PermissionResult:
    return PermissionResult(
        PermissionOutcome.LOOKUP_FAILED,
        f"{resource_type} '{resource_id}' not found",
        resource_type, resource_id,
    )


def check_membership(
    project: ProjectRecord | None, user: UserId, project_id: str,
) -> PermissionResult:
    """Authorized iff user is in project.users."""
    if project is None:
        return lookup_failed("Project", project_id)
    if user in project.users:
        return authorized()
    return denied(f"user '{user}' is not a member of project '{project.id}'")


def check_ownership(
    project: ProjectRecord | None, user: UserId, project_id: str,
) -> PermissionResult:
    """Authorized iff user is project.owner."""
    if project is None:
        return lookup_failed("Project", project_id)
    if project.owner == user:
        return authorized()
    return denied(f"user '{user}' is not the owner of project '{project.id}'")


def check_assignment(
    task: TaskRecord | None, user: UserId, task_id: str,
) -> PermissionResult:
    """Authorized iff the task is assigned and the assignee is user."""
    if task is None:
        return lookup_failed("Task", task_id)
    if task.assigned_user and task.assigned_user == user:
        return authorized()
    return denied(f"user '{user}' is not assigned to task '{task.id}'")


def first_failure(*results: PermissionResult) -> PermissionResult:
    """Chain checks: first non-authorized result wins, else authorized."""
    for result in results:
        if not result.authorized:
            return result
    return authorized()


def require(
    result: PermissionResult, context: ErrorContext | None = None,
) -> None:
    """Raise for DENIED and LOOKUP_FAILED. Every outcome is handled explicitly."""
    if result.outcome is PermissionOutcome.AUTHORIZED:
        return
    if result.outcome is PermissionOutcome.DENIED:
        raise NotAuthorizedError(result.reason, context)
    if result.outcome is PermissionOutcome.LOOKUP_FAILED:
        raise ResourceNotFoundError(
            result.resource_type or "Resource", result.resource_id or "", context,
        )
    raise ValueError(f"Unknown permission outcome: {result.outcome}")
