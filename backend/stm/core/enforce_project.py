"""Project Rules — draft validation, membership removal rules, progress aggregation.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - check_* return an error message on violation, None on success
    - validate_project_draft chains all draft checks — first error wins
    - The owner can never be removed from users, not even by themself
    - Aggregates are computed from the task list passed in, never cached

Design Decisions:
    - Messages over exceptions in check_*: every rule testable in isolation,
      the chain decides which exception to raise
"""

from stm.core.domain_types import (
    ProjectDraft, ProjectRecord, ProjectView, TaskRecord, UserId,
)
from stm.core.enforce_permissions import (
    PermissionResult, authorized, denied, lookup_failed,
)
from stm.core.errors import NotAuthorizedError, ValidationError

DEFAULT_MAX_DESCRIPTION_LENGTH = 10_000


def check_id_unset(draft: ProjectDraft) -> str | None:
    if draft.id:
        return "Project id must not be set on creation"
    return None


def check_owner(draft: ProjectDraft) -> str | None:
    """Owner must be set and contained in users."""
    if not draft.owner or not draft.owner.strip():
        return "Owner must be set"
    if draft.owner not in draft.users:
        return "Owner must be within users list"
    return None


def check_name(draft: ProjectDraft) -> str | None:
    if not draft.name or not draft.name.strip():
        return "Project must have a name"
    return None


def check_task_ids(draft: ProjectDraft) -> str | None:
    if not draft.task_ids:
        return "No tasks have been specified"
    if len(set(draft.task_ids)) != len(draft.task_ids):
        return "Task ids must be unique within a project"
    return None


def check_description(
    draft: ProjectDraft, max_length: int = DEFAULT_MAX_DESCRIPTION_LENGTH,
) -> str | None:
    if len(draft.description or "") > max_length:
        return (
            f"Description too long. Maximum allowed are {max_length} characters."
        )
    return None


def validate_project_draft(
    draft: ProjectDraft,
    requesting_user: UserId,
    max_description_length: int = DEFAULT_MAX_DESCRIPTION_LENGTH,
) -> None:
    """Raise ValidationError for the first violated rule.

    The owner must also be the requesting user: nobody creates a project on
    someone else's behalf.
    """
    error = (
        check_id_unset(draft)
        or check_owner(draft)
        or check_name(draft)
        or check_task_ids(draft)
        or check_description(draft, max_description_length)
    )
    if error:
        raise ValidationError(error)
    if draft.owner != requesting_user:
        raise NotAuthorizedError(
            f"user '{requesting_user}' cannot create a project owned by '{draft.owner}'",
        )


def check_user_removal(
    project: ProjectRecord | None,
    requesting_user: UserId,
    user_to_remove: UserId,
    project_id: str,
) -> PermissionResult:
    """Removal rules: both members, target is not the owner, requester is
    the target or the owner."""
    if project is None:
        return lookup_failed("Project", project_id)
    if requesting_user not in project.users:
        return denied(
            f"requesting user '{requesting_user}' is not a member of project '{project.id}'",
        )
    if user_to_remove not in project.users:
        return denied(
            f"user '{user_to_remove}' is not a member of project '{project.id}'",
        )
    if user_to_remove == project.owner:
        return denied("the owner cannot be removed from a project")
    if requesting_user != user_to_remove and requesting_user != project.owner:
        return denied(
            f"non-owner user '{requesting_user}' is not allowed to remove another user",
        )
    return authorized()


def check_leave(
    project: ProjectRecord | None, user: UserId, project_id: str,
) -> PermissionResult:
    """Members may leave; the owner may only delete the project."""
    if project is None:
        return lookup_failed("Project", project_id)
    if user == project.owner:
        return denied(
            "the given user is the owner and therefore cannot leave the project",
        )
    if user not in project.users:
        return denied(f"user '{user}' is not a member of project '{project.id}'")
    return authorized()


def aggregate_progress(
    project: ProjectRecord, tasks: list[TaskRecord],
) -> ProjectView:
    """Sum process points of the given tasks into a ProjectView."""
    return ProjectView(
        project=project,
        total_process_points=sum(t.max_process_points for t in tasks),
        done_process_points=sum(t.process_points for t in tasks),
    )
