"""Project Schemas — project drafts in, projects with progress out.

Invariants:
    - ProjectCreate.id must be absent; the service rejects a set id
    - Either taskIds (existing unbound tasks) or tasks (drafts created
      together with the project) is given, not both
    - ProjectResponse aggregates come from ProjectView, never from the client
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stm.core.domain_types import ProjectDraft, ProjectId, ProjectView, TaskId, UserId
from stm.schemas.task import TaskCreate


class ProjectCreate(BaseModel):
    """Project draft."""
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    name: str
    description: str = ""
    owner: str | None = None
    users: list[str] = Field(default_factory=list)
    task_ids: list[str] = Field(default_factory=list, alias="taskIds")
    needs_assignment: bool = Field(False, alias="needsAssignment")
    tasks: list[TaskCreate] | None = None

    @model_validator(mode="after")
    def task_ids_or_tasks(self):
        if self.tasks is not None and self.task_ids:
            raise ValueError("give either taskIds or tasks, not both")
        return self

    def to_draft(self) -> ProjectDraft:
        return ProjectDraft(
            id=ProjectId(self.id) if self.id else None,
            name=self.name,
            description=self.description,
            owner=UserId(self.owner) if self.owner else None,
            users=[UserId(u) for u in self.users],
            task_ids=[TaskId(t) for t in self.task_ids],
            needs_assignment=self.needs_assignment,
        )


class ProjectResponse(BaseModel):
    """Project plus recomputed process point aggregates."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str
    task_ids: list[str] = Field(alias="taskIds")
    users: list[str]
    owner: str
    needs_assignment: bool = Field(alias="needsAssignment")
    total_process_points: int = Field(alias="totalProcessPoints")
    done_process_points: int = Field(alias="doneProcessPoints")

    @classmethod
    def from_view(cls, view: ProjectView) -> "ProjectResponse":
        p = view.project
        return cls(
            id=p.id,
            name=p.name,
            description=p.description,
            task_ids=list(p.task_ids),
            users=list(p.users),
            owner=p.owner,
            needs_assignment=p.needs_assignment,
            total_process_points=view.total_process_points,
            done_process_points=view.done_process_points,
        )
