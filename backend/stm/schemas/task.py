"""Task Schemas — task drafts in, task state out.

Invariants:
    - TaskCreate carries no id and no assignee: both are set by the service
    - geometry is GeoJSON text, checked by core/geometry.py
"""

from pydantic import BaseModel, ConfigDict, Field

from stm.core.domain_types import TaskDraft, TaskRecord


class TaskCreate(BaseModel):
    """Task draft."""
    model_config = ConfigDict(populate_by_name=True)

    process_points: int = Field(0, alias="processPoints")
    max_process_points: int = Field(alias="maxProcessPoints")
    geometry: str

    def to_draft(self) -> TaskDraft:
        return TaskDraft(
            max_process_points=self.max_process_points,
            geometry=self.geometry,
            process_points=self.process_points,
        )


class TaskResponse(BaseModel):
    """Task state as seen by clients."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    process_points: int = Field(alias="processPoints")
    max_process_points: int = Field(alias="maxProcessPoints")
    geometry: str
    assigned_user: str | None = Field(None, alias="assignedUser")
    version: int

    @classmethod
    def from_record(cls, task: TaskRecord) -> "TaskResponse":
        return cls(
            id=task.id,
            process_points=task.process_points,
            max_process_points=task.max_process_points,
            geometry=task.geometry,
            assigned_user=task.assigned_user,
            version=task.version,
        )
