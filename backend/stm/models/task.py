"""Task ORM — a unit of mapping work with bounded progress and an optional assignee.

Invariants:
    - id is a UUID4 string generated by the storage layer
    - project_id is NULL until the task is bound to a project; a task is bound
      to at most one project because it has exactly one project_id column
    - 0 <= process_points <= max_process_points (CHECK constraint + core rules)
    - assigned_user NULL means unassigned
    - version increases by one on every update

Design Decisions:
    - position orders a project's task ids without an array column
    - geometry stored as text: opaque to the core after structural validation
"""

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stm.db.base import Base


class Task(Base):
    """Task entity."""
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint(
            "process_points >= 0 AND process_points <= max_process_points",
            name="process_points_range",
        ),
        CheckConstraint(
            "max_process_points >= 1", name="max_process_points_positive",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    project_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    process_points: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    max_process_points: Mapped[int] = mapped_column(Integer, nullable=False)
    geometry: Mapped[str] = mapped_column(Text, nullable=False)
    assigned_user: Mapped[str | None] = mapped_column(
        String(255), nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
