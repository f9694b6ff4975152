"""Project ORM — persists a named collection of tasks shared by a set of users.

Invariants:
    - id is a UUID4 string generated by the storage layer
    - owner is non-nullable and always has a matching project_users row
    - description length is bounded by settings.max_description_length (checked in core)
    - Process point aggregates are NOT columns: they are recomputed from tasks

Design Decisions:
    - Members in a separate table (project_users): membership is a set, and
      add/remove are single-row inserts/deletes instead of array rewrites
    - No ORM relationships: the SQL store issues explicit statements, which
      keeps async lazy loading out of the picture
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stm.db.base import Base


def new_id() -> str:
    return str(uuid.uuid4())


class Project(Base):
    """Project aggregate root."""
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=new_id,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    needs_assignment: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
