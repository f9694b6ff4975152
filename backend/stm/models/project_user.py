"""ProjectUser ORM — one row per (project, member) pair.

Invariants:
    - (project_id, user_id) is the primary key: a user is a member at most once
    - Rows are removed together with their project (ON DELETE CASCADE)
"""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from stm.db.base import Base


class ProjectUser(Base):
    """Project membership."""
    __tablename__ = "project_users"

    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(255), primary_key=True, index=True,
    )
