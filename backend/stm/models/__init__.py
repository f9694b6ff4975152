"""ORM Models — SQLAlchemy declarative models for projects, members and tasks.

Invariants:
    - All models inherit from Base (db/base.py)
    - Project is the aggregate root; members and bound tasks reference it by project_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all
      or Alembic autogenerate runs
"""

from stm.models.project import Project  # noqa: F401
from stm.models.project_user import ProjectUser  # noqa: F401
from stm.models.task import Task  # noqa: F401
