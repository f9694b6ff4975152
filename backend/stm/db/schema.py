"""Schema bootstrap — creates the tables straight from the ORM metadata.

For tests and throwaway SQLite databases only; real databases are migrated
with Alembic (alembic/versions).
"""

from sqlalchemy.ext.asyncio import AsyncEngine

import stm.models  # noqa: F401  (registers tables on Base.metadata)
from stm.db.base import Base


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
