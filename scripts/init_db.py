"""Create the scheduling tables directly from the table metadata.

Useful for local development; deployed databases are managed with Alembic
(``scripts/migrate.py``).
"""

import asyncio

import structlog
from sqlalchemy.dialects.postgresql import insert

from app.database import engine
from app.middleware.logging import configure_logging
from app.models import counters, metadata
from app.scheduling.numbering import APPOINTMENT_COUNTER

logger = structlog.get_logger("scripts.init_db")


async def init_db() -> None:
    """Create all tables and seed the appointment number counter."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
        await conn.execute(
            insert(counters)
            .values(name=APPOINTMENT_COUNTER, value=0)
            .on_conflict_do_nothing(index_elements=[counters.c.name])
        )

    await engine.dispose()
    logger.info("database_initialized", tables=sorted(metadata.tables))


if __name__ == "__main__":
    configure_logging()
    asyncio.run(init_db())
