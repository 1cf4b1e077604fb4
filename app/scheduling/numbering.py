"""Human-readable appointment numbers."""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import counters

APPOINTMENT_COUNTER = "appointment"
APPOINTMENT_NUMBER_PREFIX = "APT-"

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def format_appointment_number(value: int) -> str:
    """Format a counter value, e.g. ``42`` -> ``APT-000042``."""
    return f"{APPOINTMENT_NUMBER_PREFIX}{value:06d}"


async def next_counter_value(db: AsyncSession, name: str) -> int:
    """
    Increment a named counter and return its new value.

    A single upsert creates the row at 1 or bumps the existing value, so the
    first two callers on an empty table cannot both insert. Runs inside the
    caller's transaction; the increment is discarded if the caller rolls back
    and the row lock serializes concurrent callers until they commit.
    """
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Counter upsert is not supported on {dialect}")

    stmt = insert(counters).values(name=name, value=1)
    stmt = stmt.on_conflict_do_update(
        index_elements=[counters.c.name],
        set_={"value": counters.c.value + 1},
    ).returning(counters.c.value)

    result = await db.execute(stmt)
    return int(result.scalar_one())


async def next_appointment_number(db: AsyncSession) -> str:
    """Allocate the next appointment number."""
    return format_appointment_number(await next_counter_value(db, APPOINTMENT_COUNTER))
