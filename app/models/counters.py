"""Named monotonic counters (appointment numbers)."""

from sqlalchemy import BigInteger, Column, String, Table, text

from app.models.base import metadata

counters = Table(
    "counters",
    metadata,
    Column("name", String(50), primary_key=True),
    Column("value", BigInteger, nullable=False, server_default=text("0")),
)
