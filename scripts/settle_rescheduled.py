"""Return unconfirmed reschedules to ``scheduled``.

Appointments left in ``rescheduled`` for longer than
``RESCHEDULE_SETTLE_MINUTES`` are moved back to ``scheduled`` by the system
principal. Meant to run from cron, e.g. every 15 minutes.

Usage:
    python scripts/settle_rescheduled.py [--minutes N]
"""

import argparse
import asyncio
from datetime import UTC, datetime, timedelta

import structlog

from app.config import settings
from app.database import engine, session_scope
from app.middleware.logging import configure_logging
from app.services.appointment_service import AppointmentService

logger = structlog.get_logger("scripts.settle_rescheduled")


async def settle(minutes: int) -> int:
    """Settle reschedules older than ``minutes``; returns how many were settled."""
    cutoff = datetime.now(UTC) - timedelta(minutes=minutes)
    async with session_scope() as session:
        service = AppointmentService(session)
        settled = await service.settle_rescheduled(cutoff)

    await engine.dispose()
    return settled


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--minutes",
        type=int,
        default=settings.reschedule_settle_minutes,
        help="Minimum age of a reschedule before it is settled",
    )
    args = parser.parse_args()

    configure_logging()
    settled = asyncio.run(settle(args.minutes))
    logger.info("settle_rescheduled_finished", settled=settled, minutes=args.minutes)


if __name__ == "__main__":
    main()
