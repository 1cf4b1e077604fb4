"""
Slot grid arithmetic.

Appointment times are stored as local ``HH:MM`` strings next to a calendar
date. Everything here works on "minutes since local midnight" so the grid,
working hours and breaks can be compared without building datetimes, and only
``localize`` turns a (date, time) pair into an aware datetime in the doctor's
timezone.
"""

from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

SLOT_MINUTES = 30

WEEKDAY_LABELS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def parse_hhmm(value: str) -> int:
    """
    Convert ``HH:MM`` (24-hour) to minutes since midnight.

    Raises:
        ValueError: If the string is not a valid 24-hour time
    """
    hours, sep, minutes = value.partition(":")
    if sep != ":" or len(hours) not in (1, 2) or len(minutes) != 2:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    if not hours.isdigit() or not minutes.isdigit():
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")

    h, m = int(hours), int(minutes)
    if h > 23 or m > 59:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return h * 60 + m


def format_hhmm(minutes: int) -> str:
    """Convert minutes since midnight to ``HH:MM``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def is_on_grid(value: str, step: int = SLOT_MINUTES) -> bool:
    """Return True when ``value`` starts a slot (``:00`` or ``:30`` by default)."""
    return parse_hhmm(value) % step == 0


def grid_starts(start: int, end: int, step: int = SLOT_MINUTES) -> list[int]:
    """
    Slot start minutes inside ``[start, end)``.

    The first slot is the first grid point at or after ``start``; a slot whose
    end would pass ``end`` is not generated.
    """
    first = -(-start // step) * step
    return list(range(first, end - step + 1, step))


def overlaps(start: int, end: int, other_start: int, other_end: int) -> bool:
    """Half-open interval overlap: ``[start, end)`` and ``[other_start, other_end)``."""
    return start < other_end and other_start < end


def get_zone(name: str) -> ZoneInfo:
    """
    Resolve an IANA timezone name.

    Raises:
        ValueError: If the timezone is unknown
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone {name!r}") from exc


def localize(day: date, hhmm: str, tz_name: str) -> datetime:
    """
    Aware datetime for a local date and time in ``tz_name``.

    Ambiguous wall times (clocks going back) resolve to the first occurrence.
    """
    minutes = parse_hhmm(hhmm)
    naive = datetime.combine(day, time(minutes // 60, minutes % 60))
    return naive.replace(tzinfo=get_zone(tz_name), fold=0)


def exists_locally(moment: datetime) -> bool:
    """False for wall times skipped by a DST jump (e.g. 02:30 on spring-forward day)."""
    roundtrip = moment.astimezone(UTC).astimezone(moment.tzinfo)
    return roundtrip.replace(tzinfo=None, fold=0) == moment.replace(tzinfo=None, fold=0)


def is_strictly_future(start: datetime, now: datetime) -> bool:
    """A slot is bookable only when it starts after ``now``."""
    return start > now
