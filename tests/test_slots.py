"""Tests for slot grid arithmetic and local time handling."""

from datetime import UTC, date, datetime, timedelta

import pytest

from app.scheduling.slots import (
    exists_locally,
    format_hhmm,
    grid_starts,
    is_on_grid,
    is_strictly_future,
    localize,
    overlaps,
    parse_hhmm,
)


def test_parse_and_format_hhmm():
    """Times convert to minutes since midnight and back."""
    assert parse_hhmm("00:00") == 0
    assert parse_hhmm("09:30") == 570
    assert parse_hhmm("23:59") == 1439
    assert format_hhmm(570) == "09:30"
    assert format_hhmm(0) == "00:00"


@pytest.mark.parametrize("value", ["24:00", "9:5", "12:60", "noon", "12-30", ""])
def test_parse_hhmm_rejects_invalid_times(value):
    """Malformed or out-of-range times raise ValueError."""
    with pytest.raises(ValueError):
        parse_hhmm(value)


def test_is_on_grid():
    assert is_on_grid("10:00")
    assert is_on_grid("10:30")
    assert not is_on_grid("10:15")
    assert not is_on_grid("10:01")


def test_grid_starts_excludes_slot_ending_after_close():
    """The last slot must end by the end of working hours."""
    starts = grid_starts(parse_hhmm("09:00"), parse_hhmm("17:00"))

    assert format_hhmm(starts[0]) == "09:00"
    assert format_hhmm(starts[-1]) == "16:30"
    assert len(starts) == 16
    assert parse_hhmm("17:00") not in starts


def test_grid_starts_rounds_up_unaligned_hours():
    """Hours that do not start on the grid begin at the next grid point."""
    starts = grid_starts(parse_hhmm("09:15"), parse_hhmm("11:15"))

    assert [format_hhmm(m) for m in starts] == ["09:30", "10:00", "10:30"]


def test_overlaps_is_half_open():
    """Touching intervals do not overlap."""
    assert overlaps(780, 810, 780, 840)
    assert overlaps(750, 780, 765, 795)
    assert not overlaps(750, 780, 780, 840)
    assert not overlaps(840, 870, 780, 840)


def test_localize_uses_doctor_timezone():
    """A local 10:00 in Kolkata is 04:30 UTC."""
    start = localize(date(2025, 3, 10), "10:00", "Asia/Kolkata")

    assert start.astimezone(UTC) == datetime(2025, 3, 10, 4, 30, tzinfo=UTC)


def test_localize_rejects_unknown_timezone():
    with pytest.raises(ValueError):
        localize(date(2025, 3, 10), "10:00", "Mars/Olympus_Mons")


def test_spring_forward_gap_does_not_exist():
    """02:30 is skipped on the US spring-forward night."""
    assert not exists_locally(localize(date(2025, 3, 9), "02:30", "America/New_York"))
    assert exists_locally(localize(date(2025, 3, 9), "01:30", "America/New_York"))
    assert exists_locally(localize(date(2025, 3, 9), "03:00", "America/New_York"))


def test_fall_back_ambiguity_resolves_to_first_occurrence():
    """01:30 on the US fall-back night is read as daylight time."""
    start = localize(date(2025, 11, 2), "01:30", "America/New_York")

    assert exists_locally(start)
    assert start.utcoffset() == timedelta(hours=-4)


def test_is_strictly_future_boundary():
    """A slot starting exactly now is not bookable; one second later is."""
    start = datetime(2025, 3, 10, 10, 0, tzinfo=UTC)

    assert is_strictly_future(start, start - timedelta(seconds=1))
    assert not is_strictly_future(start, start)
    assert not is_strictly_future(start, start + timedelta(seconds=1))
