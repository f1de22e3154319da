"""
Slot Calendar

Fixed daily slot grid and the minimum lead-time rule shared by booking,
cancellation and the discount check.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence

from spa_turnos.models.schemas import normalize_date, normalize_time

LEAD_TIME_HOURS = 48

# Midday break: no 13:00 slot
DEFAULT_SLOT_TIMES = (
    "09:00",
    "10:00",
    "11:00",
    "12:00",
    "14:00",
    "15:00",
    "16:00",
    "17:00",
)

SUNDAY = 6


def generate_slots(times: Optional[Iterable[str]] = None) -> List[str]:
    """
    Return the ordered daily slot grid.

    Args:
        times: Optional override of the grid (e.g. from settings)

    Returns:
        List of ``HH:MM`` strings in chronological order
    """
    slots = [normalize_time(t) for t in (times if times is not None else DEFAULT_SLOT_TIMES)]
    return sorted(dict.fromkeys(slots))


def slot_instant(day, slot: str) -> datetime:
    """Combine a calendar day and an ``HH:MM`` slot into a naive datetime."""
    hour, minute = (int(part) for part in normalize_time(slot).split(":"))
    return datetime.combine(normalize_date(day), time(hour, minute))


def satisfies_lead_time(
    day,
    slot: str,
    now: datetime,
    min_hours: int = LEAD_TIME_HOURS,
) -> bool:
    """
    Check the minimum lead-time rule.

    Args:
        day: Appointment date (anything ``normalize_date`` accepts)
        slot: Time of day, ``HH:MM``
        now: Reference instant
        min_hours: Required gap in hours

    Returns:
        True iff the appointment instant is strictly later than
        ``now + min_hours``. Equality does not satisfy the rule.

    Example:
        >>> satisfies_lead_time(date(2024, 1, 3), "00:00", datetime(2024, 1, 1))
        False
    """
    return slot_instant(day, slot) > now + timedelta(hours=min_hours)


def minimum_booking_date(today: date, min_hours: int = LEAD_TIME_HOURS) -> date:
    """First calendar day offered by the date picker."""
    return today + timedelta(days=-(-min_hours // 24))


def is_open_day(day, closed_weekdays: Sequence[int] = (SUNDAY,)) -> bool:
    return normalize_date(day).weekday() not in closed_weekdays
