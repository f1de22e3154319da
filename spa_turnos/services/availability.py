"""
Availability Filter

Splits the daily slot grid for a (service, date[, professional]) selection into
available, blocked-by-lead-time and occupied slots.

The occupancy check only sees the appointments this client already fetched, so
it is advisory: the backend remains the authority and may still reject a
booking that looked free here.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from spa_turnos.models.schemas import Appointment, normalize_date, normalize_time
from spa_turnos.services.slots import LEAD_TIME_HOURS, satisfies_lead_time


@dataclass(frozen=True)
class AvailabilityResult:
    """Three disjoint, order-preserving subsets of the slot grid."""

    available: Tuple[str, ...]
    blocked_by_lead_time: Tuple[str, ...]
    occupied: Tuple[str, ...]

    @property
    def is_empty(self) -> bool:
        return not self.available

    @property
    def is_limited(self) -> bool:
        """Some, but not all, slots can be booked."""
        return bool(self.available) and bool(self.blocked_by_lead_time or self.occupied)

    def to_dict(self) -> dict:
        return {
            "available": list(self.available),
            "blocked_by_lead_time": list(self.blocked_by_lead_time),
            "occupied": list(self.occupied),
        }


def is_slot_occupied(
    day,
    slot: str,
    service_id: str,
    booked: Iterable[Appointment],
    professional_id: Optional[str] = None,
) -> bool:
    """
    Check whether a slot is taken by a non-cancelled booking.

    Args:
        day: Target date
        slot: ``HH:MM`` time of day
        service_id: Service being booked
        booked: Appointments already fetched from the backend
        professional_id: When given, only bookings with the same professional count

    Returns:
        True if a matching active appointment exists
    """
    target_day = normalize_date(day)
    target_slot = normalize_time(slot)
    for appointment in booked:
        if not appointment.is_active:
            continue
        if appointment.fecha != target_day or appointment.hora != target_slot:
            continue
        if appointment.service_id != service_id:
            continue
        if professional_id is not None and appointment.professional_id != professional_id:
            continue
        return True
    return False


def filter_available(
    all_slots: Sequence[str],
    day,
    service_id: str,
    booked: Sequence[Appointment],
    now: datetime,
    professional_id: Optional[str] = None,
    min_hours: int = LEAD_TIME_HOURS,
) -> AvailabilityResult:
    """
    Compute slot availability for one day.

    Args:
        all_slots: Slot grid, usually ``generate_slots()``
        day: Target date
        service_id: Selected service
        booked: Appointments already fetched from the backend
        now: Reference instant for the lead-time rule
        professional_id: Optional selected professional
        min_hours: Lead time in hours

    Returns:
        AvailabilityResult whose three parts partition ``all_slots``

    Example:
        >>> result = filter_available(["09:00", "10:00"], "2024-01-03", "s1", [], now)
        >>> result.available
        ('09:00', '10:00')
    """
    target_day = normalize_date(day)
    available: List[str] = []
    blocked: List[str] = []
    occupied: List[str] = []

    for slot in all_slots:
        if not satisfies_lead_time(target_day, slot, now, min_hours):
            blocked.append(slot)
        elif is_slot_occupied(target_day, slot, service_id, booked, professional_id):
            occupied.append(slot)
        else:
            available.append(slot)

    return AvailabilityResult(
        available=tuple(available),
        blocked_by_lead_time=tuple(blocked),
        occupied=tuple(occupied),
    )
