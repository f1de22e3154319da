"""
Day Aggregator

Groups a client's appointments by calendar day and computes what is payable
on each day, including the card-payment discount.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from spa_turnos.models.schemas import Appointment, AppointmentStatus, PaymentMethod
from spa_turnos.services.slots import LEAD_TIME_HOURS, satisfies_lead_time

CARD_DISCOUNT_RATE = 0.15


def group_by_date(appointments: Iterable[Appointment]) -> Dict[str, List[Appointment]]:
    """
    Group appointments by their ``YYYY-MM-DD`` date.

    Buckets are ordered by date and each bucket by time of day, so every
    appointment lands in exactly one bucket.
    """
    buckets: Dict[str, List[Appointment]] = {}
    for appointment in appointments:
        buckets.setdefault(appointment.date_key, []).append(appointment)
    return {
        key: sorted(buckets[key], key=lambda a: a.hora)
        for key in sorted(buckets)
    }


def pending_only(day_appointments: Iterable[Appointment]) -> List[Appointment]:
    return [a for a in day_appointments if a.estado == AppointmentStatus.PENDING]


def appointment_price(
    appointment: Appointment,
    prices: Optional[Mapping[str, float]] = None,
) -> float:
    """Price from the populated service, else from ``prices``, else 0."""
    price = appointment.service_price
    if price is None and prices:
        price = prices.get(appointment.service_id)
    return float(price or 0.0)


def day_total(
    day_appointments: Iterable[Appointment],
    prices: Optional[Mapping[str, float]] = None,
) -> float:
    """Sum of service prices for the pending appointments of a day."""
    return sum(appointment_price(a, prices) for a in pending_only(day_appointments))


def is_discount_eligible(
    day_appointments: Iterable[Appointment],
    now: datetime,
    min_hours: int = LEAD_TIME_HOURS,
) -> bool:
    """
    A day qualifies for the card discount when every pending appointment
    still satisfies the lead-time rule. Days with nothing pending never do.
    """
    pending = pending_only(day_appointments)
    if not pending:
        return False
    return all(satisfies_lead_time(a.fecha, a.hora, now, min_hours) for a in pending)


def payment_amount(
    total: float,
    method: PaymentMethod,
    eligible: bool,
    rate: float = CARD_DISCOUNT_RATE,
) -> float:
    """Amount to charge: the discount applies to the card path only."""
    if method == PaymentMethod.CARD and eligible:
        return round(total * (1 - rate), 2)
    return round(total, 2)


@dataclass
class DaySummary:
    """Per-day view model for the "my appointments" page."""

    day: str
    appointments: List[Appointment]
    total: float
    discount_eligible: bool
    cash_amount: float
    card_amount: float
    pending_ids: List[str] = field(default_factory=list)

    @property
    def payable(self) -> bool:
        return bool(self.pending_ids)

    def to_dict(self) -> dict:
        return {
            "fecha": self.day,
            "turnos": [a.to_view() for a in self.appointments],
            "total": self.total,
            "descuento_disponible": self.discount_eligible,
            "monto_efectivo": self.cash_amount,
            "monto_tarjeta": self.card_amount,
            "pendientes": list(self.pending_ids),
        }


def summarize_day(
    day: str,
    day_appointments: Sequence[Appointment],
    now: datetime,
    prices: Optional[Mapping[str, float]] = None,
    min_hours: int = LEAD_TIME_HOURS,
    rate: float = CARD_DISCOUNT_RATE,
) -> DaySummary:
    total = day_total(day_appointments, prices)
    eligible = is_discount_eligible(day_appointments, now, min_hours)
    return DaySummary(
        day=day,
        appointments=list(day_appointments),
        total=total,
        discount_eligible=eligible,
        cash_amount=payment_amount(total, PaymentMethod.CASH, eligible, rate),
        card_amount=payment_amount(total, PaymentMethod.CARD, eligible, rate),
        pending_ids=[a.id for a in pending_only(day_appointments)],
    )


def summarize_days(
    appointments: Iterable[Appointment],
    now: datetime,
    prices: Optional[Mapping[str, float]] = None,
    min_hours: int = LEAD_TIME_HOURS,
    rate: float = CARD_DISCOUNT_RATE,
) -> List[DaySummary]:
    return [
        summarize_day(day, items, now, prices, min_hours, rate)
        for day, items in group_by_date(appointments).items()
    ]
