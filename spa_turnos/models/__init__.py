"""
Models Module Initialization

Exports the backend data model and request bodies.
"""

from spa_turnos.models.schemas import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
    CardDetails,
    Payment,
    PaymentCreate,
    PaymentMethod,
    Populated,
    Ref,
    Service,
    Unpopulated,
    User,
    UserRole,
    normalize_date,
    normalize_time,
)

__all__ = [
    "Appointment",
    "AppointmentCreate",
    "AppointmentStatus",
    "AppointmentUpdate",
    "CardDetails",
    "Payment",
    "PaymentCreate",
    "PaymentMethod",
    "Populated",
    "Ref",
    "Service",
    "Unpopulated",
    "User",
    "UserRole",
    "normalize_date",
    "normalize_time",
]
