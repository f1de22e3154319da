"""
Admin Back-Office Service

User, service, appointment and payment management for administrators, plus
the payments report grouped by service or professional.
"""

import logging
from datetime import date, datetime, time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from spa_turnos.api.errors import ApiError
from spa_turnos.api.http import ApiClient
from spa_turnos.api.repository import (
    AppointmentRepository,
    PaymentRepository,
    ServiceRepository,
    UserRepository,
    enrich_professionals,
)
from spa_turnos.models.schemas import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
    Payment,
    Populated,
    ServiceCreate,
    ServiceUpdate,
    UserRole,
    UserUpdate,
)
from spa_turnos.services.aggregation import appointment_price
from spa_turnos.services.appointment import error_result

logger = logging.getLogger(__name__)

GROUP_BY_SERVICE = "servicio"
GROUP_BY_PROFESSIONAL = "profesional"

FORBIDDEN_RESULT = {
    "success": False,
    "message": "Acceso restringido a administradores.",
    "error": "forbidden",
}


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None) if value.tzinfo else value


def _group_key(appointment: Appointment, group_by: str) -> str:
    if group_by == GROUP_BY_PROFESSIONAL:
        if isinstance(appointment.profesional, Populated):
            return appointment.profesional.value.full_name or "Profesional"
        return "Profesional"
    if isinstance(appointment.servicio, Populated):
        return appointment.servicio.value.nombre or "Servicio"
    return "Servicio"


def payment_report(
    payments: Iterable[Payment],
    appointments: Iterable[Appointment],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    group_by: str = GROUP_BY_SERVICE,
    prices: Optional[Mapping[str, float]] = None,
) -> Dict[str, Any]:
    """
    Totals of paid appointments per service or professional.

    Args:
        payments: Registered payments
        appointments: Appointments referenced by the payments
        date_from: Inclusive lower bound on the payment creation day
        date_to: Inclusive upper bound (through 23:59:59 of that day)
        group_by: ``"servicio"`` or ``"profesional"``
        prices: Fallback prices by service id for unpopulated services

    Returns:
        Dictionary with ``rows`` (``clave``, ``count``, ``total``) and ``total``
    """
    if group_by not in (GROUP_BY_SERVICE, GROUP_BY_PROFESSIONAL):
        raise ValueError(f"Unknown report grouping: {group_by}")

    by_id = {a.id: a for a in appointments}
    lower = datetime.combine(date_from, time.min) if date_from else None
    upper = datetime.combine(date_to, time(23, 59, 59)) if date_to else None

    totals: Dict[str, Dict[str, float]] = {}
    for payment in payments:
        created = _naive(payment.created_at)
        if lower and created < lower:
            continue
        if upper and created > upper:
            continue

        for appointment_id in payment.appointment_ids:
            appointment = by_id.get(appointment_id)
            if appointment is None:
                continue
            row = totals.setdefault(_group_key(appointment, group_by), {"count": 0, "total": 0.0})
            row["count"] += 1
            row["total"] += appointment_price(appointment, prices)

    rows = [
        {"clave": key, "count": int(values["count"]), "total": values["total"]}
        for key, values in totals.items()
    ]
    return {"rows": rows, "total": sum(r["total"] for r in rows)}


class AdminService:
    """Administrative operations; every method requires an admin session."""

    def __init__(self, client: ApiClient):
        self.session = client.session
        self.user_repo = UserRepository(client)
        self.service_repo = ServiceRepository(client)
        self.appointment_repo = AppointmentRepository(client)
        self.payment_repo = PaymentRepository(client)

    def _run(self, action: Callable[[], Any], failure_message: str, **success: Any) -> Dict[str, Any]:
        if not self.session.is_admin:
            return dict(FORBIDDEN_RESULT)
        try:
            data = action()
        except ApiError as e:
            logger.error(f"Admin operation failed: {e}")
            return error_result(e, failure_message)
        return {"success": True, "message": success.pop("message", ""), "data": data, **success}

    # Users

    def list_users(self) -> Dict[str, Any]:
        return self._run(
            lambda: self.user_repo.list_users(authenticated=True),
            "Error al obtener usuarios",
        )

    def update_user(self, user_id: str, data: UserUpdate) -> Dict[str, Any]:
        return self._run(
            lambda: self.user_repo.update_user(user_id, data),
            "Error al actualizar el usuario",
            message="Usuario actualizado",
        )

    def delete_user(self, user_id: str) -> Dict[str, Any]:
        if self.session.user_id == user_id:
            return {
                "success": False,
                "message": "No podés eliminar tu propio usuario.",
                "error": "forbidden",
            }
        return self._run(
            lambda: self.user_repo.delete_user(user_id),
            "Error al eliminar el usuario",
            message="Usuario eliminado",
        )

    def list_professionals(self) -> Dict[str, Any]:
        return self._run(
            lambda: [
                u for u in self.user_repo.list_users(authenticated=True)
                if u.role == UserRole.PROFESSIONAL
            ],
            "Error al obtener profesionales",
        )

    # Services

    def create_service(self, data: ServiceCreate) -> Dict[str, Any]:
        return self._run(
            lambda: self.service_repo.create_service(data),
            "Error al crear el servicio",
            message="Servicio creado",
        )

    def update_service(self, service_id: str, data: ServiceUpdate) -> Dict[str, Any]:
        return self._run(
            lambda: self.service_repo.update_service(service_id, data),
            "Error al actualizar el servicio",
            message="Servicio actualizado",
        )

    def delete_service(self, service_id: str) -> Dict[str, Any]:
        return self._run(
            lambda: self.service_repo.delete_service(service_id),
            "Error al eliminar el servicio",
            message="Servicio eliminado",
        )

    # Appointments

    def list_appointments(self, status: Optional[AppointmentStatus] = None) -> Dict[str, Any]:
        def load() -> List[Appointment]:
            appointments = self.appointment_repo.list_appointments()
            if status is not None:
                appointments = [a for a in appointments if a.estado == status]
            return sorted(appointments, key=lambda a: (a.fecha, a.hora))

        return self._run(load, "Error al obtener los turnos")

    def create_appointment(self, data: AppointmentCreate) -> Dict[str, Any]:
        """Book on behalf of a client; lead-time rule not enforced for admins."""
        return self._run(
            lambda: self.appointment_repo.create_appointment(data),
            "Error al crear el turno",
            message="Turno creado",
        )

    def update_appointment(self, appointment_id: str, data: AppointmentUpdate) -> Dict[str, Any]:
        return self._run(
            lambda: self.appointment_repo.update_appointment(appointment_id, data),
            "Error al actualizar el turno",
            message="Turno actualizado",
        )

    def delete_appointment(self, appointment_id: str) -> Dict[str, Any]:
        return self._run(
            lambda: self.appointment_repo.delete_appointment(appointment_id),
            "Error al eliminar el turno",
            message="Turno eliminado",
        )

    # Payments

    def payments_report(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        group_by: str = GROUP_BY_SERVICE,
    ) -> Dict[str, Any]:
        def build() -> Dict[str, Any]:
            payments = self.payment_repo.list_payments()
            appointments = self.appointment_repo.list_appointments()
            if group_by == GROUP_BY_PROFESSIONAL:
                appointments = enrich_professionals(appointments, self.user_repo.list_users())
            prices = {s.id: s.precio for s in self.service_repo.list_services()}
            report = payment_report(payments, appointments, date_from, date_to, group_by, prices)
            report["payments"] = payments
            return report

        return self._run(build, "Error al obtener pagos")
