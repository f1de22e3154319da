"""
Appointment Service

Business logic for booking, cancelling and paying appointments.
Orchestrates the remote repositories and converts every backend failure into
a user-facing result dictionary.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from spa_turnos.api.errors import (
    ApiError,
    ApiRejectedError,
    ApiTimeoutError,
    AuthenticationError,
    TransientApiError,
)
from spa_turnos.api.http import ApiClient
from spa_turnos.api.repository import (
    AppointmentRepository,
    PaymentRepository,
    ServiceRepository,
    UserRepository,
    enrich_professionals,
)
from spa_turnos.config import settings
from spa_turnos.models.schemas import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    CardDetails,
    PaymentCreate,
    PaymentMethod,
    Unpopulated,
    normalize_date,
    normalize_time,
)
from spa_turnos.services.aggregation import (
    group_by_date,
    payment_amount,
    summarize_day,
    summarize_days,
)
from spa_turnos.services.availability import (
    AvailabilityResult,
    filter_available,
    is_slot_occupied,
)
from spa_turnos.services.slots import generate_slots, satisfies_lead_time

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


class BookingValidationError(Exception):
    """Local validation failure; never sent to the network."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def error_result(e: ApiError, default_message: str) -> Dict[str, Any]:
    """Map a backend error onto the result dictionary returned to callers."""
    if isinstance(e, AuthenticationError):
        code, message = "unauthorized", e.message
    elif isinstance(e, ApiTimeoutError):
        code, message = "timeout", "La solicitud tomó demasiado tiempo"
    elif isinstance(e, TransientApiError):
        code, message = "network_error", e.message
    elif isinstance(e, ApiRejectedError):
        code, message = "server_rejected", e.message or default_message
    else:
        code, message = "server_error", default_message
    return {"success": False, "message": message, "error": code}


class AppointmentService:
    """
    Service for managing appointment business logic.

    Local checks (lead time, occupied slots) are an optimistic guard against
    stale selections; the backend makes the final decision on every write.
    """

    def __init__(
        self,
        client: ApiClient,
        lead_time_hours: Optional[int] = None,
        slot_times: Optional[Sequence[str]] = None,
        discount_rate: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize AppointmentService.

        Args:
            client: API client bound to the current session
            lead_time_hours: Lead-time rule in hours (settings by default)
            slot_times: Daily slot grid (settings by default)
            discount_rate: Card payment discount (settings by default)
            clock: Source of "now"
        """
        self.client = client
        self.session = client.session
        self.appointment_repo = AppointmentRepository(client)
        self.service_repo = ServiceRepository(client)
        self.payment_repo = PaymentRepository(client)
        self.user_repo = UserRepository(client)

        self.lead_time_hours = (
            lead_time_hours if lead_time_hours is not None else settings.lead_time_hours
        )
        self.slots = generate_slots(slot_times if slot_times is not None else settings.slot_times)
        self.discount_rate = (
            discount_rate if discount_rate is not None else settings.card_discount_rate
        )
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def load_booked(self) -> List[Appointment]:
        """
        Fetch the appointments used for occupancy checks.

        Errors are logged and yield an empty list: availability is advisory
        and the backend still rejects real conflicts on submission.
        """
        try:
            return [a for a in self.appointment_repo.list_appointments() if a.is_active]
        except ApiError as e:
            logger.error(f"Could not load existing appointments: {e}")
            return []

    def check_availability(
        self,
        service_id: str,
        day,
        booked: Sequence[Appointment],
        professional_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AvailabilityResult:
        return filter_available(
            self.slots,
            day,
            service_id,
            booked,
            now or self.now(),
            professional_id=professional_id,
            min_hours=self.lead_time_hours,
        )

    def validate_booking(
        self,
        service_id: Optional[str],
        day,
        time: Optional[str],
        client_id: Optional[str],
        booked: Sequence[Appointment],
        now: datetime,
        professional_id: Optional[str] = None,
    ) -> None:
        """
        Re-run the local booking rules right before submission.

        Raises:
            BookingValidationError: With code ``missing_selection``,
                ``lead_time`` or ``slot_occupied``
        """
        if not service_id or not day or not time or not client_id:
            raise BookingValidationError(
                "missing_selection", "Por favor completa todos los campos"
            )
        if not satisfies_lead_time(day, time, now, self.lead_time_hours):
            raise BookingValidationError(
                "lead_time",
                f"El turno debe reservarse con al menos {self.lead_time_hours} "
                f"horas de anticipación.",
            )
        if is_slot_occupied(day, time, service_id, booked, professional_id):
            raise BookingValidationError(
                "slot_occupied",
                "Este horario ya no está disponible. Por favor, selecciona otro.",
            )

    def submit(
        self,
        service_id: Optional[str],
        day,
        time: Optional[str],
        client_id: Optional[str],
        booked: Sequence[Appointment],
        now: Optional[datetime] = None,
        professional_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Validate and create a booking.

        Args:
            service_id: Selected service
            day: Selected date
            time: Selected ``HH:MM`` slot
            client_id: Client the appointment is booked for
            booked: Latest locally held appointments
            now: Reference instant (clock by default)
            professional_id: Optional selected professional

        Returns:
            Dictionary with keys:
                - success: Boolean
                - message: User-facing message
                - appointment_id: Created id (on success)
                - error: Error code (on failure)
        """
        now = now or self.now()
        try:
            self.validate_booking(service_id, day, time, client_id, booked, now, professional_id)
            request = AppointmentCreate(
                cliente=client_id,
                servicio=service_id,
                profesional=professional_id,
                fecha=normalize_date(day),
                hora=normalize_time(time),
            )
        except BookingValidationError as e:
            logger.info(f"Booking rejected locally ({e.code}): {service_id} {day} {time}")
            return {"success": False, "message": e.message, "error": e.code}
        except ValueError as e:
            logger.warning(f"Invalid booking selection: {e}")
            return {
                "success": False,
                "message": "La fecha o el horario seleccionados no son válidos.",
                "error": "invalid_selection",
            }

        try:
            appointment_id = self.appointment_repo.create_appointment(request)
        except ApiError as e:
            logger.error(f"Booking submission failed: {e}")
            return error_result(e, "Error al reservar el turno")

        return {
            "success": True,
            "message": "Turno reservado con éxito",
            "appointment_id": appointment_id,
            "appointment": {
                "id": appointment_id,
                "servicio": service_id,
                "profesional": professional_id,
                "fecha": request.fecha.isoformat(),
                "hora": request.hora,
                "estado": AppointmentStatus.PENDING.value,
            },
        }

    def _client_appointments(self) -> List[Appointment]:
        user = self.session.require_user()
        return self.appointment_repo.list_for_user(user.id)

    def _price_map(self, appointments: Sequence[Appointment]) -> Optional[Dict[str, float]]:
        if all(a.service_price is not None for a in appointments):
            return None
        return {s.id: s.precio for s in self.service_repo.list_services()}

    def my_appointments(
        self,
        status: Optional[AppointmentStatus] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Build the "my appointments" view: days with totals and payment options.

        Args:
            status: Optional status filter
            now: Reference instant for the discount check

        Returns:
            Dictionary with ``days`` (list of day summaries) on success
        """
        now = now or self.now()
        try:
            appointments = self._client_appointments()
            prices = self._price_map(appointments)
        except ApiError as e:
            logger.error(f"Error getting appointments: {e}")
            return {**error_result(e, "No se pudieron cargar tus turnos"), "days": []}

        if status is not None:
            appointments = [a for a in appointments if a.estado == status]

        days = summarize_days(
            appointments, now, prices, self.lead_time_hours, self.discount_rate
        )
        if not days:
            return {"success": True, "message": "No tenés turnos registrados.", "days": []}

        return {
            "success": True,
            "message": f"Tenés {len(appointments)} turno(s) en {len(days)} día(s).",
            "days": days,
            "count": len(appointments),
        }

    def cancel(
        self,
        appointment_id: str,
        now: Optional[datetime] = None,
        admin: bool = False,
    ) -> Dict[str, Any]:
        """
        Cancel an appointment.

        Clients may only cancel pending/confirmed appointments that still
        satisfy the lead-time rule; admins bypass the lead-time rule.
        """
        now = now or self.now()
        try:
            appointments = (
                self.appointment_repo.list_appointments()
                if admin
                else self._client_appointments()
            )
        except ApiError as e:
            return error_result(e, "Error al cancelar el turno")

        appointment = next((a for a in appointments if a.id == appointment_id), None)
        if appointment is None:
            return {
                "success": False,
                "message": f"No se encontró el turno #{appointment_id}.",
                "error": "appointment_not_found",
            }

        if appointment.estado not in CANCELLABLE_STATUSES:
            return {
                "success": False,
                "message": f"El turno está {appointment.estado.value} y no puede cancelarse.",
                "error": "not_cancellable",
            }

        if not admin and not satisfies_lead_time(
            appointment.fecha, appointment.hora, now, self.lead_time_hours
        ):
            return {
                "success": False,
                "message": (
                    f"Los turnos sólo pueden cancelarse con {self.lead_time_hours} "
                    f"horas de anticipación."
                ),
                "error": "lead_time",
            }

        try:
            self.appointment_repo.update_status(appointment_id, AppointmentStatus.CANCELLED)
        except ApiError as e:
            logger.error(f"Error cancelling appointment {appointment_id}: {e}")
            return error_result(e, "Error al cancelar el turno")

        logger.info(f"Appointment {appointment_id} cancelled (admin={admin})")
        return {
            "success": True,
            "message": "Turno cancelado con éxito",
            "cancelled_appointment": appointment.to_view(),
        }

    def pay_day(
        self,
        day,
        method: PaymentMethod,
        card: Optional[CardDetails] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Pay every pending appointment of one day.

        The card path gets the discount when the day is eligible and requires
        card details; the cash path is always charged in full. Paid
        appointments are then confirmed.
        """
        now = now or self.now()
        if method == PaymentMethod.CARD and card is None:
            return {
                "success": False,
                "message": "Por favor completa los datos de la tarjeta correctamente",
                "error": "invalid_card",
            }

        try:
            day_key = normalize_date(day).isoformat()
        except ValueError:
            return {"success": False, "message": "Fecha inválida.", "error": "invalid_selection"}

        try:
            client = self.session.require_user()
            appointments = self._client_appointments()
            day_appointments = group_by_date(appointments).get(day_key, [])
            summary = summarize_day(
                day_key,
                day_appointments,
                now,
                self._price_map(day_appointments),
                self.lead_time_hours,
                self.discount_rate,
            )
        except ApiError as e:
            return error_result(e, "Error al procesar el pago")

        if not summary.payable:
            return {
                "success": False,
                "message": "No hay turnos pendientes para pagar en ese día.",
                "error": "nothing_to_pay",
            }

        amount = payment_amount(summary.total, method, summary.discount_eligible, self.discount_rate)
        try:
            payment = self.payment_repo.create_payment(
                PaymentCreate(turnos=summary.pending_ids, amount=amount, cliente=client.id)
            )
        except ApiError as e:
            logger.error(f"Payment for {day_key} failed: {e}")
            return error_result(e, "Error al procesar el pago")

        unconfirmed = []
        for appointment_id in summary.pending_ids:
            try:
                self.appointment_repo.update_status(appointment_id, AppointmentStatus.CONFIRMED)
            except ApiError as e:
                logger.error(f"Paid appointment {appointment_id} could not be confirmed: {e}")
                unconfirmed.append(appointment_id)

        discount = method == PaymentMethod.CARD and summary.discount_eligible
        if card is not None and method == PaymentMethod.CARD:
            logger.info(f"Card payment with {card.masked_number} for {day_key}")
        return {
            "success": True,
            "message": "Pago realizado con éxito",
            "payment_id": payment.id,
            "amount": amount,
            "discount_applied": discount,
            "paid_appointments": summary.pending_ids,
            "unconfirmed_appointments": unconfirmed,
        }

    def professional_agenda(
        self,
        professional_id: str,
        day: Optional[date] = None,
        service_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Appointments assigned to a professional, optionally filtered."""
        try:
            appointments = self.appointment_repo.list_appointments()
            if any(isinstance(a.profesional, Unpopulated) for a in appointments):
                appointments = enrich_professionals(appointments, self.user_repo.list_users())
        except ApiError as e:
            logger.error(f"Error loading agenda for {professional_id}: {e}")
            return {**error_result(e, "Error al cargar los turnos"), "appointments": []}

        agenda = [a for a in appointments if a.professional_id == professional_id]
        if day is not None:
            agenda = [a for a in agenda if a.fecha == day]
        if service_id:
            agenda = [a for a in agenda if a.service_id == service_id]
        agenda.sort(key=lambda a: (a.fecha, a.hora))

        return {
            "success": True,
            "message": f"{len(agenda)} turno(s) asignado(s).",
            "appointments": agenda,
        }
