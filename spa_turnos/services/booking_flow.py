"""
Booking Flow

Step-by-step booking state machine:

    SELECTING_SERVICE -> SELECTING_DATE -> SELECTING_TIME -> SUBMITTING
        -> SUCCESS
        -> (failure) back to SELECTING_TIME with the error kept in ``error``

``previous`` steps back one state. From SUCCESS it returns to SELECTING_TIME
with a reloaded appointment list so another slot can be booked. SUBMITTING
only lasts for the duration of ``submit`` and has no way back.

The list of existing appointments is loaded when the flow opens and is
not refreshed while the user decides, so the final check in ``submit`` can
still be outdated; the backend has the last word.
"""

import logging
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from spa_turnos.api.errors import ApiError
from spa_turnos.config import settings
from spa_turnos.models.schemas import Appointment, Service, User, normalize_date
from spa_turnos.services.appointment import AppointmentService, BookingValidationError
from spa_turnos.services.availability import AvailabilityResult
from spa_turnos.services.slots import is_open_day, minimum_booking_date

logger = logging.getLogger(__name__)


class BookingStep(str, Enum):
    SELECTING_SERVICE = "selecting_service"
    SELECTING_DATE = "selecting_date"
    SELECTING_TIME = "selecting_time"
    SUBMITTING = "submitting"
    SUCCESS = "success"


class BookingFlowError(Exception):
    """Operation not allowed in the current step."""


_BACK = {
    BookingStep.SELECTING_DATE: BookingStep.SELECTING_SERVICE,
    BookingStep.SELECTING_TIME: BookingStep.SELECTING_DATE,
    BookingStep.SUCCESS: BookingStep.SELECTING_TIME,
}


class BookingFlow:
    """
    Booking wizard state for one user.

    Example:
        >>> flow = BookingFlow(appointment_service)
        >>> flow.open()
        >>> flow.select_service(service)
        >>> flow.next()
        >>> flow.select_date(date(2024, 1, 3))
        >>> flow.next()
        >>> flow.select_time("10:00")
        >>> result = flow.submit()
    """

    def __init__(
        self,
        service: AppointmentService,
        closed_weekdays: Optional[Sequence[int]] = None,
    ):
        self.service = service
        self.closed_weekdays = tuple(
            closed_weekdays if closed_weekdays is not None else settings.closed_weekdays
        )
        self._reset()

    def _reset(self) -> None:
        self.step = BookingStep.SELECTING_SERVICE
        self.is_open = False
        self.services: List[Service] = []
        self.professionals: List[User] = []
        self.booked: List[Appointment] = []
        self.selected_service: Optional[Service] = None
        self.selected_professional: Optional[User] = None
        self.selected_date: Optional[date] = None
        self.selected_time: Optional[str] = None
        self.error: Optional[str] = None
        self.result: Optional[Dict[str, Any]] = None

    def open(self) -> None:
        """Start a fresh flow and load catalog, professionals and bookings."""
        self._reset()
        self.is_open = True

        try:
            self.services = self.service.service_repo.list_services()
        except ApiError as e:
            logger.error(f"Could not load services: {e}")
            self.error = "No se pudieron cargar los servicios"

        try:
            self.professionals = self.service.user_repo.list_professionals()
        except ApiError as e:
            logger.error(f"Could not load professionals: {e}")
            self.error = "No se pudieron cargar los profesionales"

        self.booked = self.service.load_booked()

    def close(self) -> None:
        """Discard every selection; late results are no longer applied."""
        self._reset()

    def _require_step(self, *steps: BookingStep) -> None:
        if self.step not in steps:
            raise BookingFlowError(
                f"Operation not allowed while {self.step.value}"
            )

    def select_service(self, service: Service) -> None:
        self._require_step(BookingStep.SELECTING_SERVICE)
        if self.selected_service is None or self.selected_service.id != service.id:
            self.selected_date = None
            self.selected_time = None
        self.selected_service = service
        self.error = None

    def select_professional(self, professional: Optional[User]) -> None:
        self._require_step(BookingStep.SELECTING_SERVICE)
        self.selected_professional = professional
        self.selected_time = None

    def select_date(self, day) -> None:
        """
        Choose the appointment date.

        Raises:
            BookingValidationError: Date before the first bookable day or on a closed weekday
        """
        self._require_step(BookingStep.SELECTING_DATE)
        day = normalize_date(day)
        first_day = minimum_booking_date(self.service.now().date(), self.service.lead_time_hours)
        if day < first_day or not is_open_day(day, self.closed_weekdays):
            self.error = "Seleccione una fecha válida"
            raise BookingValidationError("invalid_date", self.error)
        if day != self.selected_date:
            self.selected_time = None
        self.selected_date = day
        self.error = None

    def select_time(self, slot: str) -> None:
        self._require_step(BookingStep.SELECTING_TIME)
        availability = self.availability()
        if availability is None or slot not in availability.available:
            self.error = "Este horario ya no está disponible. Por favor, selecciona otro."
            raise BookingValidationError("slot_unavailable", self.error)
        self.selected_time = slot
        self.error = None

    def availability(self) -> Optional[AvailabilityResult]:
        if self.selected_service is None or self.selected_date is None:
            return None
        return self.service.check_availability(
            self.selected_service.id,
            self.selected_date,
            self.booked,
            professional_id=self.selected_professional.id if self.selected_professional else None,
        )

    def next(self) -> BookingStep:
        """
        Advance one step.

        Raises:
            BookingValidationError: The current step's selection is missing, or
                the chosen date has no available slot
            BookingFlowError: No forward step from here
        """
        if self.step == BookingStep.SELECTING_SERVICE:
            if self.selected_service is None:
                self.error = "Selecciona un servicio"
                raise BookingValidationError("missing_selection", self.error)
            self.step = BookingStep.SELECTING_DATE
        elif self.step == BookingStep.SELECTING_DATE:
            availability = self.availability()
            if availability is None or availability.is_empty:
                self.error = "Seleccione una fecha válida"
                raise BookingValidationError("no_availability", self.error)
            self.step = BookingStep.SELECTING_TIME
        else:
            raise BookingFlowError(f"No next step from {self.step.value}")

        self.error = None
        return self.step

    def previous(self) -> BookingStep:
        if self.step not in _BACK:
            raise BookingFlowError(f"No previous step from {self.step.value}")
        if self.step == BookingStep.SUCCESS:
            # The slot just taken must show as occupied
            self.booked = self.service.load_booked()
            self.selected_time = None
            self.result = None
        self.step = _BACK[self.step]
        self.error = None
        return self.step

    def submit(self) -> Dict[str, Any]:
        """
        Submit the booking.

        Only one submission may be in flight; a second call while
        ``SUBMITTING`` is refused.
        """
        if self.step == BookingStep.SUBMITTING:
            raise BookingFlowError("A booking submission is already in progress")
        self._require_step(BookingStep.SELECTING_TIME)
        if not self.is_open:
            raise BookingFlowError("Booking flow is not open")

        self.step = BookingStep.SUBMITTING
        result = self.service.submit(
            self.selected_service.id if self.selected_service else None,
            self.selected_date,
            self.selected_time,
            self.service.session.user_id,
            self.booked,
            professional_id=self.selected_professional.id if self.selected_professional else None,
        )

        if not self.is_open:
            # Closed while submitting: nobody is left to show the result.
            return result

        self.result = result
        if result["success"]:
            self.step = BookingStep.SUCCESS
            self.error = None
        else:
            self.step = BookingStep.SELECTING_TIME
            self.error = result["message"]
        return result

    def summary(self) -> Dict[str, Any]:
        """Selections made so far, for the confirmation panel."""
        availability = self.availability()
        return {
            "step": self.step.value,
            "servicio": self.selected_service.nombre if self.selected_service else None,
            "precio": self.selected_service.precio if self.selected_service else None,
            "profesional": (
                self.selected_professional.full_name if self.selected_professional else None
            ),
            "fecha": self.selected_date.isoformat() if self.selected_date else None,
            "hora": self.selected_time,
            "availability": availability.to_dict() if availability else None,
            "error": self.error,
        }
