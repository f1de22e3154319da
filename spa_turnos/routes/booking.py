"""
Booking Routes

Options and availability for the booking wizard, and booking submission.
Submission replays the wizard steps server-side so the same rules apply
whether the client walked through the steps or not.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, field_validator

from spa_turnos.api.session import SessionContext
from spa_turnos.config import settings
from spa_turnos.models.schemas import normalize_time
from spa_turnos.routes.deps import get_appointment_service, require_login, respond
from spa_turnos.services.appointment import AppointmentService, BookingValidationError
from spa_turnos.services.booking_flow import BookingFlow, BookingFlowError
from spa_turnos.services.slots import is_open_day, minimum_booking_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reservas", tags=["reservas"])


class BookingRequest(BaseModel):
    servicio: str
    fecha: date
    hora: str
    profesional: Optional[str] = None

    @field_validator("hora")
    @classmethod
    def validate_hora(cls, v: str) -> str:
        return normalize_time(v)


def _invalid(code: str, message: str):
    return {"success": False, "message": message, "error": code}


@router.get("/opciones")
def booking_options(
    request: Request,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Services, professionals, daily slots and the first bookable date."""
    flow = BookingFlow(service)
    flow.open()
    if flow.error and not flow.services:
        return respond(request, _invalid("server_error", flow.error))

    return respond(request, {
        "success": True,
        "message": flow.error or "",
        "services": flow.services,
        "professionals": flow.professionals,
        "slots": list(service.slots),
        "min_date": minimum_booking_date(
            service.now().date(), service.lead_time_hours
        ).isoformat(),
        "closed_weekdays": list(flow.closed_weekdays),
    })


@router.get("/disponibilidad")
def availability(
    request: Request,
    servicio: str = Query(..., min_length=1),
    fecha: date = Query(...),
    profesional: Optional[str] = Query(None),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Partition of the day's slots into available, too-soon and occupied."""
    now = service.now()
    if not is_open_day(fecha, settings.closed_weekdays):
        return respond(request, _invalid("invalid_date", "Seleccione una fecha válida"))

    result = service.check_availability(
        servicio, fecha, service.load_booked(), professional_id=profesional, now=now
    )
    return respond(request, {
        "success": True,
        "message": "No hay horarios disponibles para esta fecha" if result.is_empty else "",
        "availability": result,
    })


@router.post("", status_code=201)
def create_booking(
    data: BookingRequest,
    request: Request,
    _: SessionContext = Depends(require_login),
    service: AppointmentService = Depends(get_appointment_service),
):
    flow = BookingFlow(service)
    flow.open()

    selected = next((s for s in flow.services if s.id == data.servicio), None)
    if selected is None and flow.error and not flow.services:
        return respond(request, _invalid("network_error", flow.error))
    if selected is None:
        return respond(request, _invalid("service_not_found", "El servicio seleccionado no existe."))

    professional = None
    if data.profesional:
        professional = next((p for p in flow.professionals if p.id == data.profesional), None)
        if professional is None and flow.error and not flow.professionals:
            return respond(request, _invalid("network_error", flow.error))
        if professional is None:
            return respond(
                request,
                _invalid("professional_not_found", "El profesional seleccionado no existe."),
            )

    try:
        flow.select_service(selected)
        flow.select_professional(professional)
        flow.next()
        flow.select_date(data.fecha)
        flow.next()
        flow.select_time(data.hora)
        result = flow.submit()
    except BookingValidationError as e:
        logger.info(f"Booking refused ({e.code}) for {data.servicio} {data.fecha} {data.hora}")
        result = _invalid(e.code, e.message)
    except BookingFlowError as e:
        logger.error(f"Booking flow error: {e}")
        result = _invalid("invalid_selection", "No se pudo completar la reserva.")
    finally:
        flow.close()

    return respond(request, result)
