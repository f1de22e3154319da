"""
Appointment Routes

The client's own appointments grouped by day (cancel, pay a day) and the
agenda of the logged-in professional.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from spa_turnos.api.session import SessionContext
from spa_turnos.models.schemas import AppointmentStatus, CardDetails, PaymentMethod
from spa_turnos.routes.deps import get_appointment_service, require_login, respond
from spa_turnos.services.appointment import AppointmentService

router = APIRouter(prefix="/turnos", tags=["turnos"])
professional_router = APIRouter(prefix="/profesional", tags=["profesional"])


class DayPaymentRequest(BaseModel):
    fecha: date
    metodo: PaymentMethod
    tarjeta: Optional[CardDetails] = None


@router.get("")
def my_appointments(
    request: Request,
    estado: Optional[AppointmentStatus] = Query(None),
    _: SessionContext = Depends(require_login),
    service: AppointmentService = Depends(get_appointment_service),
):
    return respond(request, service.my_appointments(status=estado))


@router.post("/pagar")
def pay_day(
    data: DayPaymentRequest,
    request: Request,
    _: SessionContext = Depends(require_login),
    service: AppointmentService = Depends(get_appointment_service),
):
    return respond(request, service.pay_day(data.fecha, data.metodo, card=data.tarjeta))


@router.post("/{appointment_id}/cancelar")
def cancel_appointment(
    appointment_id: str,
    request: Request,
    session: SessionContext = Depends(require_login),
    service: AppointmentService = Depends(get_appointment_service),
):
    return respond(request, service.cancel(appointment_id, admin=session.is_admin))


@professional_router.get("/turnos")
def professional_agenda(
    request: Request,
    fecha: Optional[date] = Query(None),
    servicio: Optional[str] = Query(None),
    session: SessionContext = Depends(require_login),
    service: AppointmentService = Depends(get_appointment_service),
):
    if not session.is_professional:
        return respond(request, {
            "success": False,
            "message": "Acceso restringido a profesionales.",
            "error": "forbidden",
        })
    return respond(request, service.professional_agenda(session.user_id, day=fecha, service_id=servicio))
