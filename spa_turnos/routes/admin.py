"""
Admin Routes

Back-office management of users, services, appointments and payments.
Every endpoint requires a logged-in administrator (403 otherwise).
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from spa_turnos.api.session import SessionContext
from spa_turnos.models.schemas import (
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
    ServiceCreate,
    ServiceUpdate,
    UserUpdate,
)
from spa_turnos.routes.deps import get_admin_service, require_login, respond
from spa_turnos.services.admin import GROUP_BY_PROFESSIONAL, GROUP_BY_SERVICE, AdminService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_login)],
)


# Users

@router.get("/usuarios")
def list_users(request: Request, admin: AdminService = Depends(get_admin_service)):
    return respond(request, admin.list_users())


@router.put("/usuarios/{user_id}")
def update_user(
    user_id: str,
    data: UserUpdate,
    request: Request,
    admin: AdminService = Depends(get_admin_service),
):
    return respond(request, admin.update_user(user_id, data))


@router.delete("/usuarios/{user_id}")
def delete_user(user_id: str, request: Request, admin: AdminService = Depends(get_admin_service)):
    return respond(request, admin.delete_user(user_id))


@router.get("/profesionales")
def list_professionals(request: Request, admin: AdminService = Depends(get_admin_service)):
    return respond(request, admin.list_professionals())


# Services

@router.post("/servicios", status_code=201)
def create_service(
    data: ServiceCreate,
    request: Request,
    admin: AdminService = Depends(get_admin_service),
):
    return respond(request, admin.create_service(data))


@router.put("/servicios/{service_id}")
def update_service(
    service_id: str,
    data: ServiceUpdate,
    request: Request,
    admin: AdminService = Depends(get_admin_service),
):
    return respond(request, admin.update_service(service_id, data))


@router.delete("/servicios/{service_id}")
def delete_service(
    service_id: str,
    request: Request,
    admin: AdminService = Depends(get_admin_service),
):
    return respond(request, admin.delete_service(service_id))


# Appointments

@router.get("/turnos")
def list_appointments(
    request: Request,
    estado: Optional[AppointmentStatus] = Query(None),
    admin: AdminService = Depends(get_admin_service),
):
    return respond(request, admin.list_appointments(estado))


@router.post("/turnos", status_code=201)
def create_appointment(
    data: AppointmentCreate,
    request: Request,
    admin: AdminService = Depends(get_admin_service),
):
    return respond(request, admin.create_appointment(data))


@router.put("/turnos/{appointment_id}")
def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    request: Request,
    admin: AdminService = Depends(get_admin_service),
):
    return respond(request, admin.update_appointment(appointment_id, data))


@router.delete("/turnos/{appointment_id}")
def delete_appointment(
    appointment_id: str,
    request: Request,
    admin: AdminService = Depends(get_admin_service),
):
    return respond(request, admin.delete_appointment(appointment_id))


# Payments

@router.get("/pagos")
def payments_report(
    request: Request,
    desde: Optional[date] = Query(None),
    hasta: Optional[date] = Query(None),
    agrupar: str = Query(GROUP_BY_SERVICE, pattern=f"^({GROUP_BY_SERVICE}|{GROUP_BY_PROFESSIONAL})$"),
    admin: AdminService = Depends(get_admin_service),
):
    return respond(request, admin.payments_report(desde, hasta, agrupar))
