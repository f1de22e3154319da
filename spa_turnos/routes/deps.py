"""
Route Dependencies

Per-request session, API client and service construction, plus the helpers
that turn service result dictionaries into HTTP responses.
"""

import logging
from dataclasses import is_dataclass
from typing import Any, Dict, List

from fastapi import Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from spa_turnos.api.http import ApiClient
from spa_turnos.api.session import SessionContext
from spa_turnos.config import settings
from spa_turnos.models.schemas import Appointment, Payment
from spa_turnos.services.admin import AdminService
from spa_turnos.services.aggregation import DaySummary
from spa_turnos.services.appointment import AppointmentService
from spa_turnos.services.availability import AvailabilityResult
from spa_turnos.services.catalog import CatalogService

logger = logging.getLogger(__name__)

LOGIN_REDIRECT = "/login"

# Result error codes mapped to HTTP status codes
ERROR_STATUS = {
    "unauthorized": 401,
    "invalid_credentials": 401,
    "forbidden": 403,
    "appointment_not_found": 404,
    "service_not_found": 404,
    "professional_not_found": 404,
    "slot_occupied": 409,
    "slot_unavailable": 409,
    "no_availability": 409,
    "not_cancellable": 409,
    "nothing_to_pay": 409,
    "server_rejected": 409,
    "timeout": 504,
    "network_error": 503,
    "server_error": 502,
}


class SessionExpired(Exception):
    """Raised by routes when the backend rejected the session token."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


async def session_expired_handler(request: Request, exc: SessionExpired) -> JSONResponse:
    """Clear the stored session and tell the browser to go to the login page."""
    response = JSONResponse(
        status_code=401,
        content={"detail": exc.message, "redirect": LOGIN_REDIRECT},
    )
    response.delete_cookie(settings.session_cookie_token)
    response.delete_cookie(settings.session_cookie_user)
    return response


def get_session(request: Request) -> SessionContext:
    """
    Build the session from the request.

    The token comes from the ``token`` cookie or an ``Authorization: Bearer``
    header; the user profile from the ``user`` cookie.
    """
    session = SessionContext.from_cookies(
        request.cookies,
        token_key=settings.session_cookie_token,
        user_key=settings.session_cookie_user,
        dedupe_seconds=settings.unauthorized_dedupe_seconds,
    )
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        session.token = authorization[7:].strip() or session.token
    return session


def get_api_client(
    request: Request,
    session: SessionContext = Depends(get_session),
) -> ApiClient:
    notices: List[str] = []
    request.state.notices = notices

    def on_retry(attempt: int, delay: float, message: str) -> None:
        logger.warning(f"{message} (intento {attempt}, espera {delay:g}s)")
        notices.append(f"{message} en {delay:g} segundos...")

    return ApiClient(session, on_retry=on_retry)


def get_appointment_service(client: ApiClient = Depends(get_api_client)) -> AppointmentService:
    return AppointmentService(client)


def get_catalog_service(client: ApiClient = Depends(get_api_client)) -> CatalogService:
    return CatalogService(client)


def get_admin_service(client: ApiClient = Depends(get_api_client)) -> AdminService:
    return AdminService(client)


def require_login(session: SessionContext = Depends(get_session)) -> SessionContext:
    if not session.is_authenticated:
        raise SessionExpired("Debés iniciar sesión para continuar.")
    return session


def to_json(value: Any) -> Any:
    """Recursively convert models and view objects into JSON-ready data."""
    if isinstance(value, (Appointment, Payment)):
        return value.to_view()
    if isinstance(value, (DaySummary, AvailabilityResult)):
        return value.to_dict()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {key: to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(item) for item in value]
    if is_dataclass(value) and hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def respond(request: Request, result: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a successful result as JSON or raise the matching HTTP error.

    Raises:
        SessionExpired: For ``unauthorized`` results
        HTTPException: For any other failed result
    """
    notices = getattr(request.state, "notices", None)
    if not result.get("success"):
        code = result.get("error", "bad_request")
        if code == "unauthorized":
            raise SessionExpired(result.get("message", ""))
        raise HTTPException(
            status_code=ERROR_STATUS.get(code, 400),
            detail={"message": result.get("message"), "error": code, "notices": notices or []},
        )

    body = to_json(result)
    if notices:
        body["notices"] = list(notices)
    return body
