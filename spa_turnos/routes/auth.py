"""
Authentication Routes

Login, registration, logout and profile management. The session token and
user profile are kept in the ``token`` and ``user`` cookies.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response

from spa_turnos.api.errors import ApiError
from spa_turnos.api.http import ApiClient
from spa_turnos.api.repository import UserRepository
from spa_turnos.api.session import SessionContext
from spa_turnos.config import settings
from spa_turnos.models.schemas import (
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    RegisterRequest,
)
from spa_turnos.routes.deps import get_api_client, require_login, respond
from spa_turnos.services.appointment import error_result

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _store_session(response: Response, session: SessionContext) -> None:
    cookies = session.to_cookies(settings.session_cookie_token, settings.session_cookie_user)
    for key, value in cookies.items():
        response.set_cookie(key, value, httponly=True, samesite="lax")


@router.post("/login")
def login(
    credentials: LoginRequest,
    request: Request,
    response: Response,
    client: ApiClient = Depends(get_api_client),
):
    try:
        token, user = UserRepository(client).login(credentials)
    except ApiError as e:
        logger.warning(f"Login failed for {credentials.email}: {e}")
        result = error_result(e, "Credenciales inválidas")
        if result["error"] == "unauthorized":
            # Wrong credentials, not an expired session
            result["message"] = "Credenciales inválidas"
        if result["error"] in ("unauthorized", "server_rejected"):
            result["error"] = "invalid_credentials"
        return respond(request, result)

    client.session.login(token, user)
    _store_session(response, client.session)
    return respond(
        request,
        {"success": True, "message": f"¡Bienvenido/a {user.first_name}!", "user": user},
    )


@router.post("/register", status_code=201)
def register(
    data: RegisterRequest,
    request: Request,
    client: ApiClient = Depends(get_api_client),
):
    try:
        UserRepository(client).register(data)
    except ApiError as e:
        logger.warning(f"Registration failed for {data.email}: {e}")
        return respond(request, error_result(e, "Error al registrarse"))
    return respond(request, {"success": True, "message": "Registro exitoso. Ya podés iniciar sesión."})


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.session_cookie_token)
    response.delete_cookie(settings.session_cookie_user)
    return {"success": True, "message": "Sesión cerrada"}


@router.get("/me")
def me(request: Request, session: SessionContext = Depends(require_login)):
    return respond(request, {"success": True, "message": "", "user": session.user})


@router.put("/profile")
def update_profile(
    data: ProfileUpdate,
    request: Request,
    response: Response,
    _: SessionContext = Depends(require_login),
    client: ApiClient = Depends(get_api_client),
):
    try:
        user = UserRepository(client).update_profile(data)
    except ApiError as e:
        return respond(request, error_result(e, "Error al actualizar el perfil"))

    client.session.user = user
    _store_session(response, client.session)
    return respond(request, {"success": True, "message": "Perfil actualizado", "user": user})


@router.put("/password")
def change_password(
    data: PasswordChange,
    request: Request,
    _: SessionContext = Depends(require_login),
    client: ApiClient = Depends(get_api_client),
):
    try:
        UserRepository(client).change_password(data)
    except ApiError as e:
        return respond(request, error_result(e, "Error al cambiar la contraseña"))
    return respond(request, {"success": True, "message": "Contraseña actualizada"})
