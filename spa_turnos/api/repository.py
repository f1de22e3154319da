"""
Remote Repository Layer

Implements the repository pattern over the spa REST backend.
JSON payloads are turned into models here, once, so callers never deal with
raw dictionaries, mixed date formats or half-populated references.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from spa_turnos.api.errors import ApiError
from spa_turnos.api.http import AUTH_BEARER, AUTH_QUERY, ApiClient
from spa_turnos.config import settings
from spa_turnos.models.schemas import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
    LoginRequest,
    PasswordChange,
    Payment,
    PaymentCreate,
    Populated,
    ProfileUpdate,
    RegisterRequest,
    Service,
    ServiceCreate,
    ServiceUpdate,
    Unpopulated,
    User,
    UserRole,
    UserUpdate,
    raw_id,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class BaseRepository:
    """Base repository with common parsing helpers."""

    def __init__(self, client: ApiClient, base_url: str):
        """
        Initialize repository.

        Args:
            client: API client bound to the current session
            base_url: Resource endpoint URL
        """
        self.client = client
        self.base_url = base_url

    def url(self, *parts: str) -> str:
        return "/".join([self.base_url, *parts])

    def parse_list(self, payload: Any, model: Type[M]) -> List[M]:
        """
        Parse a JSON array into models.

        Items that do not validate are skipped and logged, since one malformed
        record should not hide the rest of the list.

        Raises:
            ApiError: If the payload is not a list
        """
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise ApiError("Respuesta inesperada del servidor")

        items: List[M] = []
        for raw in payload:
            try:
                items.append(model.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed {model.__name__} {raw_id(raw)!r}: "
                    f"{e.error_count()} validation error(s)"
                )
        return items

    def parse_one(self, payload: Any, model: Type[M]) -> M:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Malformed {model.__name__} in response: {e}")
            raise ApiError("Respuesta inesperada del servidor") from e


class ServiceRepository(BaseRepository):
    """Service catalog endpoints."""

    def __init__(self, client: ApiClient, base_url: Optional[str] = None):
        super().__init__(client, base_url or settings.services_url)

    def list_services(self) -> List[Service]:
        return self.parse_list(self.client.get(self.base_url), Service)

    def create_service(self, data: ServiceCreate) -> Service:
        payload = self.client.post(self.url("create"), json=data.to_payload(), auth=AUTH_QUERY)
        service = self.parse_one(payload, Service)
        logger.info(f"Service created: {service.id} ({service.nombre})")
        return service

    def update_service(self, service_id: str, data: ServiceUpdate) -> Service:
        payload = self.client.put(
            self.url("edit", service_id), json=data.to_payload(), auth=AUTH_QUERY
        )
        logger.info(f"Service updated: {service_id}")
        return self.parse_one(payload, Service)

    def delete_service(self, service_id: str) -> None:
        self.client.delete(self.url("delete", service_id), auth=AUTH_QUERY)
        logger.info(f"Service deleted: {service_id}")


class AppointmentRepository(BaseRepository):
    """Appointment ("turno") endpoints."""

    def __init__(self, client: ApiClient, base_url: Optional[str] = None):
        super().__init__(client, base_url or settings.appointments_url)

    def list_appointments(self) -> List[Appointment]:
        """Appointments visible to the session principal, cancelled ones included."""
        return self.parse_list(self.client.get(self.base_url, auth=AUTH_QUERY), Appointment)

    def list_for_user(self, user_id: str) -> List[Appointment]:
        payload = self.client.get(self.url("user", user_id), auth=AUTH_BEARER)
        return self.parse_list(payload, Appointment)

    def create_appointment(self, data: AppointmentCreate) -> str:
        """
        Create an appointment.

        Returns:
            The id of the created appointment

        Raises:
            ApiError: If the backend accepted the request but returned no id
        """
        payload = self.client.post(self.url("create"), json=data.to_payload(), auth=AUTH_QUERY)
        appointment_id = raw_id(payload)
        if not appointment_id and isinstance(payload, dict):
            appointment_id = raw_id(payload.get("turno"))
        if not appointment_id:
            raise ApiError("El servidor no devolvió el turno creado")
        logger.info(
            f"Appointment {appointment_id} created for {data.cliente} "
            f"on {data.fecha.isoformat()} at {data.hora}"
        )
        return appointment_id

    def update_appointment(self, appointment_id: str, data: AppointmentUpdate) -> Any:
        payload = self.client.put(
            self.url("edit", appointment_id), json=data.to_payload(), auth=AUTH_BEARER
        )
        logger.info(f"Appointment {appointment_id} updated: {data.to_payload()}")
        return payload

    def update_status(self, appointment_id: str, status: AppointmentStatus) -> Any:
        return self.update_appointment(appointment_id, AppointmentUpdate(estado=status))

    def delete_appointment(self, appointment_id: str) -> None:
        self.client.delete(self.url("delete", appointment_id), auth=AUTH_BEARER)
        logger.info(f"Appointment {appointment_id} deleted")


class PaymentRepository(BaseRepository):
    """Payment endpoints."""

    def __init__(self, client: ApiClient, base_url: Optional[str] = None):
        super().__init__(client, base_url or settings.payments_url)

    def list_payments(self) -> List[Payment]:
        return self.parse_list(self.client.get(self.base_url, auth=AUTH_QUERY), Payment)

    def create_payment(self, data: PaymentCreate) -> Payment:
        payload = self.client.post(self.url("create"), json=data.model_dump(), auth=AUTH_QUERY)
        payment = self.parse_one(payload, Payment)
        logger.info(
            f"Payment {payment.id} created for {data.cliente}: "
            f"{len(data.turnos)} appointment(s), amount {data.amount}"
        )
        return payment


class UserRepository(BaseRepository):
    """User, authentication and profile endpoints."""

    def __init__(self, client: ApiClient, base_url: Optional[str] = None):
        super().__init__(client, base_url or settings.users_url)

    def list_users(self, authenticated: bool = False) -> List[User]:
        payload = self.client.get(self.base_url, auth=AUTH_QUERY if authenticated else None)
        return self.parse_list(payload, User)

    def list_professionals(self) -> List[User]:
        return [u for u in self.list_users() if u.role == UserRole.PROFESSIONAL]

    def get_current_user(self) -> User:
        return self.parse_one(self.client.get(self.url("me"), auth=AUTH_BEARER), User)

    def update_user(self, user_id: str, data: UserUpdate) -> Any:
        payload = self.client.put(self.url(user_id), json=data.to_payload(), auth=AUTH_QUERY)
        logger.info(f"User {user_id} updated")
        return payload

    def delete_user(self, user_id: str) -> None:
        self.client.delete(self.url(user_id), auth=AUTH_QUERY)
        logger.info(f"User {user_id} deleted")

    def login(self, credentials: LoginRequest) -> Tuple[str, User]:
        """
        Authenticate against the backend.

        Returns:
            Tuple of (token, user)
        """
        payload = self.client.post(self.url("login"), json=credentials.model_dump())
        if not isinstance(payload, dict) or not payload.get("token"):
            raise ApiError("Respuesta de inicio de sesión inválida")
        user = self.parse_one(payload.get("user"), User)
        return payload["token"], user

    def register(self, data: RegisterRequest) -> Any:
        payload = self.client.post(self.url("register"), json=data.to_payload())
        logger.info(f"User registered: {data.email}")
        return payload

    def update_profile(self, data: ProfileUpdate) -> User:
        payload = self.client.put(self.url("profile"), json=data.model_dump(), auth=AUTH_BEARER)
        if isinstance(payload, dict) and isinstance(payload.get("user"), dict):
            payload = payload["user"]
        return self.parse_one(payload, User)

    def change_password(self, data: PasswordChange) -> None:
        self.client.put(
            self.url("password"),
            json=data.model_dump(by_alias=True),
            auth=AUTH_BEARER,
        )


def enrich_professionals(
    appointments: Iterable[Appointment],
    users: Iterable[User],
) -> List[Appointment]:
    """
    Replace bare professional ids with populated users where known.

    Returns new appointment objects; the inputs are left untouched.
    """
    by_id: Dict[str, User] = {u.id: u for u in users}
    enriched: List[Appointment] = []
    for appointment in appointments:
        ref = appointment.profesional
        if isinstance(ref, Unpopulated) and ref.id in by_id:
            appointment = appointment.model_copy(update={"profesional": Populated(by_id[ref.id])})
        enriched.append(appointment)
    return enriched
