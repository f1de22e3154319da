"""
Pydantic Schemas

Data validation and serialization schemas for the spa REST backend.

The backend is inconsistent about two things, both resolved here once so the
rest of the code never branches on them:

- dates come back as ISO datetimes, date-only strings or native values
  (``normalize_date``);
- reference fields come back either as bare ids or as populated objects
  (``Unpopulated`` / ``Populated``).
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    InstanceOf,
    field_validator,
    model_validator,
)

T = TypeVar("T")

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states, named as the backend stores them."""

    PENDING = "pendiente"
    CONFIRMED = "confirmado"
    CANCELLED = "cancelado"
    COMPLETED = "realizado"


class UserRole(str, Enum):
    CLIENT = "cliente"
    ADMIN = "admin"
    PROFESSIONAL = "profesional"


class PaymentMethod(str, Enum):
    CASH = "efectivo"
    CARD = "tarjeta"


def normalize_date(value: Any) -> date:
    """
    Convert any backend date representation into a ``date``.

    Args:
        value: ISO datetime string, date-only string, ``datetime`` or ``date``

    Returns:
        The calendar date. The time component of a datetime string is dropped
        as-is, without timezone conversion.

    Raises:
        ValueError: If the value cannot be read as a date

    Example:
        >>> normalize_date("2024-01-03T00:00:00.000Z")
        datetime.date(2024, 1, 3)
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        for separator in ("T", " "):
            if separator in text:
                text = text.split(separator, 1)[0]
                break
        try:
            return date.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"Invalid date value: {value!r}") from e
    raise ValueError(f"Unsupported date value: {value!r}")


def normalize_time(value: Any) -> str:
    """Return a zero-padded ``HH:MM`` string ("9:00" -> "09:00")."""
    if not isinstance(value, str):
        raise ValueError(f"Invalid time value: {value!r}")
    match = _TIME_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time value: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time value: {value!r}")
    return f"{hour:02d}:{minute:02d}"


@dataclass(frozen=True)
class Unpopulated:
    """Reference returned by the backend as a bare id."""

    id: str


@dataclass(frozen=True)
class Populated(Generic[T]):
    """Reference returned by the backend as a full object."""

    value: T

    @property
    def id(self) -> str:
        return self.value.id


Ref = Union[Unpopulated, Populated]

# Model field type: refs are built by ``resolve_ref`` and only type-checked by pydantic.
RefField = Union[InstanceOf[Unpopulated], InstanceOf[Populated]]


def resolve_ref(raw: Any, model: type) -> Optional[Ref]:
    """
    Resolve a raw reference field into a ``Ref``.

    Args:
        raw: Bare id string, dict with ``_id``, model instance or existing ``Ref``
        model: Pydantic model used for populated objects

    Returns:
        ``Unpopulated``/``Populated`` or None when the field is empty
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, (Unpopulated, Populated)):
        return raw
    if isinstance(raw, str):
        return Unpopulated(raw)
    if isinstance(raw, model):
        return Populated(raw)
    if isinstance(raw, dict):
        return Populated(model.model_validate(raw))
    raise ValueError(f"Unsupported reference value: {raw!r}")


def ref_id(ref: Optional[Ref]) -> Optional[str]:
    return ref.id if ref is not None else None


def raw_id(raw: Any) -> Optional[str]:
    """Id of a raw reference without building the populated object."""
    if isinstance(raw, dict):
        return raw.get("_id") or raw.get("id")
    if isinstance(raw, str):
        return raw or None
    return getattr(raw, "id", None)


class BackendModel(BaseModel):
    """Base for objects owned by the backend (``_id`` primary key)."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        arbitrary_types_allowed=True,
    )

    id: str = Field(alias="_id")


class User(BackendModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    role: UserRole = UserRole.CLIENT
    is_admin: bool = False

    @field_validator("role", mode="before")
    @classmethod
    def default_role(cls, v: Any) -> Any:
        return v or UserRole.CLIENT

    @property
    def is_admin_user(self) -> bool:
        return self.is_admin or self.role == UserRole.ADMIN

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Service(BackendModel):
    model_config = ConfigDict(frozen=True)

    nombre: str
    descripcion: str = ""
    tipo: str = ""
    precio: float = Field(default=0.0, ge=0)
    image: Optional[str] = Field(default=None, alias="Image")


class Appointment(BackendModel):
    """A booked appointment ("turno")."""

    cliente: Optional[RefField] = None
    servicio: RefField
    profesional: Optional[RefField] = None
    fecha: date
    hora: str
    estado: AppointmentStatus = AppointmentStatus.PENDING

    @field_validator("cliente", "profesional", mode="before")
    @classmethod
    def parse_user_ref(cls, v: Any) -> Optional[Ref]:
        return resolve_ref(v, User)

    @field_validator("servicio", mode="before")
    @classmethod
    def parse_service_ref(cls, v: Any) -> Optional[Ref]:
        return resolve_ref(v, Service)

    @field_validator("fecha", mode="before")
    @classmethod
    def parse_fecha(cls, v: Any) -> date:
        return normalize_date(v)

    @field_validator("hora", mode="before")
    @classmethod
    def parse_hora(cls, v: Any) -> str:
        return normalize_time(v)

    @property
    def service_id(self) -> str:
        return self.servicio.id

    @property
    def client_id(self) -> Optional[str]:
        return ref_id(self.cliente)

    @property
    def professional_id(self) -> Optional[str]:
        return ref_id(self.profesional)

    @property
    def service_price(self) -> Optional[float]:
        if isinstance(self.servicio, Populated):
            return self.servicio.value.precio
        return None

    @property
    def date_key(self) -> str:
        return self.fecha.isoformat()

    @property
    def starts_at(self) -> datetime:
        hour, minute = (int(part) for part in self.hora.split(":"))
        return datetime.combine(self.fecha, time(hour, minute))

    @property
    def is_active(self) -> bool:
        return self.estado != AppointmentStatus.CANCELLED

    def to_view(self) -> Dict[str, Any]:
        """Flat JSON-ready representation for the HTTP layer."""
        view: Dict[str, Any] = {
            "id": self.id,
            "cliente": self.client_id,
            "servicio": self.service_id,
            "profesional": self.professional_id,
            "fecha": self.date_key,
            "hora": self.hora,
            "estado": self.estado.value,
        }
        if isinstance(self.servicio, Populated):
            view["servicio_nombre"] = self.servicio.value.nombre
            view["precio"] = self.servicio.value.precio
        if isinstance(self.profesional, Populated):
            view["profesional_nombre"] = self.profesional.value.full_name
        if isinstance(self.cliente, Populated):
            view["cliente_nombre"] = self.cliente.value.full_name
        return view


class Payment(BackendModel):
    turnos: List[str] = Field(default_factory=list)
    amount: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(alias="createdAt")
    cliente: Optional[RefField] = None

    @field_validator("turnos", mode="before")
    @classmethod
    def parse_turnos(cls, v: Any) -> List[str]:
        return [ref for ref in (raw_id(item) for item in v or []) if ref]

    @field_validator("cliente", mode="before")
    @classmethod
    def parse_cliente(cls, v: Any) -> Optional[Ref]:
        return resolve_ref(v, User)

    @property
    def appointment_ids(self) -> List[str]:
        return list(self.turnos)

    def to_view(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "turnos": self.appointment_ids,
            "amount": self.amount,
            "created_at": self.created_at.isoformat(),
            "cliente": ref_id(self.cliente),
        }


# Request bodies

class AppointmentCreate(BaseModel):
    cliente: str
    servicio: str
    profesional: Optional[str] = None
    fecha: date
    hora: str

    @field_validator("hora", mode="before")
    @classmethod
    def parse_hora(cls, v: Any) -> str:
        return normalize_time(v)

    def to_payload(self) -> dict:
        payload = self.model_dump(exclude_none=True)
        payload["fecha"] = self.fecha.isoformat()
        return payload


class AppointmentUpdate(BaseModel):
    cliente: Optional[str] = None
    servicio: Optional[str] = None
    profesional: Optional[str] = None
    fecha: Optional[date] = None
    hora: Optional[str] = None
    estado: Optional[AppointmentStatus] = None

    @field_validator("hora", mode="before")
    @classmethod
    def parse_hora(cls, v: Any) -> Optional[str]:
        return normalize_time(v) if v is not None else None

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class PaymentCreate(BaseModel):
    turnos: List[str] = Field(min_length=1)
    amount: float = Field(ge=0)
    cliente: str


class ServiceCreate(BaseModel):
    nombre: str = Field(min_length=1)
    descripcion: str = ""
    tipo: str = ""
    precio: float = Field(ge=0)
    image: Optional[str] = Field(default=None, serialization_alias="Image")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ServiceUpdate(BaseModel):
    nombre: Optional[str] = None
    descripcion: Optional[str] = None
    tipo: Optional[str] = None
    precio: Optional[float] = Field(default=None, ge=0)
    image: Optional[str] = Field(default=None, serialization_alias="Image")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class UserUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None
    is_admin: Optional[bool] = None
    password: Optional[str] = None

    @model_validator(mode="after")
    def sync_admin_flag(self) -> "UserUpdate":
        if self.role is not None and self.is_admin is None:
            self.is_admin = self.role == UserRole.ADMIN
        return self

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class LoginRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Las contraseñas no coinciden")
        return self

    def to_payload(self) -> dict:
        return self.model_dump(exclude={"confirm_password"})


class ProfileUpdate(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(min_length=3)


class PasswordChange(BaseModel):
    current_password: str = Field(alias="currentPassword", min_length=1)
    new_password: str = Field(alias="newPassword", min_length=6)

    model_config = ConfigDict(populate_by_name=True)


class CardDetails(BaseModel):
    """Debit/credit card data entered on the card payment path."""

    holder: str = Field(min_length=1)
    number: str
    expiry: str
    cvv: str

    @field_validator("number")
    @classmethod
    def validate_number(cls, v: str) -> str:
        digits = re.sub(r"\s+", "", v)
        if not re.fullmatch(r"[0-9]{16}", digits):
            raise ValueError("El número de tarjeta debe tener 16 dígitos")
        return digits

    @field_validator("expiry")
    @classmethod
    def validate_expiry(cls, v: str) -> str:
        if not re.fullmatch(r"(0[1-9]|1[0-2])/[0-9]{2}", v):
            raise ValueError("El vencimiento debe tener el formato MM/AA")
        return v

    @field_validator("cvv")
    @classmethod
    def validate_cvv(cls, v: str) -> str:
        if not re.fullmatch(r"[0-9]{3}", v):
            raise ValueError("El CVV debe tener 3 dígitos")
        return v

    @property
    def masked_number(self) -> str:
        return f"**** **** **** {self.number[-4:]}"
