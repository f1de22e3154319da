"""
Shared fixtures: a scripted stand-in for ``requests.Session`` returning real
``requests.Response`` objects, plus model factories.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest
import requests

from spa_turnos.api.http import ApiClient
from spa_turnos.api.session import SessionContext
from spa_turnos.models.schemas import Appointment, Service, User

# Monday 2024-01-01 10:00
NOW = datetime(2024, 1, 1, 10, 0)


def make_response(
    status: int = 200,
    payload: Any = None,
    content_type: str = "application/json",
    text: Optional[str] = None,
) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    if text is not None:
        response._content = text.encode("utf-8")
    elif payload is not None:
        response._content = json.dumps(payload).encode("utf-8")
    else:
        response._content = b""
    response.headers["Content-Type"] = content_type
    response.encoding = "utf-8"
    return response


def html_response(status: int = 200) -> requests.Response:
    return make_response(status, text="<html><body>Starting...</body></html>", content_type="text/html")


@dataclass
class Call:
    method: str
    url: str
    params: Optional[Dict[str, Any]]
    json: Any
    headers: Dict[str, str]
    timeout: Optional[float]


class FakeHttp:
    """
    Scripted HTTP session.

    Each (method, url) route holds a queue of responses or exceptions; the
    last entry is repeated once the queue is down to one item.
    """

    def __init__(self):
        self.routes: Dict[tuple, List[Any]] = {}
        self.calls: List[Call] = []

    def add(self, method: str, url: str, *responses: Any) -> "FakeHttp":
        self.routes.setdefault((method, url), []).extend(responses)
        return self

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        self.calls.append(Call(method, url, params, json, dict(headers or {}), timeout))
        queue = self.routes.get((method, url))
        if not queue:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = queue[0] if len(queue) == 1 else queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def calls_to(self, method: str, url: str) -> List[Call]:
        return [c for c in self.calls if c.method == method and c.url == url]


def make_user(user_id: str = "u1", role: str = "cliente", **fields) -> User:
    data = {
        "_id": user_id,
        "first_name": fields.pop("first_name", "Ana"),
        "last_name": fields.pop("last_name", "García"),
        "email": fields.pop("email", f"{user_id}@example.com"),
        "role": role,
        **fields,
    }
    return User.model_validate(data)


def appointment_data(
    appointment_id: str,
    fecha: str,
    hora: str,
    servicio: str = "s1",
    estado: str = "pendiente",
    precio: Optional[float] = None,
    profesional: Any = None,
    cliente: Any = "u1",
) -> Dict[str, Any]:
    """Raw backend JSON for an appointment; ``precio`` populates the service."""
    service: Any = servicio
    if precio is not None:
        service = {"_id": servicio, "nombre": f"Servicio {servicio}", "tipo": "Masajes", "precio": precio}
    return {
        "_id": appointment_id,
        "cliente": cliente,
        "servicio": service,
        "profesional": profesional,
        "fecha": fecha,
        "hora": hora,
        "estado": estado,
    }


def make_appointment(appointment_id: str, fecha: str, hora: str, **kwargs) -> Appointment:
    return Appointment.model_validate(appointment_data(appointment_id, fecha, hora, **kwargs))


def make_service(service_id: str = "s1", precio: float = 100.0, tipo: str = "Masajes") -> Service:
    return Service.model_validate(
        {"_id": service_id, "nombre": f"Servicio {service_id}", "tipo": tipo, "precio": precio}
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def client_user() -> User:
    return make_user("u1")


@pytest.fixture
def session(client_user) -> SessionContext:
    return SessionContext(token="tok-123", user=client_user)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def api_client(session, http, sleeps) -> ApiClient:
    return ApiClient(session, http=http, sleep=sleeps.append)
