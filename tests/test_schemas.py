"""
Unit tests for backend payload parsing.
"""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from spa_turnos.models.schemas import (
    Appointment,
    AppointmentCreate,
    CardDetails,
    Payment,
    Populated,
    RegisterRequest,
    Service,
    ServiceCreate,
    Unpopulated,
    User,
    UserRole,
    UserUpdate,
    normalize_date,
    normalize_time,
)


class TestNormalizeDate:
    @pytest.mark.parametrize(
        "value",
        [
            "2024-01-03",
            "2024-01-03T00:00:00.000Z",
            "2024-01-03T23:30:00+03:00",
            "2024-01-03 08:00:00",
            datetime(2024, 1, 3, 15, 0),
            date(2024, 1, 3),
        ],
    )
    def test_forms(self, value):
        assert normalize_date(value) == date(2024, 1, 3)

    @pytest.mark.parametrize("value", ["03/01/2024", "", None, 20240103])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            normalize_date(value)


class TestNormalizeTime:
    def test_padding(self):
        assert normalize_time("9:00") == "09:00"
        assert normalize_time(" 14:00 ") == "14:00"

    @pytest.mark.parametrize("value", ["9", "24:00", "10:60", "9h", None])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            normalize_time(value)


class TestAppointmentParsing:
    def test_bare_ids(self):
        appointment = Appointment.model_validate({
            "_id": "a1",
            "cliente": "u1",
            "servicio": "s1",
            "fecha": "2024-01-03T00:00:00.000Z",
            "hora": "9:00",
        })
        assert appointment.servicio == Unpopulated("s1")
        assert appointment.profesional is None
        assert appointment.service_id == "s1"
        assert appointment.service_price is None
        assert appointment.fecha == date(2024, 1, 3)
        assert appointment.hora == "09:00"
        assert appointment.starts_at == datetime(2024, 1, 3, 9, 0)
        assert appointment.estado.value == "pendiente"

    def test_populated_refs(self):
        appointment = Appointment.model_validate({
            "_id": "a1",
            "cliente": {"_id": "u1", "first_name": "Ana", "last_name": "García"},
            "servicio": {"_id": "s1", "nombre": "Masaje", "precio": 120},
            "profesional": {"_id": "p1", "first_name": "Laura", "role": "profesional"},
            "fecha": "2024-01-03",
            "hora": "10:00",
            "estado": "confirmado",
        })
        assert isinstance(appointment.servicio, Populated)
        assert appointment.service_id == "s1"
        assert appointment.service_price == 120
        assert appointment.professional_id == "p1"

        view = appointment.to_view()
        assert view["servicio_nombre"] == "Masaje"
        assert view["profesional_nombre"] == "Laura"
        assert view["cliente_nombre"] == "Ana García"
        assert view["fecha"] == "2024-01-03"

    def test_missing_service_rejected(self):
        with pytest.raises(ValidationError):
            Appointment.model_validate({"_id": "a1", "fecha": "2024-01-03", "hora": "10:00"})


class TestPaymentParsing:
    def test_turnos_as_ids_or_objects(self):
        payment = Payment.model_validate({
            "_id": "pay1",
            "turnos": ["a1", {"_id": "a2", "estado": "confirmado"}],
            "amount": 85,
            "createdAt": "2024-01-02T10:00:00.000Z",
            "cliente": "u1",
        })
        assert payment.appointment_ids == ["a1", "a2"]
        assert payment.to_view()["cliente"] == "u1"


class TestUser:
    def test_admin_flag_or_role(self):
        assert User.model_validate({"_id": "u1", "is_admin": True}).is_admin_user
        assert User.model_validate({"_id": "u1", "role": "admin"}).is_admin_user
        assert User.model_validate({"_id": "u1", "role": None}).role == UserRole.CLIENT

    def test_user_update_syncs_admin_flag(self):
        assert UserUpdate(role=UserRole.ADMIN).to_payload() == {"role": "admin", "is_admin": True}


class TestRequests:
    def test_appointment_create_payload(self):
        payload = AppointmentCreate(
            cliente="u1", servicio="s1", fecha=date(2024, 1, 3), hora="9:00"
        ).to_payload()
        assert payload == {"cliente": "u1", "servicio": "s1", "fecha": "2024-01-03", "hora": "09:00"}

    def test_service_image_alias(self):
        payload = ServiceCreate(nombre="Masaje", precio=100, image="x.png").to_payload()
        assert payload["Image"] == "x.png"
        assert Service.model_validate({"_id": "s1", "nombre": "M", "Image": "y.png"}).image == "y.png"

    def test_register_passwords_must_match(self):
        with pytest.raises(ValidationError):
            RegisterRequest(
                first_name="Ana", last_name="G", email="a@b.c",
                password="secret1", confirm_password="secret2",
            )
        ok = RegisterRequest(
            first_name="Ana", last_name="G", email="a@b.c",
            password="secret1", confirm_password="secret1",
        )
        assert "confirm_password" not in ok.to_payload()


class TestCardDetails:
    def test_valid_card(self):
        card = CardDetails(holder="Ana", number="4111 1111 1111 1111", expiry="12/27", cvv="123")
        assert card.number == "4111111111111111"
        assert card.masked_number == "**** **** **** 1111"

    @pytest.mark.parametrize(
        "field,value",
        [("number", "4111 1111"), ("expiry", "13/27"), ("expiry", "1227"), ("cvv", "12a")],
    )
    def test_invalid_card(self, field, value):
        data = {"holder": "Ana", "number": "4111111111111111", "expiry": "12/27", "cvv": "123"}
        data[field] = value
        with pytest.raises(ValidationError):
            CardDetails(**data)
