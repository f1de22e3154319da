"""
Tests for booking submission, cancellation, day payment and the agenda.
"""

from datetime import date

import pytest

from conftest import NOW, appointment_data, make_appointment, make_response

from spa_turnos.config import settings
from spa_turnos.models.schemas import AppointmentStatus, CardDetails, PaymentMethod
from spa_turnos.services.appointment import AppointmentService

APPOINTMENTS = settings.appointments_url
PAYMENTS = settings.payments_url
SERVICES = settings.services_url
USERS = settings.users_url

CARD = CardDetails(holder="Ana García", number="4111111111111111", expiry="12/27", cvv="123")


@pytest.fixture
def service(api_client):
    return AppointmentService(api_client, clock=lambda: NOW)


class TestSubmit:
    """Local validation fails fast; the backend has the last word."""

    def test_missing_selection_makes_no_request(self, service, http):
        result = service.submit("s1", date(2024, 1, 5), None, "u1", [])

        assert result["success"] is False
        assert result["error"] == "missing_selection"
        assert http.calls == []

    def test_lead_time_violation_makes_no_request(self, service, http):
        result = service.submit("s1", date(2024, 1, 3), "10:00", "u1", [])

        assert result["error"] == "lead_time"
        assert "48" in result["message"]
        assert http.calls == []

    def test_occupied_slot_makes_no_request(self, service, http):
        booked = [make_appointment("a1", "2024-01-05", "10:00")]
        result = service.submit("s1", date(2024, 1, 5), "10:00", "u1", booked)

        assert result["error"] == "slot_occupied"
        assert http.calls == []

    def test_success(self, service, http):
        http.add(
            "POST",
            f"{APPOINTMENTS}/create",
            make_response(201, payload={"message": "ok", "turno": {"_id": "new1"}}),
        )
        result = service.submit("s1", date(2024, 1, 5), "9:00", "u1", [], professional_id="p1")

        assert result["success"] is True
        assert result["appointment_id"] == "new1"
        call = http.calls[0]
        assert call.params == {"token": "tok-123"}
        assert call.json == {
            "cliente": "u1",
            "servicio": "s1",
            "profesional": "p1",
            "fecha": "2024-01-05",
            "hora": "09:00",
        }

    def test_server_rejection_message_shown(self, service, http):
        http.add(
            "POST",
            f"{APPOINTMENTS}/create",
            make_response(409, payload={"message": "El horario ya fue reservado"}),
        )
        result = service.submit("s1", date(2024, 1, 5), "10:00", "u1", [])

        assert result == {
            "success": False,
            "message": "El horario ya fue reservado",
            "error": "server_rejected",
        }

    def test_expired_session(self, service, http, session):
        http.add("POST", f"{APPOINTMENTS}/create", make_response(401))
        result = service.submit("s1", date(2024, 1, 5), "10:00", "u1", [])

        assert result["error"] == "unauthorized"
        assert not session.is_authenticated


class TestLoadBooked:
    def test_cancelled_excluded(self, service, http):
        http.add("GET", APPOINTMENTS, make_response(payload=[
            appointment_data("a1", "2024-01-05", "10:00"),
            appointment_data("a2", "2024-01-05", "11:00", estado="cancelado"),
        ]))
        assert [a.id for a in service.load_booked()] == ["a1"]

    def test_backend_failure_gives_empty_list(self, service, http):
        http.add("GET", APPOINTMENTS, make_response(500, payload={"message": "boom"}))
        assert service.load_booked() == []

    def test_malformed_item_skipped(self, service, http):
        http.add("GET", APPOINTMENTS, make_response(payload=[
            appointment_data("a1", "2024-01-05", "10:00"),
            {"_id": "broken", "fecha": "mañana"},
        ]))
        assert [a.id for a in service.load_booked()] == ["a1"]


class TestMyAppointments:
    def test_grouped_by_day(self, service, http):
        http.add("GET", f"{APPOINTMENTS}/user/u1", make_response(payload=[
            appointment_data("a1", "2024-01-05T00:00:00.000Z", "10:00", precio=100),
            appointment_data("a2", "2024-01-05", "09:00", precio=50, estado="cancelado"),
            appointment_data("a3", "2024-01-09", "09:00", precio=30),
        ]))
        result = service.my_appointments()

        assert result["success"] is True
        assert [d.day for d in result["days"]] == ["2024-01-05", "2024-01-09"]
        assert result["days"][0].total == 100
        assert http.calls[0].headers["Authorization"] == "Bearer tok-123"

    def test_prices_fetched_for_unpopulated_services(self, service, http):
        http.add("GET", f"{APPOINTMENTS}/user/u1", make_response(payload=[
            appointment_data("a1", "2024-01-05", "10:00", servicio="s7"),
        ]))
        http.add("GET", SERVICES, make_response(payload=[
            {"_id": "s7", "nombre": "Facial", "precio": 70},
        ]))
        result = service.my_appointments()
        assert result["days"][0].total == 70

    def test_status_filter(self, service, http):
        http.add("GET", f"{APPOINTMENTS}/user/u1", make_response(payload=[
            appointment_data("a1", "2024-01-05", "10:00", precio=100),
            appointment_data("a2", "2024-01-06", "09:00", precio=50, estado="confirmado"),
        ]))
        result = service.my_appointments(status=AppointmentStatus.CONFIRMED)
        assert [d.day for d in result["days"]] == ["2024-01-06"]


class TestCancel:
    def test_success(self, service, http):
        http.add("GET", f"{APPOINTMENTS}/user/u1", make_response(payload=[
            appointment_data("a1", "2024-01-05", "10:00"),
        ]))
        http.add("PUT", f"{APPOINTMENTS}/edit/a1", make_response(payload={"message": "ok"}))

        result = service.cancel("a1")
        assert result["success"] is True
        assert http.calls_to("PUT", f"{APPOINTMENTS}/edit/a1")[0].json == {"estado": "cancelado"}

    def test_too_late(self, service, http):
        http.add("GET", f"{APPOINTMENTS}/user/u1", make_response(payload=[
            appointment_data("a1", "2024-01-02", "10:00"),
        ]))
        result = service.cancel("a1")

        assert result["error"] == "lead_time"
        assert http.calls_to("PUT", f"{APPOINTMENTS}/edit/a1") == []

    def test_already_cancelled(self, service, http):
        http.add("GET", f"{APPOINTMENTS}/user/u1", make_response(payload=[
            appointment_data("a1", "2024-01-05", "10:00", estado="cancelado"),
        ]))
        assert service.cancel("a1")["error"] == "not_cancellable"

    def test_not_found(self, service, http):
        http.add("GET", f"{APPOINTMENTS}/user/u1", make_response(payload=[]))
        assert service.cancel("zzz")["error"] == "appointment_not_found"

    def test_admin_ignores_lead_time(self, service, http):
        http.add("GET", APPOINTMENTS, make_response(payload=[
            appointment_data("a1", "2024-01-02", "10:00", cliente="u9"),
        ]))
        http.add("PUT", f"{APPOINTMENTS}/edit/a1", make_response(payload={}))

        assert service.cancel("a1", admin=True)["success"] is True


class TestPayDay:
    def _day(self, http, *appointments):
        http.add("GET", f"{APPOINTMENTS}/user/u1", make_response(payload=list(appointments)))
        http.add("POST", f"{PAYMENTS}/create", make_response(201, payload={
            "_id": "pay1", "turnos": ["a1"], "amount": 0, "createdAt": "2024-01-01T10:00:00Z",
        }))

    def test_card_discount(self, service, http):
        self._day(
            http,
            appointment_data("a1", "2024-01-05", "10:00", precio=100),
            appointment_data("a2", "2024-01-05", "11:00", precio=50, estado="cancelado"),
        )
        http.add("PUT", f"{APPOINTMENTS}/edit/a1", make_response(payload={}))

        result = service.pay_day("2024-01-05", PaymentMethod.CARD, card=CARD)

        assert result["success"] is True
        assert result["amount"] == 85.0
        assert result["discount_applied"] is True
        payment = http.calls_to("POST", f"{PAYMENTS}/create")[0].json
        assert payment == {"turnos": ["a1"], "amount": 85.0, "cliente": "u1"}
        assert http.calls_to("PUT", f"{APPOINTMENTS}/edit/a1")[0].json == {"estado": "confirmado"}

    def test_cash_full_price(self, service, http):
        self._day(http, appointment_data("a1", "2024-01-05", "10:00", precio=100))
        http.add("PUT", f"{APPOINTMENTS}/edit/a1", make_response(payload={}))

        result = service.pay_day(date(2024, 1, 5), PaymentMethod.CASH)
        assert result["amount"] == 100.0
        assert result["discount_applied"] is False

    def test_card_without_discount_when_too_close(self, service, http):
        self._day(http, appointment_data("a1", "2024-01-02", "10:00", precio=100))
        http.add("PUT", f"{APPOINTMENTS}/edit/a1", make_response(payload={}))

        result = service.pay_day("2024-01-02", PaymentMethod.CARD, card=CARD)
        assert result["amount"] == 100.0
        assert result["discount_applied"] is False

    def test_card_details_required(self, service, http):
        result = service.pay_day("2024-01-05", PaymentMethod.CARD)
        assert result["error"] == "invalid_card"
        assert http.calls == []

    def test_nothing_pending(self, service, http):
        self._day(http, appointment_data("a1", "2024-01-05", "10:00", precio=100, estado="confirmado"))

        result = service.pay_day("2024-01-05", PaymentMethod.CASH)
        assert result["error"] == "nothing_to_pay"
        assert http.calls_to("POST", f"{PAYMENTS}/create") == []

    def test_confirmation_failure_reported(self, service, http):
        self._day(http, appointment_data("a1", "2024-01-05", "10:00", precio=100))
        http.add("PUT", f"{APPOINTMENTS}/edit/a1", make_response(500, payload={"message": "boom"}))

        result = service.pay_day("2024-01-05", PaymentMethod.CASH)
        assert result["success"] is True
        assert result["unconfirmed_appointments"] == ["a1"]


class TestProfessionalAgenda:
    def test_filters_and_enriches(self, service, http):
        http.add("GET", APPOINTMENTS, make_response(payload=[
            appointment_data("a2", "2024-01-05", "11:00", profesional="p1"),
            appointment_data("a1", "2024-01-05", "09:00", profesional="p1"),
            appointment_data("a3", "2024-01-05", "10:00", profesional="p2"),
        ]))
        http.add("GET", USERS, make_response(payload=[
            {"_id": "p1", "first_name": "Laura", "last_name": "Paz", "role": "profesional"},
        ]))

        result = service.professional_agenda("p1")
        agenda = result["appointments"]
        assert [a.id for a in agenda] == ["a1", "a2"]
        assert agenda[0].to_view()["profesional_nombre"] == "Laura Paz"

    def test_day_filter(self, service, http):
        http.add("GET", APPOINTMENTS, make_response(payload=[
            appointment_data("a1", "2024-01-05", "09:00", profesional={"_id": "p1"}),
            appointment_data("a2", "2024-01-06", "09:00", profesional={"_id": "p1"}),
        ]))
        result = service.professional_agenda("p1", day=date(2024, 1, 6))
        assert [a.id for a in result["appointments"]] == ["a2"]
