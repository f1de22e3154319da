"""
Unit tests for day grouping, totals and the card discount.
"""

from datetime import datetime

from conftest import make_appointment

from spa_turnos.models.schemas import PaymentMethod
from spa_turnos.services.aggregation import (
    day_total,
    group_by_date,
    is_discount_eligible,
    payment_amount,
    summarize_days,
)

NOW = datetime(2024, 1, 1, 0, 0)


class TestGroupByDate:
    def test_partition(self):
        """Every appointment lands in exactly one bucket keyed by YYYY-MM-DD."""
        appointments = [
            make_appointment("a1", "2024-01-05T00:00:00.000Z", "15:00"),
            make_appointment("a2", "2024-01-03", "10:00"),
            make_appointment("a3", "2024-01-05", "09:00"),
            make_appointment("a4", "2024-01-03 00:00:00", "9:00"),
        ]
        groups = group_by_date(appointments)

        assert list(groups) == ["2024-01-03", "2024-01-05"]
        ids = [a.id for bucket in groups.values() for a in bucket]
        assert sorted(ids) == ["a1", "a2", "a3", "a4"]
        assert [a.id for a in groups["2024-01-05"]] == ["a3", "a1"]
        assert [a.hora for a in groups["2024-01-03"]] == ["09:00", "10:00"]

    def test_empty(self):
        assert group_by_date([]) == {}


class TestDayTotal:
    def test_only_pending_counted(self):
        day = [
            make_appointment("a1", "2024-01-05", "09:00", precio=100),
            make_appointment("a2", "2024-01-05", "10:00", servicio="s2", precio=50, estado="cancelado"),
        ]
        assert day_total(day) == 100

    def test_unpopulated_service_uses_price_map(self):
        day = [make_appointment("a1", "2024-01-05", "09:00", servicio="s9")]
        assert day_total(day, {"s9": 80.0}) == 80.0
        assert day_total(day) == 0.0


class TestDiscount:
    def test_no_pending_not_eligible(self):
        day = [make_appointment("a1", "2024-01-05", "09:00", precio=100, estado="cancelado")]
        assert not is_discount_eligible(day, NOW)

    def test_all_pending_far_enough(self):
        day = [make_appointment("a1", "2024-01-05", "09:00", precio=100)]
        assert is_discount_eligible(day, NOW)

    def test_pending_too_close(self):
        day = [
            make_appointment("a1", "2024-01-02", "09:00", precio=100),
            make_appointment("a2", "2024-01-02", "17:00", precio=100, estado="confirmado"),
        ]
        assert not is_discount_eligible(day, NOW)

    def test_payment_amount(self):
        assert payment_amount(100, PaymentMethod.CARD, True) == 85.0
        assert payment_amount(100, PaymentMethod.CARD, False) == 100.0
        assert payment_amount(100, PaymentMethod.CASH, True) == 100.0


class TestSummarizeDays:
    def test_summary_fields(self):
        appointments = [
            make_appointment("a1", "2024-01-05", "09:00", precio=100),
            make_appointment("a2", "2024-01-05", "10:00", precio=50, estado="confirmado"),
            make_appointment("a3", "2024-01-08", "11:00", precio=40, estado="cancelado"),
        ]
        first, second = summarize_days(appointments, NOW)

        assert first.day == "2024-01-05"
        assert first.total == 100
        assert first.pending_ids == ["a1"]
        assert first.card_amount == 85.0
        assert first.cash_amount == 100.0
        assert first.payable

        assert second.total == 0
        assert not second.discount_eligible
        assert not second.payable

        view = first.to_dict()
        assert view["fecha"] == "2024-01-05"
        assert [t["id"] for t in view["turnos"]] == ["a1", "a2"]
        assert view["turnos"][0]["precio"] == 100
