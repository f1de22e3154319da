"""
Unit tests for the availability filter.
"""

from datetime import datetime

from conftest import make_appointment

from spa_turnos.services.availability import filter_available, is_slot_occupied
from spa_turnos.services.slots import generate_slots

SLOTS = ["09:00", "10:00", "11:00"]
NOW = datetime(2024, 1, 1, 0, 0)


class TestFilterAvailable:
    """Test the three-way split of the slot grid."""

    def test_occupied_slot_for_same_service(self):
        booked = [make_appointment("a1", "2024-01-03", "10:00", servicio="s1")]
        result = filter_available(SLOTS, "2024-01-03", "s1", booked, NOW)

        assert result.available == ("09:00", "11:00")
        assert result.occupied == ("10:00",)
        assert result.blocked_by_lead_time == ()
        assert result.is_limited

    def test_tomorrow_is_fully_blocked(self):
        result = filter_available(SLOTS, "2024-01-02", "s1", [], NOW)

        assert result.available == ()
        assert result.blocked_by_lead_time == tuple(SLOTS)
        assert result.is_empty

    def test_partition_of_grid(self):
        """available, blocked and occupied are disjoint and cover every slot."""
        slots = generate_slots()
        now = datetime(2024, 1, 1, 12, 30)
        booked = [
            make_appointment("a1", "2024-01-03", "14:00"),
            make_appointment("a2", "2024-01-03", "16:00"),
            make_appointment("a3", "2024-01-03", "09:00"),
        ]
        result = filter_available(slots, "2024-01-03", "s1", booked, now)

        parts = [set(result.available), set(result.blocked_by_lead_time), set(result.occupied)]
        assert set.union(*parts) == set(slots)
        assert sum(len(p) for p in parts) == len(slots)
        assert result.blocked_by_lead_time == ("09:00", "10:00", "11:00", "12:00")
        assert result.occupied == ("14:00", "16:00")

    def test_idempotent(self):
        booked = [make_appointment("a1", "2024-01-03", "10:00")]
        first = filter_available(SLOTS, "2024-01-03", "s1", booked, NOW)
        second = filter_available(SLOTS, "2024-01-03", "s1", booked, NOW)

        assert first == second
        assert len(booked) == 1

    def test_other_service_does_not_block(self):
        booked = [make_appointment("a1", "2024-01-03", "10:00", servicio="s2")]
        result = filter_available(SLOTS, "2024-01-03", "s1", booked, NOW)
        assert result.available == tuple(SLOTS)

    def test_cancelled_appointment_frees_slot(self):
        booked = [make_appointment("a1", "2024-01-03", "10:00", estado="cancelado")]
        result = filter_available(SLOTS, "2024-01-03", "s1", booked, NOW)
        assert result.occupied == ()

    def test_unpadded_backend_time_still_matches(self):
        """A backend "9:00" collides with the "09:00" slot."""
        booked = [make_appointment("a1", "2024-01-03T00:00:00.000Z", "9:00")]
        result = filter_available(SLOTS, "2024-01-03", "s1", booked, NOW)
        assert result.occupied == ("09:00",)

    def test_to_dict(self):
        result = filter_available(SLOTS, "2024-01-02", "s1", [], NOW)
        assert result.to_dict() == {
            "available": [],
            "blocked_by_lead_time": SLOTS,
            "occupied": [],
        }


class TestProfessionalOccupancy:
    """A selected professional narrows the occupancy check."""

    def test_other_professional_does_not_block(self):
        booked = [make_appointment("a1", "2024-01-03", "10:00", profesional="p2")]
        assert not is_slot_occupied("2024-01-03", "10:00", "s1", booked, professional_id="p1")

    def test_same_professional_blocks(self):
        booked = [make_appointment("a1", "2024-01-03", "10:00", profesional={"_id": "p1"})]
        assert is_slot_occupied("2024-01-03", "10:00", "s1", booked, professional_id="p1")

    def test_no_professional_selected_blocks_any(self):
        booked = [make_appointment("a1", "2024-01-03", "10:00", profesional="p2")]
        assert is_slot_occupied("2024-01-03", "10:00", "s1", booked)
