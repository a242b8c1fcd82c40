"""
Unit tests for BookingService create / reschedule / cancel flows.
"""

from datetime import timedelta

import pytest

from models.appointment import AppointmentCreate, AppointmentStatus, RescheduleRequest
from models.scheduling import BookingOutcomeStatus
from tests.fakes import NOW, STAFF_ID, TUESDAY, at
from utils.exceptions import ValidationError

MISSING_ID = "99999999-9999-4999-8999-999999999999"


def _request(start, end, **kwargs):
    return AppointmentCreate(staff_id=STAFF_ID, start_time=start, end_time=end, **kwargs)


class TestCreateBooking:
    """Test appointment creation."""

    @pytest.mark.asyncio
    async def test_created(self, booking_service, store):
        outcome = await booking_service.create_booking(
            _request(at(TUESDAY, 10), at(TUESDAY, 11), notes="First visit"), NOW
        )

        assert outcome.status == BookingOutcomeStatus.CREATED
        assert outcome.succeeded
        assert outcome.precheck.valid is True
        assert outcome.appointment.id in store.appointments
        assert outcome.appointment.notes == "First visit"

    @pytest.mark.asyncio
    async def test_rejected_with_suggestions(self, booking_service, store):
        store.add(at(TUESDAY, 10), at(TUESDAY, 11))

        outcome = await booking_service.create_booking(
            _request(at(TUESDAY, 11, 10), at(TUESDAY, 12, 10)), NOW
        )

        assert outcome.status == BookingOutcomeStatus.REJECTED
        assert outcome.errors == [
            "Appointment conflicts with buffer time requirements (15 minutes buffer)"
        ]
        assert outcome.suggestions
        assert len(outcome.suggestions) <= 5
        assert len(store.appointments) == 1

    @pytest.mark.asyncio
    async def test_store_conflict_wins_over_valid_precheck(self, booking_service, store):
        store.reject_next_write = True

        outcome = await booking_service.create_booking(
            _request(at(TUESDAY, 10), at(TUESDAY, 11)), NOW
        )

        assert outcome.status == BookingOutcomeStatus.CONFLICT
        assert outcome.precheck.valid is True
        assert outcome.errors == ["Appointment time slot already taken"]
        assert outcome.appointment is None
        assert store.appointments == {}

    @pytest.mark.asyncio
    async def test_second_identical_booking_is_rejected(self, booking_service):
        first = await booking_service.create_booking(
            _request(at(TUESDAY, 10), at(TUESDAY, 11)), NOW
        )
        second = await booking_service.create_booking(
            _request(at(TUESDAY, 10), at(TUESDAY, 11)), NOW
        )

        assert first.status == BookingOutcomeStatus.CREATED
        assert second.status == BookingOutcomeStatus.REJECTED

    @pytest.mark.asyncio
    async def test_configuration_unavailable_rejects(self, booking_service, store):
        store.fail_settings = True

        outcome = await booking_service.create_booking(
            _request(at(TUESDAY, 10), at(TUESDAY, 11)), NOW
        )

        assert outcome.status == BookingOutcomeStatus.REJECTED
        assert outcome.errors == ["Booking configuration is unavailable"]
        assert outcome.suggestions == []
        assert outcome.suggestions_unavailable is True


class TestIdempotentCreate:
    """Test keyed creates are recorded and replayed."""

    @pytest.mark.asyncio
    async def test_same_key_replays_created_outcome(self, booking_service, store):
        request = _request(at(TUESDAY, 10), at(TUESDAY, 11))

        first = await booking_service.create_booking(request, NOW, idempotency_key="k-1")
        retry = await booking_service.create_booking(request, NOW, idempotency_key="k-1")

        assert first.status == BookingOutcomeStatus.CREATED
        assert first.replayed is False
        assert retry.status == BookingOutcomeStatus.CREATED
        assert retry.replayed is True
        assert retry.appointment.id == first.appointment.id
        assert len(store.appointments) == 1
        assert store.operations["k-1"].appointment_id == first.appointment.id

    @pytest.mark.asyncio
    async def test_fresh_key_is_validated_again(self, booking_service, store):
        request = _request(at(TUESDAY, 10), at(TUESDAY, 11))

        await booking_service.create_booking(request, NOW, idempotency_key="k-1")
        second = await booking_service.create_booking(request, NOW, idempotency_key="k-2")

        assert second.status == BookingOutcomeStatus.REJECTED
        assert "k-2" not in store.operations

    @pytest.mark.asyncio
    async def test_rejected_outcome_is_not_recorded(self, booking_service, store):
        store.fail_settings = True
        request = _request(at(TUESDAY, 10), at(TUESDAY, 11))

        rejected = await booking_service.create_booking(request, NOW, idempotency_key="k-1")
        store.fail_settings = False
        retried = await booking_service.create_booking(request, NOW, idempotency_key="k-1")

        assert rejected.status == BookingOutcomeStatus.REJECTED
        assert retried.status == BookingOutcomeStatus.CREATED
        assert retried.replayed is False

    @pytest.mark.asyncio
    async def test_key_reused_for_other_request(self, booking_service):
        await booking_service.create_booking(
            _request(at(TUESDAY, 10), at(TUESDAY, 11)), NOW, idempotency_key="k-1"
        )

        with pytest.raises(ValidationError, match="different request"):
            await booking_service.create_booking(
                _request(at(TUESDAY, 14), at(TUESDAY, 15)), NOW, idempotency_key="k-1"
            )

    @pytest.mark.asyncio
    async def test_without_key_nothing_is_recorded(self, booking_service, store):
        await booking_service.create_booking(_request(at(TUESDAY, 10), at(TUESDAY, 11)), NOW)

        assert store.operations == {}


class TestRescheduleBooking:
    """Test moving an existing appointment."""

    @pytest.mark.asyncio
    async def test_overlapping_own_slot(self, booking_service, store):
        existing = store.add(at(TUESDAY, 10), at(TUESDAY, 11))

        outcome = await booking_service.reschedule_booking(
            existing.id,
            RescheduleRequest(start_time=at(TUESDAY, 10, 30), end_time=at(TUESDAY, 11, 30)),
            NOW,
        )

        assert outcome.status == BookingOutcomeStatus.RESCHEDULED
        assert store.appointments[existing.id].start_time == at(TUESDAY, 10, 30)

    @pytest.mark.asyncio
    async def test_conflicts_with_other_booking(self, booking_service, store):
        existing = store.add(at(TUESDAY, 10), at(TUESDAY, 11))
        store.add(at(TUESDAY, 14), at(TUESDAY, 15))

        outcome = await booking_service.reschedule_booking(
            existing.id,
            RescheduleRequest(start_time=at(TUESDAY, 13), end_time=at(TUESDAY, 14)),
            NOW,
        )

        assert outcome.status == BookingOutcomeStatus.REJECTED
        assert store.appointments[existing.id].start_time == at(TUESDAY, 10)

    @pytest.mark.asyncio
    async def test_not_found(self, booking_service):
        outcome = await booking_service.reschedule_booking(
            MISSING_ID,
            RescheduleRequest(start_time=at(TUESDAY, 10), end_time=at(TUESDAY, 11)),
            NOW,
        )

        assert outcome.status == BookingOutcomeStatus.NOT_FOUND
        assert outcome.errors == [f"Appointment {MISSING_ID} not found"]

    @pytest.mark.asyncio
    async def test_cancelled_cannot_be_rescheduled(self, booking_service, store):
        existing = store.add(
            at(TUESDAY, 10), at(TUESDAY, 11), status=AppointmentStatus.CANCELLED
        )

        outcome = await booking_service.reschedule_booking(
            existing.id,
            RescheduleRequest(start_time=at(TUESDAY, 12), end_time=at(TUESDAY, 13)),
            NOW,
        )

        assert outcome.status == BookingOutcomeStatus.REJECTED
        assert outcome.errors == ["Cannot reschedule cancelled appointment"]

    @pytest.mark.parametrize("status", [AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW])
    @pytest.mark.asyncio
    async def test_finished_appointments_cannot_move(self, booking_service, store, status):
        existing = store.add(at(TUESDAY, 10), at(TUESDAY, 11), status=status)

        outcome = await booking_service.reschedule_booking(
            existing.id,
            RescheduleRequest(start_time=at(TUESDAY, 14), end_time=at(TUESDAY, 15)),
            NOW,
        )

        assert outcome.status == BookingOutcomeStatus.REJECTED
        assert outcome.errors == [f"Cannot reschedule {status.value} appointment"]
        assert store.appointments[existing.id].start_time == at(TUESDAY, 10)

    @pytest.mark.asyncio
    async def test_pending_can_move(self, booking_service, store):
        existing = store.add(
            at(TUESDAY, 10), at(TUESDAY, 11), status=AppointmentStatus.PENDING
        )

        outcome = await booking_service.reschedule_booking(
            existing.id,
            RescheduleRequest(start_time=at(TUESDAY, 14), end_time=at(TUESDAY, 15)),
            NOW,
        )

        assert outcome.status == BookingOutcomeStatus.RESCHEDULED

    @pytest.mark.asyncio
    async def test_deadline_passed(self, booking_service, store):
        # One hour before start, moving it to next week
        existing = store.add(at(TUESDAY, 10), at(TUESDAY, 11))
        now = at(TUESDAY, 9)

        outcome = await booking_service.reschedule_booking(
            existing.id,
            RescheduleRequest(
                start_time=at(TUESDAY, 10) + timedelta(days=7),
                end_time=at(TUESDAY, 11) + timedelta(days=7),
            ),
            now,
        )

        assert outcome.status == BookingOutcomeStatus.REJECTED
        assert outcome.errors == [
            "Reschedule deadline has passed. Must reschedule at least 2 hours before the appointment"
        ]
        assert store.appointments[existing.id].start_time == at(TUESDAY, 10)

    @pytest.mark.asyncio
    async def test_configured_deadline(self, booking_service, store):
        store.set_setting("reschedule_deadline_hours", 48)
        existing = store.add(at(TUESDAY, 10), at(TUESDAY, 11))

        outcome = await booking_service.reschedule_booking(
            existing.id,
            RescheduleRequest(start_time=at(TUESDAY, 14), end_time=at(TUESDAY, 15)),
            NOW,
        )

        assert outcome.status == BookingOutcomeStatus.REJECTED
        assert "48 hours" in outcome.errors[0]

    @pytest.mark.asyncio
    async def test_same_day_move_on_full_day(self, booking_service, store):
        store.set_setting("max_appointments_per_day", 1)
        existing = store.add(at(TUESDAY, 10), at(TUESDAY, 11))

        outcome = await booking_service.reschedule_booking(
            existing.id,
            RescheduleRequest(start_time=at(TUESDAY, 15), end_time=at(TUESDAY, 16)),
            NOW,
        )

        assert outcome.status == BookingOutcomeStatus.RESCHEDULED

    @pytest.mark.asyncio
    async def test_store_conflict(self, booking_service, store):
        existing = store.add(at(TUESDAY, 10), at(TUESDAY, 11))
        store.reject_next_write = True

        outcome = await booking_service.reschedule_booking(
            existing.id,
            RescheduleRequest(start_time=at(TUESDAY, 15), end_time=at(TUESDAY, 16)),
            NOW,
        )

        assert outcome.status == BookingOutcomeStatus.CONFLICT
        assert outcome.precheck.valid is True


class TestCancelBooking:
    """Test cancellation and its deadline."""

    @pytest.mark.asyncio
    async def test_cancelled(self, booking_service, store):
        existing = store.add(at(TUESDAY, 10), at(TUESDAY, 11))

        outcome = await booking_service.cancel_booking(existing.id, NOW)

        assert outcome.status == BookingOutcomeStatus.CANCELLED
        assert store.appointments[existing.id].is_cancelled

    @pytest.mark.asyncio
    async def test_too_late(self, booking_service, store):
        existing = store.add(at(TUESDAY, 10), at(TUESDAY, 11))
        now = at(TUESDAY, 10) - timedelta(hours=2)

        outcome = await booking_service.cancel_booking(existing.id, now)

        assert outcome.status == BookingOutcomeStatus.REJECTED
        assert outcome.errors == [
            "Cancellation must be made at least 24 hours before the appointment"
        ]
        assert not store.appointments[existing.id].is_cancelled

    @pytest.mark.asyncio
    async def test_policy_can_be_bypassed(self, booking_service, store):
        existing = store.add(at(TUESDAY, 10), at(TUESDAY, 11))
        now = at(TUESDAY, 10) - timedelta(hours=2)

        outcome = await booking_service.cancel_booking(existing.id, now, enforce_policy=False)

        assert outcome.status == BookingOutcomeStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_already_cancelled(self, booking_service, store):
        existing = store.add(
            at(TUESDAY, 10), at(TUESDAY, 11), status=AppointmentStatus.CANCELLED
        )

        outcome = await booking_service.cancel_booking(existing.id, NOW)

        assert outcome.status == BookingOutcomeStatus.REJECTED
        assert outcome.errors == ["Appointment is already cancelled"]

    @pytest.mark.asyncio
    async def test_configuration_unavailable(self, booking_service, store):
        existing = store.add(at(TUESDAY, 10), at(TUESDAY, 11))
        store.fail_settings = True

        outcome = await booking_service.cancel_booking(existing.id, NOW)

        assert outcome.status == BookingOutcomeStatus.REJECTED
        assert outcome.errors == ["Booking configuration is unavailable"]

    @pytest.mark.asyncio
    async def test_not_found(self, booking_service):
        outcome = await booking_service.cancel_booking(MISSING_ID, NOW)

        assert outcome.status == BookingOutcomeStatus.NOT_FOUND


@pytest.mark.asyncio
async def test_unavailable_suggestions_are_not_empty_suggestions(booking_service, store):
    """Test a store failure yields None, distinct from a fully booked day."""
    store.fail_appointment_reads = True
    candidate = _request(at(TUESDAY, 10), at(TUESDAY, 11)).to_candidate()

    assert await booking_service.suggest_alternatives(candidate, NOW) is None


@pytest.mark.asyncio
async def test_fully_booked_day_gives_empty_suggestions(booking_service, store):
    """Test a day with no free slot yields an empty list, not None."""
    store.set_setting("max_appointments_per_day", 0)
    candidate = _request(at(TUESDAY, 10), at(TUESDAY, 11)).to_candidate()

    assert await booking_service.suggest_alternatives(candidate, NOW) == []
