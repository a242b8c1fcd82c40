"""
Booking create / reschedule / cancel flows.

Every write follows the same order: validate, attempt the write, then
treat a uniqueness violation from the store as the real conflict. The
validator's verdict only filters out requests that are certain to fail;
a valid precheck can still end in ``BookingOutcomeStatus.CONFLICT``.
"""

from datetime import datetime, tzinfo
from typing import List, Optional

from config import settings
from db import get_db_client
from models.appointment import (
    AppointmentCreate,
    AppointmentStatus,
    CandidateAppointment,
    RescheduleRequest,
)
from models.scheduling import (
    BookingOperation,
    BookingOutcome,
    BookingOutcomeStatus,
    SuggestedSlot,
    ValidationVerdict,
)
from scheduling.configuration import load_configuration
from scheduling.rules import check_cancellation_window, check_reschedule_window
from scheduling.suggestions import SlotSuggestionGenerator
from scheduling.validator import BookingValidator
from utils.constants import CONFIGURATION_UNAVAILABLE_REASON, RESCHEDULABLE_STATUSES
from utils.datetime_utils import get_zone, minutes_between, to_local, utc_now
from utils.exceptions import DatabaseError, SlotConflictError, ValidationError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_level=settings.log_level)

SLOT_TAKEN_REASON = "Appointment time slot already taken"


class BookingService:
    """Two-phase booking writes on top of the validator and suggestion generator."""

    def __init__(
        self,
        db=None,
        tz: Optional[tzinfo] = None,
        validator: Optional[BookingValidator] = None,
        suggester: Optional[SlotSuggestionGenerator] = None,
    ):
        self.db = db if db is not None else get_db_client()
        self.tz = tz if tz is not None else get_zone(settings.timezone)
        self.validator = validator or BookingValidator(self.db, self.tz)
        self.suggester = suggester or SlotSuggestionGenerator(self.db, self.tz)

    async def create_booking(
        self,
        request: AppointmentCreate,
        now: Optional[datetime] = None,
        idempotency_key: Optional[str] = None,
    ) -> BookingOutcome:
        """
        Validate and insert a new appointment.

        With an ``idempotency_key``, a request that already created an
        appointment under that key gets the recorded outcome back
        (``replayed=True``) instead of a second insert.

        Returns:
            ``CREATED`` with the stored appointment, ``REJECTED`` with the
            verdict errors, or ``CONFLICT`` when the insert lost a race

        Raises:
            ValidationError: If the key was used for a different request
        """
        if idempotency_key:
            operation = await self.db.get_booking_operation(idempotency_key)
            if operation is not None:
                return _replay(operation, request)

        outcome = await self._create(request, now if now is not None else utc_now())

        if idempotency_key and outcome.status == BookingOutcomeStatus.CREATED:
            await self._record(idempotency_key, request, outcome)
        return outcome

    async def _create(self, request: AppointmentCreate, now: datetime) -> BookingOutcome:
        candidate = request.to_candidate()

        verdict = await self.validator.validate(candidate, now)
        if not verdict.valid:
            return await self._rejected(candidate, verdict, now)

        try:
            appointment = await self.db.create_appointment(request)
        except SlotConflictError:
            logger.warning(
                f"Insert conflict for staff {request.staff_id} at "
                f"{request.start_time.isoformat()} after a valid precheck"
            )
            return await self._conflict(candidate, verdict, now)

        logger.info(
            f"Appointment {appointment.id} created for staff {appointment.staff_id} "
            f"at {appointment.start_time.isoformat()}"
        )
        return BookingOutcome(
            status=BookingOutcomeStatus.CREATED, appointment=appointment, precheck=verdict
        )

    async def _record(
        self, idempotency_key: str, request: AppointmentCreate, outcome: BookingOutcome
    ) -> None:
        operation = BookingOperation(
            idempotency_key=idempotency_key,
            appointment_id=outcome.appointment.id,
            request_data=request.model_dump(mode="json"),
            response_data=outcome.model_dump(mode="json"),
        )
        try:
            await self.db.record_booking_operation(operation)
        except DatabaseError as e:
            # The appointment exists; a retry under this key will see the slot taken
            logger.error(
                f"Could not record operation {idempotency_key} for appointment "
                f"{outcome.appointment.id}: {e}"
            )

    async def reschedule_booking(
        self,
        appointment_id: str,
        request: RescheduleRequest,
        now: Optional[datetime] = None,
    ) -> BookingOutcome:
        """
        Move an existing appointment, excluding it from its own conflict check.

        Only pending and confirmed appointments can move, and only until the
        reschedule deadline before their current start.
        """
        now = now if now is not None else utc_now()

        existing = await self.db.get_appointment_by_id(appointment_id)
        if existing is None:
            return _not_found(appointment_id)
        if existing.status not in RESCHEDULABLE_STATUSES:
            return BookingOutcome(
                status=BookingOutcomeStatus.REJECTED,
                appointment=existing,
                errors=[f"Cannot reschedule {existing.status} appointment"],
            )

        current_day = to_local(existing.start_time, self.tz).date()
        new_day = to_local(request.start_time, self.tz).date()
        try:
            config = await load_configuration(
                self.db, min(current_day, new_day), max(current_day, new_day)
            )
        except DatabaseError:
            return BookingOutcome(
                status=BookingOutcomeStatus.REJECTED,
                appointment=existing,
                errors=[CONFIGURATION_UNAVAILABLE_REASON],
            )

        reason = check_reschedule_window(existing.start_time, config.limits, now)
        if reason:
            return BookingOutcome(
                status=BookingOutcomeStatus.REJECTED, appointment=existing, errors=[reason]
            )

        candidate = CandidateAppointment(
            staff_id=existing.staff_id,
            service_id=existing.service_id,
            start_time=request.start_time,
            end_time=request.end_time,
            exclude_appointment_id=existing.id,
        )

        verdict = await self.validator.validate_with_configuration(candidate, config, now)
        if not verdict.valid:
            return await self._rejected(candidate, verdict, now)

        try:
            updated = await self.db.update_appointment_times(
                existing.id, request.start_time, request.end_time
            )
        except SlotConflictError:
            logger.warning(f"Reschedule conflict for appointment {existing.id}")
            return await self._conflict(candidate, verdict, now)

        if updated is None:
            return _not_found(appointment_id)

        logger.info(
            f"Appointment {updated.id} rescheduled to {updated.start_time.isoformat()}"
            + (f": {request.reason}" if request.reason else "")
        )
        return BookingOutcome(
            status=BookingOutcomeStatus.RESCHEDULED, appointment=updated, precheck=verdict
        )

    async def cancel_booking(
        self,
        appointment_id: str,
        now: Optional[datetime] = None,
        enforce_policy: bool = True,
    ) -> BookingOutcome:
        """
        Cancel an appointment.

        Args:
            appointment_id: Appointment to cancel
            now: Reference instant; captured once here when omitted
            enforce_policy: Apply the cancellation deadline (staff and admin
                cancellations pass False)
        """
        now = now if now is not None else utc_now()

        existing = await self.db.get_appointment_by_id(appointment_id)
        if existing is None:
            return _not_found(appointment_id)
        if existing.is_cancelled:
            return BookingOutcome(
                status=BookingOutcomeStatus.REJECTED,
                appointment=existing,
                errors=["Appointment is already cancelled"],
            )

        if enforce_policy:
            day = to_local(existing.start_time, self.tz).date()
            try:
                config = await load_configuration(self.db, day, day)
            except DatabaseError:
                return BookingOutcome(
                    status=BookingOutcomeStatus.REJECTED,
                    appointment=existing,
                    errors=[CONFIGURATION_UNAVAILABLE_REASON],
                )

            reason = check_cancellation_window(existing.start_time, config.limits, now)
            if reason:
                return BookingOutcome(
                    status=BookingOutcomeStatus.REJECTED, appointment=existing, errors=[reason]
                )

        cancelled = await self.db.update_appointment_status(
            existing.id, AppointmentStatus.CANCELLED
        )
        if cancelled is None:
            return _not_found(appointment_id)

        logger.info(f"Appointment {cancelled.id} cancelled")
        return BookingOutcome(status=BookingOutcomeStatus.CANCELLED, appointment=cancelled)

    async def _rejected(
        self, candidate: CandidateAppointment, verdict: ValidationVerdict, now: datetime
    ) -> BookingOutcome:
        suggestions = await self.suggest_alternatives(candidate, now)
        return BookingOutcome(
            status=BookingOutcomeStatus.REJECTED,
            errors=verdict.errors,
            precheck=verdict,
            suggestions=suggestions or [],
            suggestions_unavailable=suggestions is None,
        )

    async def _conflict(
        self, candidate: CandidateAppointment, verdict: ValidationVerdict, now: datetime
    ) -> BookingOutcome:
        suggestions = await self.suggest_alternatives(candidate, now)
        return BookingOutcome(
            status=BookingOutcomeStatus.CONFLICT,
            errors=[SLOT_TAKEN_REASON],
            precheck=verdict,
            suggestions=suggestions or [],
            suggestions_unavailable=suggestions is None,
        )

    async def suggest_alternatives(
        self, candidate: CandidateAppointment, now: datetime
    ) -> Optional[List[SuggestedSlot]]:
        """
        Same staff, day and duration.

        Returns:
            Suggested slots (possibly empty), or None when the store could
            not be read and no answer is available
        """
        try:
            return await self.suggester.suggest(
                candidate.staff_id,
                to_local(candidate.start_time, self.tz).date(),
                minutes_between(candidate.start_time, candidate.end_time),
                now=now,
                exclude_appointment_id=candidate.exclude_appointment_id,
            )
        except DatabaseError as e:
            logger.warning(f"Could not generate suggestions for staff {candidate.staff_id}: {e}")
            return None


def _replay(operation: BookingOperation, request: AppointmentCreate) -> BookingOutcome:
    if operation.request_data != request.model_dump(mode="json"):
        raise ValidationError(
            f"Idempotency key {operation.idempotency_key} was already used for a different request"
        )
    logger.info(f"Replaying operation {operation.idempotency_key}")
    outcome = BookingOutcome.model_validate(operation.response_data)
    return outcome.model_copy(update={"replayed": True})


def _not_found(appointment_id: str) -> BookingOutcome:
    return BookingOutcome(
        status=BookingOutcomeStatus.NOT_FOUND,
        errors=[f"Appointment {appointment_id} not found"],
    )
