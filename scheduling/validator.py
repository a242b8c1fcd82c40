"""
Booking validation: the single entry point booking handlers should use.

Combines business hours, booking window, daily capacity and buffer
conflict checks into one verdict. Checks never short-circuit each other;
every violated rule is reported, in that order.

The verdict is a point-in-time answer. A concurrent booking can still
take the slot before the insert, so the store's uniqueness constraint
remains the final word (see :mod:`scheduling.service`).
"""

from datetime import date, datetime, tzinfo
from typing import Optional

from config import settings
from db import get_db_client
from models.appointment import CandidateAppointment
from models.business_settings import BookingConfiguration
from models.scheduling import ValidationVerdict
from scheduling.configuration import load_configuration
from scheduling.conflicts import IntervalConflictDetector
from scheduling.rules import evaluate
from utils.constants import CONFIGURATION_UNAVAILABLE_REASON
from utils.datetime_utils import get_zone, local_day_bounds, to_local, utc_now
from utils.exceptions import (
    AppointmentStoreError,
    ConfigurationUnavailableError,
    MalformedCandidateError,
)
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_level=settings.log_level)


def ensure_well_formed(candidate: CandidateAppointment) -> None:
    """
    Reject malformed candidates before any rule runs.

    Raises:
        MalformedCandidateError: If required fields are missing or end <= start
    """
    staff_id = getattr(candidate, "staff_id", None)
    start_time = getattr(candidate, "start_time", None)
    end_time = getattr(candidate, "end_time", None)

    missing = [
        name
        for name, value in (
            ("staff_id", staff_id),
            ("start_time", start_time),
            ("end_time", end_time),
        )
        if not value
    ]
    if missing:
        raise MalformedCandidateError(f"Missing required fields: {', '.join(missing)}")

    if end_time <= start_time:
        raise MalformedCandidateError("end_time must be after start_time")


class BookingValidator:
    """Validates candidate appointments against a fresh configuration snapshot."""

    def __init__(self, db=None, tz: Optional[tzinfo] = None):
        self.db = db if db is not None else get_db_client()
        self.tz = tz if tz is not None else get_zone(settings.timezone)
        self.conflicts = IntervalConflictDetector(self.db)

    async def validate(
        self, candidate: CandidateAppointment, now: Optional[datetime] = None
    ) -> ValidationVerdict:
        """
        Validate a candidate appointment.

        Args:
            candidate: Proposed appointment
            now: Reference instant; captured once here when omitted

        Returns:
            Verdict listing every violated rule

        Raises:
            MalformedCandidateError: If the candidate is malformed
        """
        ensure_well_formed(candidate)
        now = now if now is not None else utc_now()

        day = to_local(candidate.start_time, self.tz).date()
        try:
            config = await load_configuration(self.db, day, day)
        except ConfigurationUnavailableError:
            return ValidationVerdict(valid=False, errors=[CONFIGURATION_UNAVAILABLE_REASON])

        return await self.validate_with_configuration(candidate, config, now)

    async def validate_with_configuration(
        self,
        candidate: CandidateAppointment,
        config: BookingConfiguration,
        now: datetime,
    ) -> ValidationVerdict:
        """Validate against an already-loaded configuration snapshot."""
        ensure_well_formed(candidate)

        day = to_local(candidate.start_time, self.tz).date()
        appointments_that_day = await self._count_day(day, candidate.exclude_appointment_id)

        errors = evaluate(candidate, config, now, self.tz, appointments_that_day)

        try:
            conflict = await self.conflicts.has_conflict(
                candidate.staff_id,
                candidate.start_time,
                candidate.end_time,
                config.limits.buffer_minutes,
                exclude_appointment_id=candidate.exclude_appointment_id,
            )
            if conflict.has_conflict:
                errors.append(conflict.reason)
        except AppointmentStoreError as e:
            logger.error(f"Conflict check failed for staff {candidate.staff_id}: {e}")
            errors.append("Unable to verify staff availability")

        verdict = ValidationVerdict.from_errors(errors)
        if not verdict.valid:
            logger.info(
                f"Rejected candidate for staff {candidate.staff_id} at "
                f"{candidate.start_time.isoformat()}: {'; '.join(verdict.errors)}"
            )
        return verdict

    async def _count_day(
        self, day: date, exclude_appointment_id: Optional[str] = None
    ) -> Optional[int]:
        day_start, day_end = local_day_bounds(day, self.tz)
        try:
            return await self.db.count_appointments_between(
                day_start, day_end, exclude_appointment_id=exclude_appointment_id
            )
        except AppointmentStoreError as e:
            logger.error(f"Daily capacity count failed for {day.isoformat()}: {e}")
            return None
