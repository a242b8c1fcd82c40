"""
Alternative slot suggestions for a staff member on a given day.

The day's opening window is walked in fixed increments from opening
time. Every candidate runs through the same hours, window, capacity and
conflict rules as direct booking, so a suggestion handed back to the
validator for the same staff member and day always passes.

Store or configuration failures propagate: a partially scanned day is
never returned as if it were complete.
"""

from datetime import date, datetime, timedelta, tzinfo
from typing import List, Optional

from config import settings
from db import get_db_client
from models.appointment import CandidateAppointment
from models.scheduling import SuggestedSlot
from scheduling.configuration import load_configuration
from scheduling.conflicts import find_conflict
from scheduling.rules import evaluate
from utils.datetime_utils import get_zone, local_datetime, local_day_bounds, utc_now
from utils.exceptions import MalformedCandidateError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_level=settings.log_level)


class SlotSuggestionGenerator:
    """Finds bookable slots by scanning a day's opening hours."""

    def __init__(
        self,
        db=None,
        tz: Optional[tzinfo] = None,
        increment_minutes: Optional[int] = None,
    ):
        self.db = db if db is not None else get_db_client()
        self.tz = tz if tz is not None else get_zone(settings.timezone)
        self.increment = timedelta(
            minutes=increment_minutes or settings.slot_increment_minutes
        )

    async def suggest(
        self,
        staff_id: str,
        day: date,
        duration_minutes: int,
        buffer_minutes: Optional[int] = None,
        max_suggestions: Optional[int] = None,
        now: Optional[datetime] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[SuggestedSlot]:
        """
        Return up to ``max_suggestions`` valid slots in chronological order.

        Args:
            staff_id: Staff member to schedule
            day: Local calendar day to scan
            duration_minutes: Length of each slot
            buffer_minutes: Requested buffer; the configured buffer is used
                when it is larger
            max_suggestions: Maximum slots to return
            now: Reference instant; captured once here when omitted
            exclude_appointment_id: Appointment being moved, ignored for
                capacity and conflicts

        Returns:
            Valid slots, possibly empty (closed day, holiday, fully booked)

        Raises:
            MalformedCandidateError: If staff_id is empty or duration is not positive
            ConfigurationUnavailableError: If configuration cannot be read
            AppointmentStoreError: If appointments cannot be read
        """
        if not staff_id:
            raise MalformedCandidateError("staff_id is required")
        if duration_minutes <= 0:
            raise MalformedCandidateError("duration_minutes must be positive")

        limit = max_suggestions if max_suggestions is not None else settings.max_suggestions
        if limit <= 0:
            return []

        now = now if now is not None else utc_now()
        config = await load_configuration(self.db, day, day)

        day_hours = config.hours.for_date(day)
        if day_hours.closed or config.holiday_on(day) is not None:
            logger.debug(f"No suggestions for {day.isoformat()}: business closed")
            return []

        buffer = max(buffer_minutes or 0, config.limits.buffer_minutes)
        duration = timedelta(minutes=duration_minutes)
        opens_at = local_datetime(day, day_hours.open, self.tz)
        closes_at = local_datetime(day, day_hours.close, self.tz)

        # One snapshot of the day's bookings serves every increment
        day_start, day_end = local_day_bounds(day, self.tz)
        appointments_that_day = await self.db.count_appointments_between(
            day_start, day_end, exclude_appointment_id=exclude_appointment_id
        )
        staff_appointments = await self.db.get_staff_appointments(
            staff_id,
            opens_at - timedelta(minutes=buffer),
            closes_at + timedelta(minutes=buffer),
            exclude_appointment_id=exclude_appointment_id,
        )

        suggestions: List[SuggestedSlot] = []
        slot_start = opens_at
        while slot_start + duration <= closes_at and len(suggestions) < limit:
            slot_end = slot_start + duration
            candidate = CandidateAppointment(
                staff_id=staff_id,
                start_time=slot_start,
                end_time=slot_end,
                exclude_appointment_id=exclude_appointment_id,
            )

            violations = evaluate(candidate, config, now, self.tz, appointments_that_day)
            if not violations and find_conflict(
                staff_appointments,
                staff_id,
                slot_start,
                slot_end,
                buffer,
                exclude_appointment_id=exclude_appointment_id,
            ) is None:
                suggestions.append(
                    SuggestedSlot(start_time=slot_start, end_time=slot_end, staff_id=staff_id)
                )

            slot_start += self.increment

        logger.info(
            f"Generated {len(suggestions)} suggestion(s) for staff {staff_id} "
            f"on {day.isoformat()} ({duration_minutes}m, {buffer}m buffer)"
        )
        return suggestions
