"""
Buffer-aware interval conflict detection for a single staff member.

A candidate ``[start, end]`` is inflated by the buffer on both sides and
compared against the raw interval of every existing non-cancelled
appointment with a half-open overlap test:

    existing.start < end + buffer  and  existing.end > start - buffer

so back-to-back appointments need a real gap of at least ``buffer``.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Protocol

from config import settings
from models.appointment import Appointment
from models.scheduling import ConflictResult
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_level=settings.log_level)


class AppointmentReader(Protocol):
    async def get_staff_appointments(
        self,
        staff_id: str,
        window_start: datetime,
        window_end: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]: ...


def conflict_reason(buffer_minutes: int) -> str:
    return f"Appointment conflicts with buffer time requirements ({buffer_minutes} minutes buffer)"


def inflate(start_time: datetime, end_time: datetime, buffer_minutes: int):
    """Return ``(start - buffer, end + buffer)``."""
    buffer = timedelta(minutes=buffer_minutes)
    return start_time - buffer, end_time + buffer


def find_conflict(
    appointments: Iterable[Appointment],
    staff_id: str,
    start_time: datetime,
    end_time: datetime,
    buffer_minutes: int,
    exclude_appointment_id: Optional[str] = None,
) -> Optional[Appointment]:
    """
    First appointment colliding with the buffer-inflated candidate, if any.

    Cancelled appointments, other staff members' appointments and the
    excluded appointment never conflict.
    """
    inflated_start, inflated_end = inflate(start_time, end_time, buffer_minutes)

    for appointment in appointments:
        if appointment.is_cancelled or appointment.staff_id != staff_id:
            continue
        if exclude_appointment_id and appointment.id == exclude_appointment_id:
            continue
        if appointment.start_time < inflated_end and appointment.end_time > inflated_start:
            return appointment

    return None


class IntervalConflictDetector:
    """Checks a candidate interval against a staff member's bookings."""

    def __init__(self, reader: AppointmentReader):
        self.reader = reader

    async def has_conflict(
        self,
        staff_id: str,
        start_time: datetime,
        end_time: datetime,
        buffer_minutes: int,
        exclude_appointment_id: Optional[str] = None,
    ) -> ConflictResult:
        """
        Check for a buffer-inflated overlap with any existing appointment.

        Raises:
            AppointmentStoreError: If appointments cannot be read
        """
        inflated_start, inflated_end = inflate(start_time, end_time, buffer_minutes)

        appointments = await self.reader.get_staff_appointments(
            staff_id,
            inflated_start,
            inflated_end,
            exclude_appointment_id=exclude_appointment_id,
        )

        # The store query is only a prefilter
        conflicting = find_conflict(
            appointments,
            staff_id,
            start_time,
            end_time,
            buffer_minutes,
            exclude_appointment_id,
        )

        if conflicting is None:
            return ConflictResult(has_conflict=False)

        logger.debug(
            f"Staff {staff_id} conflict: candidate {start_time.isoformat()} overlaps "
            f"appointment {conflicting.id} with {buffer_minutes}m buffer"
        )
        return ConflictResult(has_conflict=True, reason=conflict_reason(buffer_minutes))
