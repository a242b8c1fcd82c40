"""
Business rule evaluation for candidate appointments.

Each check returns ``None`` when the rule holds or one human-readable
reason when it is violated. ``evaluate`` runs every check unconditionally
in the fixed order (business hours, booking window, daily limit) so the
caller sees every violated rule at once.

All checks take ``now`` explicitly; nothing here reads the clock.
"""

from datetime import datetime, timedelta, tzinfo
from typing import List, Optional

from models.appointment import CandidateAppointment
from models.business_settings import BookingConfiguration, BookingLimits
from utils.constants import WEEKDAY_NAMES
from utils.datetime_utils import to_local


def check_business_hours(
    start_time: datetime,
    end_time: datetime,
    config: BookingConfiguration,
    tz: tzinfo,
) -> Optional[str]:
    """
    Check that the appointment lies inside the day's opening hours.

    Both endpoints are checked: the start must fall in ``[open, close)``
    and the end must not run past closing on the same local day. A
    blocking holiday on the local date closes the business for the day.
    """
    local_start = to_local(start_time, tz)
    local_end = to_local(end_time, tz)
    day = local_start.date()

    holiday = config.holiday_on(day)
    if holiday is not None:
        return f"Appointments cannot be booked on holidays or blackout dates ({holiday.name})"

    day_name = WEEKDAY_NAMES[day.weekday()]
    day_hours = config.hours.for_weekday(day.weekday())

    if day_hours.closed:
        return f"Business is closed on {day_name}s"

    opens = f"{day_hours.open:%H:%M}"
    closes = f"{day_hours.close:%H:%M}"

    start_of_day = local_start.time()
    if start_of_day < day_hours.open or start_of_day >= day_hours.close:
        return (
            f"Appointment time {local_start:%H:%M} is outside business hours "
            f"({opens}-{closes})"
        )

    if local_end.date() != day or local_end.time() > day_hours.close:
        return f"Appointment ending at {local_end:%H:%M} runs past closing time ({closes})"

    return None


def check_booking_window(
    start_time: datetime, limits: BookingLimits, now: datetime
) -> Optional[str]:
    """Check the start lies between ``now + min advance`` and ``now + window``."""
    min_booking_instant = now + timedelta(hours=limits.min_advance_hours)
    max_booking_instant = now + timedelta(days=limits.booking_window_days)

    if start_time < min_booking_instant:
        return (
            f"Appointments must be booked at least "
            f"{limits.min_advance_hours} hours in advance"
        )

    if start_time > max_booking_instant:
        return (
            f"Appointments can only be booked up to "
            f"{limits.booking_window_days} days in advance"
        )

    return None


def check_daily_capacity(
    appointments_that_day: Optional[int], limits: BookingLimits
) -> Optional[str]:
    """
    Check the global per-day cap.

    The count covers every non-cancelled appointment on the calendar day,
    across all staff. ``None`` means the count could not be read, which
    fails the check.
    """
    if appointments_that_day is None:
        return "Unable to verify daily appointment capacity"

    if appointments_that_day >= limits.max_appointments_per_day:
        return (
            f"Daily appointment limit of {limits.max_appointments_per_day} "
            f"has been reached"
        )

    return None


def check_cancellation_window(
    start_time: datetime, limits: BookingLimits, now: datetime
) -> Optional[str]:
    """Check a cancellation happens at least ``cancellation_hours`` before start."""
    deadline = start_time - timedelta(hours=limits.cancellation_hours)
    if now > deadline:
        return (
            f"Cancellation must be made at least {limits.cancellation_hours} "
            f"hours before the appointment"
        )
    return None


def check_reschedule_window(
    start_time: datetime, limits: BookingLimits, now: datetime
) -> Optional[str]:
    """Check a move is requested before ``reschedule_deadline_hours`` ahead of start."""
    deadline = start_time - timedelta(hours=limits.reschedule_deadline_hours)
    if now >= deadline:
        return (
            f"Reschedule deadline has passed. Must reschedule at least "
            f"{limits.reschedule_deadline_hours} hours before the appointment"
        )
    return None


def evaluate(
    candidate: CandidateAppointment,
    config: BookingConfiguration,
    now: datetime,
    tz: tzinfo,
    appointments_that_day: Optional[int],
) -> List[str]:
    """
    Evaluate every business rule for a candidate.

    Args:
        candidate: Proposed appointment
        config: Configuration snapshot for this call
        now: Reference instant, captured once by the caller
        tz: Reference timezone for hours and calendar days
        appointments_that_day: Non-cancelled appointments on the candidate's
            local day, or None if they could not be counted

    Returns:
        Violated rule reasons in check order (empty when all pass)
    """
    checks = (
        check_business_hours(candidate.start_time, candidate.end_time, config, tz),
        check_booking_window(candidate.start_time, config.limits, now),
        check_daily_capacity(appointments_that_day, config.limits),
    )
    return [reason for reason in checks if reason is not None]
