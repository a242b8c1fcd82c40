"""Pydantic models for data validation and serialization."""

from .appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    CandidateAppointment,
    RescheduleRequest,
)
from .business_settings import (
    BookingConfiguration,
    BookingLimits,
    BusinessHours,
    DayHours,
    parse_business_settings,
)
from .holiday import Holiday, HolidayType
from .scheduling import (
    BookingOutcome,
    BookingOutcomeStatus,
    ConflictResult,
    SuggestedSlot,
    ValidationVerdict,
)

__all__ = [
    "Appointment",
    "AppointmentCreate",
    "AppointmentStatus",
    "CandidateAppointment",
    "RescheduleRequest",
    "BookingConfiguration",
    "BookingLimits",
    "BusinessHours",
    "DayHours",
    "parse_business_settings",
    "Holiday",
    "HolidayType",
    "BookingOutcome",
    "BookingOutcomeStatus",
    "ConflictResult",
    "SuggestedSlot",
    "ValidationVerdict",
]
