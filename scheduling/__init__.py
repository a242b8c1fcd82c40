"""Appointment scheduling: rule evaluation, conflict detection, validation and suggestions."""

from .conflicts import IntervalConflictDetector, find_conflict
from .service import BookingService
from .suggestions import SlotSuggestionGenerator
from .validator import BookingValidator

__all__ = [
    "BookingService",
    "BookingValidator",
    "IntervalConflictDetector",
    "SlotSuggestionGenerator",
    "find_conflict",
]
