"""Validation verdicts, suggested slots and booking outcomes."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from models.appointment import Appointment


class ValidationVerdict(BaseModel):
    """
    Aggregated validation result.

    ``errors`` follows the fixed check order: business hours, booking
    window, daily limit, buffer/overlap conflict.
    """

    valid: bool
    errors: List[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationVerdict":
        return cls(valid=not errors, errors=list(errors))


class ConflictResult(BaseModel):
    """Outcome of a buffer-inflated overlap check."""

    has_conflict: bool
    reason: Optional[str] = None


class SuggestedSlot(BaseModel):
    """A time slot that passed every booking rule when generated."""

    start_time: datetime
    end_time: datetime
    staff_id: str

    class Config:
        json_schema_extra = {
            "example": {
                "start_time": "2026-01-15T11:30:00Z",
                "end_time": "2026-01-15T12:30:00Z",
                "staff_id": "uuid-here",
            }
        }


class BookingOutcomeStatus(str, Enum):
    """Result of a booking write attempt."""

    CREATED = "created"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


class BookingOutcome(BaseModel):
    """
    Result of a create / reschedule / cancel attempt.

    ``precheck`` is the advisory validator verdict. ``status`` reflects
    the authoritative store write: a valid precheck can still end in
    ``CONFLICT`` when the store's uniqueness constraint rejects the write.
    ``suggestions_unavailable`` marks that alternatives could not be
    generated, as opposed to there being none.
    """

    status: BookingOutcomeStatus
    appointment: Optional[Appointment] = None
    errors: List[str] = Field(default_factory=list)
    precheck: Optional[ValidationVerdict] = None
    suggestions: List[SuggestedSlot] = Field(default_factory=list)
    suggestions_unavailable: bool = False
    replayed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status in (
            BookingOutcomeStatus.CREATED,
            BookingOutcomeStatus.RESCHEDULED,
            BookingOutcomeStatus.CANCELLED,
        )


class BookingOperation(BaseModel):
    """
    Row in ``booking_operations``: the recorded result of a keyed write.

    A retried request carrying the same idempotency key gets
    ``response_data`` back instead of a second write.
    """

    idempotency_key: str
    operation_type: str = "create"
    appointment_id: Optional[str] = None
    request_data: Dict[str, Any]
    response_data: Dict[str, Any]
    status: str = "completed"
    created_at: Optional[datetime] = None
