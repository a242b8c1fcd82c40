"""Appointment models for staff bookings."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from utils.constants import MAX_NOTES_LENGTH
from utils.datetime_utils import ensure_aware
from utils.validation import sanitize_text


class AppointmentStatus(str, Enum):
    """Appointment status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class Appointment(BaseModel):
    """Appointment row as stored in the ``appointments`` table."""

    id: str
    staff_id: str = Field(..., description="Staff ID (Supabase UUID)")
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus = AppointmentStatus.PENDING
    customer_id: Optional[str] = None
    service_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "id": "uuid-here",
                "staff_id": "uuid-here",
                "start_time": "2026-01-15T10:00:00Z",
                "end_time": "2026-01-15T11:00:00Z",
                "status": "confirmed",
            }
        }

    @field_validator("start_time", "end_time")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @property
    def is_cancelled(self) -> bool:
        return self.status == AppointmentStatus.CANCELLED


class CandidateAppointment(BaseModel):
    """
    A proposed appointment to validate.

    ``exclude_appointment_id`` is set when validating a reschedule so the
    appointment being moved does not conflict with itself.
    """

    staff_id: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    service_id: Optional[str] = None
    exclude_appointment_id: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @model_validator(mode="after")
    def _end_after_start(self) -> "CandidateAppointment":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)


class AppointmentCreate(BaseModel):
    """Appointment creation model."""

    staff_id: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    customer_id: Optional[str] = None
    service_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    status: AppointmentStatus = AppointmentStatus.PENDING

    @field_validator("start_time", "end_time")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @field_validator("notes")
    @classmethod
    def _clean_notes(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return sanitize_text(value) or None

    @model_validator(mode="after")
    def _end_after_start(self) -> "AppointmentCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    def to_candidate(self) -> CandidateAppointment:
        return CandidateAppointment(
            staff_id=self.staff_id,
            start_time=self.start_time,
            end_time=self.end_time,
            service_id=self.service_id,
        )


class RescheduleRequest(BaseModel):
    """New time range for an existing appointment."""

    start_time: datetime
    end_time: datetime
    reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("start_time", "end_time")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @model_validator(mode="after")
    def _end_after_start(self) -> "RescheduleRequest":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self
