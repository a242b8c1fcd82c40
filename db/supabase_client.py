"""
Supabase database client for the scheduling core.
Handles every store read and write the booking rules depend on.

Tables used:
- ``business_settings`` (key, value JSONB): opening hours and booking limits
- ``holidays``: public holidays and blackout dates
- ``appointments``: staff bookings; a unique constraint on
  (staff_id, start_time) is the final arbiter of double booking
- ``booking_operations``: results of keyed writes, unique on idempotency_key

Row Level Security (RLS) Notes:
==============================
This client uses the service key which bypasses RLS. The HTTP handlers
in front of it are responsible for authorising the caller.

Reads are never cached: every validation works from a fresh snapshot.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client as SupabaseClientType
from supabase import create_client

from config import settings
from models.appointment import Appointment, AppointmentCreate, AppointmentStatus
from models.holiday import Holiday
from models.scheduling import BookingOperation
from utils.constants import BOOKING_SETTING_KEYS, UNIQUE_VIOLATION_CODE
from utils.datetime_utils import parse_iso_datetime, to_iso_string, utc_now
from utils.exceptions import (
    AppointmentStoreError,
    ConfigurationUnavailableError,
    SlotConflictError,
)
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_level=settings.log_level)

APPOINTMENT_COLUMNS = (
    "id, staff_id, customer_id, service_id, start_time, end_time, status, "
    "notes, created_at, updated_at"
)


def _is_unique_violation(error: Exception) -> bool:
    return isinstance(error, APIError) and error.code == UNIQUE_VIOLATION_CODE


class SupabaseClient:
    """
    Supabase database client wrapper.

    Acts as the configuration reader, appointment reader and appointment
    writer for the scheduling core.
    """

    def __init__(self):
        self.client: SupabaseClientType = create_client(
            settings.supabase_url, settings.supabase_key
        )

    # ========== Configuration Reader ==========

    async def get_business_settings(self) -> List[Dict[str, Any]]:
        """
        Fetch raw booking-related rows from ``business_settings``.

        Returns:
            List of ``{"key": ..., "value": ...}`` dicts

        Raises:
            ConfigurationUnavailableError: If the read fails
        """
        try:
            response = (
                self.client.table("business_settings")
                .select("key, value")
                .in_("key", list(BOOKING_SETTING_KEYS))
                .execute()
            )
            return list(response.data or [])
        except Exception as e:
            raise ConfigurationUnavailableError(
                f"Failed to fetch business settings: {e}"
            ) from e

    async def get_holidays(self, start_date: date, end_date: date) -> List[Holiday]:
        """
        Fetch holidays in a date range plus every recurring holiday.

        Args:
            start_date: First local date of interest
            end_date: Last local date of interest (inclusive)

        Raises:
            ConfigurationUnavailableError: If the read fails
        """
        try:
            response = (
                self.client.table("holidays")
                .select("*")
                .or_(
                    f"and(date.gte.{start_date.isoformat()},"
                    f"date.lte.{end_date.isoformat()}),is_recurring.eq.true"
                )
                .execute()
            )
            return [Holiday(**item) for item in response.data or []]
        except Exception as e:
            raise ConfigurationUnavailableError(f"Failed to fetch holidays: {e}") from e

    # ========== Appointment Reader ==========

    async def get_staff_appointments(
        self,
        staff_id: str,
        window_start: datetime,
        window_end: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        """
        Get non-cancelled appointments for a staff member overlapping a window.

        Args:
            staff_id: Staff member ID
            window_start: Inclusive lower bound of the window
            window_end: Exclusive upper bound of the window
            exclude_appointment_id: Appointment to leave out (reschedule)

        Returns:
            Appointments ordered by start time

        Raises:
            AppointmentStoreError: If the read fails
        """
        try:
            query = (
                self.client.table("appointments")
                .select(APPOINTMENT_COLUMNS)
                .eq("staff_id", staff_id)
                .neq("status", AppointmentStatus.CANCELLED.value)
                .lt("start_time", to_iso_string(window_end))
                .gt("end_time", to_iso_string(window_start))
            )

            if exclude_appointment_id:
                query = query.neq("id", exclude_appointment_id)

            response = query.order("start_time", desc=False).execute()

            return [self._parse_appointment(item) for item in response.data or []]
        except Exception as e:
            raise AppointmentStoreError(
                f"Failed to get appointments for staff {staff_id}: {e}"
            ) from e

    async def count_appointments_between(
        self,
        range_start: datetime,
        range_end: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> int:
        """
        Count non-cancelled appointments (all staff) starting in a half-open range.

        The appointment being rescheduled is left out via ``exclude_appointment_id``.

        Raises:
            AppointmentStoreError: If the read fails
        """
        try:
            query = (
                self.client.table("appointments")
                .select("id")
                .gte("start_time", to_iso_string(range_start))
                .lt("start_time", to_iso_string(range_end))
                .neq("status", AppointmentStatus.CANCELLED.value)
            )

            if exclude_appointment_id:
                query = query.neq("id", exclude_appointment_id)

            response = query.execute()
            return len(response.data or [])
        except Exception as e:
            raise AppointmentStoreError(
                f"Failed to count appointments: {e}"
            ) from e

    async def get_appointment_by_id(self, appointment_id: str) -> Optional[Appointment]:
        """Get appointment by ID."""
        try:
            response = (
                self.client.table("appointments")
                .select(APPOINTMENT_COLUMNS)
                .eq("id", appointment_id)
                .execute()
            )

            if response.data:
                return self._parse_appointment(response.data[0])
            return None
        except Exception as e:
            raise AppointmentStoreError(f"Failed to get appointment: {e}") from e

    # ========== Appointment Writer ==========

    async def create_appointment(self, appointment_data: AppointmentCreate) -> Appointment:
        """
        Insert a new appointment.

        Raises:
            SlotConflictError: If the store's uniqueness constraint rejects it
            AppointmentStoreError: On any other failure
        """
        try:
            data = appointment_data.model_dump(mode="json", exclude_none=True)
            data["start_time"] = to_iso_string(appointment_data.start_time)
            data["end_time"] = to_iso_string(appointment_data.end_time)

            response = self.client.table("appointments").insert(data).execute()

            if not response.data:
                raise AppointmentStoreError("Failed to create appointment: no data returned")

            return self._parse_appointment(response.data[0])
        except AppointmentStoreError:
            raise
        except Exception as e:
            if _is_unique_violation(e):
                raise SlotConflictError("Appointment time slot already taken") from e
            raise AppointmentStoreError(f"Failed to create appointment: {e}") from e

    async def update_appointment_times(
        self, appointment_id: str, start_time: datetime, end_time: datetime
    ) -> Optional[Appointment]:
        """
        Move an appointment to a new time range.

        Raises:
            SlotConflictError: If the store's uniqueness constraint rejects it
            AppointmentStoreError: On any other failure
        """
        try:
            update_data = {
                "start_time": to_iso_string(start_time),
                "end_time": to_iso_string(end_time),
                "updated_at": to_iso_string(utc_now()),
            }

            response = (
                self.client.table("appointments")
                .update(update_data)
                .eq("id", appointment_id)
                .execute()
            )

            if not response.data:
                return None

            return self._parse_appointment(response.data[0])
        except Exception as e:
            if _is_unique_violation(e):
                raise SlotConflictError("Appointment time slot already taken") from e
            raise AppointmentStoreError(f"Failed to reschedule appointment: {e}") from e

    async def update_appointment_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Optional[Appointment]:
        """Update appointment status."""
        try:
            update_data = {
                "status": status.value,
                "updated_at": to_iso_string(utc_now()),
            }

            response = (
                self.client.table("appointments")
                .update(update_data)
                .eq("id", appointment_id)
                .execute()
            )

            if not response.data:
                return None

            return self._parse_appointment(response.data[0])
        except Exception as e:
            raise AppointmentStoreError(
                f"Failed to update appointment status: {e}"
            ) from e

    # ========== Booking Operations ==========

    async def get_booking_operation(self, idempotency_key: str) -> Optional[BookingOperation]:
        """
        Get the recorded result of a keyed write.

        Raises:
            AppointmentStoreError: If the read fails
        """
        try:
            response = (
                self.client.table("booking_operations")
                .select("*")
                .eq("idempotency_key", idempotency_key)
                .execute()
            )

            if response.data:
                return BookingOperation(**response.data[0])
            return None
        except Exception as e:
            raise AppointmentStoreError(f"Failed to get booking operation: {e}") from e

    async def record_booking_operation(self, operation: BookingOperation) -> BookingOperation:
        """
        Record the result of a keyed write.

        Raises:
            SlotConflictError: If the key was recorded by a concurrent request
            AppointmentStoreError: On any other failure
        """
        try:
            data = operation.model_dump(mode="json", exclude_none=True)
            response = self.client.table("booking_operations").insert(data).execute()

            if not response.data:
                raise AppointmentStoreError("Failed to record booking operation: no data returned")

            return BookingOperation(**response.data[0])
        except AppointmentStoreError:
            raise
        except Exception as e:
            if _is_unique_violation(e):
                raise SlotConflictError(
                    f"Idempotency key {operation.idempotency_key} already recorded"
                ) from e
            raise AppointmentStoreError(f"Failed to record booking operation: {e}") from e

    # ========== Helper Methods ==========

    def _parse_appointment(self, item: dict) -> Appointment:
        """
        Parse appointment data from database response.

        Args:
            item: Raw appointment row

        Returns:
            Parsed Appointment object
        """
        item = item.copy()
        for field in ["start_time", "end_time", "created_at", "updated_at"]:
            if isinstance(item.get(field), str):
                item[field] = parse_iso_datetime(item[field])
        return Appointment(**item)


# Global database client instance
_db_client: Optional[SupabaseClient] = None


def get_db_client() -> SupabaseClient:
    """Get or create database client instance."""
    global _db_client
    if _db_client is None:
        _db_client = SupabaseClient()
    return _db_client
