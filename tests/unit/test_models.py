"""
Unit tests for appointment, holiday and business settings models.
"""

from datetime import date, datetime, time, timezone

import pytest
from pydantic import ValidationError

from models.appointment import Appointment, AppointmentCreate, CandidateAppointment
from models.business_settings import DayHours, parse_business_settings
from models.holiday import Holiday, HolidayType
from tests.fakes import DEFAULT_SETTINGS_ROWS, STAFF_ID, TUESDAY, at


class TestParseBusinessSettings:
    """Test parsing of business_settings rows."""

    def test_stored_values(self):
        config = parse_business_settings(DEFAULT_SETTINGS_ROWS)

        assert config.hours.saturday.closed is True
        assert config.hours.tuesday.open == time(9, 0)
        assert config.limits.buffer_minutes == 15

    def test_missing_rows_take_defaults(self):
        config = parse_business_settings([])

        assert config.limits.booking_window_days == 30
        assert config.limits.max_appointments_per_day == 50
        assert config.limits.reschedule_deadline_hours == 2
        assert config.hours.saturday.close == time(16, 0)

    def test_null_values_take_defaults(self):
        config = parse_business_settings(
            [{"key": "buffer_time_minutes", "value": None}, {"key": "business_hours", "value": None}]
        )

        assert config.limits.buffer_minutes == 15
        assert config.hours.monday.open == time(9, 0)

    def test_zero_is_kept(self):
        config = parse_business_settings([{"key": "buffer_time_minutes", "value": 0}])

        assert config.limits.buffer_minutes == 0

    def test_partial_week_keeps_other_defaults(self):
        config = parse_business_settings(
            [{"key": "business_hours", "value": {"monday": {"open": "10:00", "close": "14:00"}}}]
        )

        assert config.hours.monday.close == time(14, 0)
        assert config.hours.tuesday.close == time(18, 0)

    def test_settings_page_shape(self):
        config = parse_business_settings(
            [
                {
                    "key": "business_hours",
                    "value": {
                        "monday": {"enabled": True, "start": "08:00", "end": "12:00"},
                        "sunday": {"enabled": False, "start": "10:00", "end": "14:00"},
                    },
                }
            ]
        )

        assert config.hours.monday.open == time(8, 0)
        assert config.hours.sunday.closed is True

    def test_negative_limit_is_invalid(self):
        with pytest.raises(ValidationError):
            parse_business_settings([{"key": "cancellation_hours", "value": -1}])

    def test_numeric_strings_are_accepted(self):
        config = parse_business_settings([{"key": "booking_window_days", "value": "14"}])

        assert config.limits.booking_window_days == 14

    def test_reschedule_deadline_is_read(self):
        config = parse_business_settings([{"key": "reschedule_deadline_hours", "value": 12}])

        assert config.limits.reschedule_deadline_hours == 12


class TestDayHours:
    def test_close_must_follow_open(self):
        with pytest.raises(ValidationError):
            DayHours(open=time(18, 0), close=time(9, 0))

    def test_closed_day_skips_ordering(self):
        hours = DayHours(open=time(0, 0), close=time(0, 0), closed=True)
        assert hours.closed


class TestHoliday:
    """Test holiday matching."""

    def test_exact_date(self):
        holiday = Holiday(name="Inventory", date=TUESDAY, type=HolidayType.BLACKOUT_DATE)

        assert holiday.blocks(TUESDAY)
        assert not holiday.blocks(date(2030, 1, 9))

    def test_recurring(self):
        holiday = Holiday(
            name="Christmas Day",
            date=date(2020, 12, 25),
            is_recurring=True,
            recurring_month=12,
            recurring_day=25,
        )

        assert holiday.blocks(date(2031, 12, 25))
        assert not holiday.blocks(date(2031, 12, 26))

    def test_maintenance_never_blocks(self):
        holiday = Holiday(name="Deep clean", date=TUESDAY, type=HolidayType.MAINTENANCE)

        assert not holiday.blocks(TUESDAY)

    def test_invalid_recurring_month(self):
        with pytest.raises(ValidationError):
            Holiday(name="Bad", date=TUESDAY, recurring_month=13)


class TestAppointmentModels:
    """Test appointment models."""

    def test_naive_datetimes_are_utc(self):
        candidate = CandidateAppointment(
            staff_id=STAFF_ID, start_time=datetime(2030, 1, 8, 10), end_time=datetime(2030, 1, 8, 11)
        )

        assert candidate.start_time.tzinfo is timezone.utc
        assert candidate.duration_minutes == 60

    def test_candidate_rejects_inverted_range(self):
        with pytest.raises(ValidationError):
            CandidateAppointment(
                staff_id=STAFF_ID, start_time=at(TUESDAY, 11), end_time=at(TUESDAY, 10)
            )

    def test_candidate_requires_staff(self):
        with pytest.raises(ValidationError):
            CandidateAppointment(staff_id="", start_time=at(TUESDAY, 10), end_time=at(TUESDAY, 11))

    def test_create_cleans_notes(self):
        request = AppointmentCreate(
            staff_id=STAFF_ID,
            start_time=at(TUESDAY, 10),
            end_time=at(TUESDAY, 11),
            notes="  Allergic to acetone\x00  ",
        )

        assert request.notes == "Allergic to acetone"

    def test_create_to_candidate(self):
        request = AppointmentCreate(
            staff_id=STAFF_ID, start_time=at(TUESDAY, 10), end_time=at(TUESDAY, 11)
        )

        candidate = request.to_candidate()

        assert candidate.staff_id == STAFF_ID
        assert candidate.exclude_appointment_id is None

    def test_status_stored_as_value(self):
        appointment = Appointment(
            id="a-1",
            staff_id=STAFF_ID,
            start_time=at(TUESDAY, 10),
            end_time=at(TUESDAY, 11),
            status="cancelled",
        )

        assert appointment.status == "cancelled"
        assert appointment.is_cancelled
