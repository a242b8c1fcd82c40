"""
Unit tests for datetime, validation and logging utilities.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone

import pytest

from utils.datetime_utils import (
    ensure_aware,
    get_zone,
    local_datetime,
    local_day_bounds,
    minutes_between,
    parse_iso_datetime,
    to_iso_string,
    to_local,
)
from utils.exceptions import ValidationError
from utils.logging_config import RequestIdFilter, get_request_id, set_request_id
from utils.validation import (
    parse_date_param,
    parse_int_param,
    require_uuid,
    sanitize_text,
    validate_uuid,
)

PLUS_ONE = timezone(timedelta(hours=1))


class TestDatetimeUtils:
    """Test timezone handling."""

    def test_parse_z_suffix(self):
        parsed = parse_iso_datetime("2030-01-08T10:00:00Z")
        assert parsed == datetime(2030, 1, 8, 10, tzinfo=timezone.utc)

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_iso_datetime("next tuesday")

    def test_naive_is_utc(self):
        assert ensure_aware(datetime(2030, 1, 8, 10)).tzinfo is timezone.utc

    def test_iso_string_is_utc(self):
        assert to_iso_string(datetime(2030, 1, 8, 11, tzinfo=PLUS_ONE)) == (
            "2030-01-08T10:00:00+00:00"
        )

    def test_to_local(self):
        local = to_local(datetime(2030, 1, 8, 23, 30, tzinfo=timezone.utc), PLUS_ONE)
        assert local.date() == date(2030, 1, 9)

    def test_local_day_bounds(self):
        start, end = local_day_bounds(date(2030, 1, 8), PLUS_ONE)

        assert start == datetime(2030, 1, 7, 23, tzinfo=timezone.utc)
        assert end - start == timedelta(days=1)

    def test_local_datetime(self):
        assert local_datetime(date(2030, 1, 8), time(9, 0), PLUS_ONE) == datetime(
            2030, 1, 8, 8, tzinfo=timezone.utc
        )

    def test_minutes_between(self):
        start = datetime(2030, 1, 8, 10, tzinfo=timezone.utc)
        assert minutes_between(start, start + timedelta(minutes=45)) == 45

    def test_unknown_zone(self):
        with pytest.raises(ValueError):
            get_zone("Mars/Olympus_Mons")


class TestValidation:
    """Test request parameter validation."""

    def test_validate_uuid(self):
        assert validate_uuid("11111111-1111-4111-8111-111111111111")
        assert not validate_uuid("not-a-uuid")
        assert not validate_uuid("")

    def test_require_uuid_missing(self):
        with pytest.raises(ValidationError, match="staff_id is required"):
            require_uuid(None, "staff_id")

    def test_parse_date(self):
        assert parse_date_param("2030-01-08") == date(2030, 1, 8)

    @pytest.mark.parametrize("value", ["", "08/01/2030", "2030-02-30"])
    def test_parse_date_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_date_param(value)

    def test_parse_int_default(self):
        assert parse_int_param(None, "max_suggestions", default=5) == 5

    @pytest.mark.parametrize("value", ["abc", "0", "481"])
    def test_parse_int_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_int_param(value, "duration_minutes", maximum=480)

    def test_sanitize_text(self):
        assert sanitize_text("  hello\x07 world  ") == "hello world"
        assert sanitize_text("abcdef", max_length=3) == "abc"


class TestRequestId:
    """Test request ID propagation into log records."""

    def test_set_and_get(self):
        assert set_request_id("req-1") == "req-1"
        assert get_request_id() == "req-1"

    def test_generated(self):
        generated = set_request_id()
        assert len(generated) == 12

    def test_filter_injects_request_id(self):
        set_request_id("req-2")
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)

        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "req-2"
