"""
Pytest configuration and shared fixtures.
"""

from unittest.mock import MagicMock

import pytest

from scheduling.service import BookingService
from scheduling.suggestions import SlotSuggestionGenerator
from scheduling.validator import BookingValidator
from tests.fakes import UTC, FakeAppointmentStore


@pytest.fixture
def store():
    """Fake store seeded with Mon-Fri 09:00-18:00, 15m buffer, 30 day window."""
    return FakeAppointmentStore()


@pytest.fixture
def validator(store):
    return BookingValidator(store, tz=UTC)


@pytest.fixture
def suggester(store):
    return SlotSuggestionGenerator(store, tz=UTC, increment_minutes=30)


@pytest.fixture
def booking_service(store, validator, suggester):
    return BookingService(store, tz=UTC, validator=validator, suggester=suggester)


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table
    return mock_client, mock_table
