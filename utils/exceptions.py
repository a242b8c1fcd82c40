"""
Custom exception classes for better error handling.
Provides specific error types instead of generic exceptions.
"""


class DatabaseError(Exception):
    """Base exception for external store operations."""

    pass


class ConfigurationUnavailableError(DatabaseError):
    """Raised when business settings or holidays cannot be read or are invalid."""

    pass


class AppointmentStoreError(DatabaseError):
    """Raised when reading or writing appointments fails."""

    pass


class SlotConflictError(DatabaseError):
    """
    Raised when the store rejects a write with a uniqueness violation.

    This is the authoritative conflict signal: it wins over any earlier
    "no conflict" answer from the validator.
    """

    pass


class MalformedCandidateError(Exception):
    """Raised when a candidate appointment is malformed (e.g. end <= start)."""

    pass


class ValidationError(Exception):
    """Raised when request input validation fails."""

    pass
