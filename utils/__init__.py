"""Shared utilities: logging, datetimes, exceptions, input validation."""
