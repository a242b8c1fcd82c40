"""
Input validation utilities for HTTP query and path parameters.
"""

import re
from datetime import date
from typing import Optional

from utils.exceptions import ValidationError


def validate_uuid(uuid_string: str) -> bool:
    """
    Validate UUID format.

    Args:
        uuid_string: UUID string

    Returns:
        True if valid UUID format, False otherwise
    """
    if not uuid_string or not isinstance(uuid_string, str):
        return False

    # UUID format: 8-4-4-4-12 hexadecimal digits
    pattern = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
    return bool(re.match(pattern, uuid_string.lower()))


def require_uuid(value: Optional[str], name: str) -> str:
    """Return the value if it is a UUID, else raise ValidationError."""
    if not value:
        raise ValidationError(f"{name} is required")
    if not validate_uuid(value):
        raise ValidationError(f"Invalid {name} format")
    return value


def parse_date_param(value: Optional[str], name: str = "date") -> date:
    """
    Parse a YYYY-MM-DD query parameter.

    Raises:
        ValidationError: If missing or not a valid calendar date
    """
    if not value:
        raise ValidationError(f"{name} is required (YYYY-MM-DD format)")
    if not re.match(r"^\d{4}-\d{2}-\d{2}$", value):
        raise ValidationError(f"Invalid {name} format. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {name}: {value}") from e


def parse_int_param(
    value: Optional[str],
    name: str,
    minimum: int = 1,
    maximum: Optional[int] = None,
    default: Optional[int] = None,
) -> int:
    """
    Parse a bounded integer query parameter.

    Raises:
        ValidationError: If missing (without default), non-numeric or out of range
    """
    if value is None or value == "":
        if default is None:
            raise ValidationError(f"{name} is required")
        return default

    try:
        parsed = int(value)
    except ValueError as e:
        raise ValidationError(f"{name} must be an integer") from e

    if parsed < minimum:
        raise ValidationError(f"{name} must be >= {minimum}")
    if maximum is not None and parsed > maximum:
        raise ValidationError(f"{name} must be <= {maximum}")
    return parsed


def sanitize_text(text: str, max_length: Optional[int] = None) -> str:
    """
    Sanitize user input text.

    Args:
        text: Input text
        max_length: Optional maximum length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Remove control characters except newlines and tabs
    sanitized = re.sub(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]", "", str(text))
    sanitized = sanitized.strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
