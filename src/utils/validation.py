"""
Input validation utilities for the record pipeline.

Provides reusable validation functions for identifiers and numeric
options taken from HTTP paths and the command line.
"""

import re


class ValidationError(ValueError):
    """Raised when input validation fails."""
    pass


MAX_RECORD_ID_LENGTH = 1024

# Control characters and path separators are not allowed in blob keys
_FORBIDDEN_ID_CHARS = re.compile(r"[\x00-\x1f\x7f/\\]")


def validate_record_id(record_id: str, field_name: str = "record_id") -> str:
    """
    Validate a record ID used to address the store and blob storage.

    Args:
        record_id: The record ID to validate
        field_name: Name of the field (for error messages)

    Returns:
        The validated record ID

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> validate_record_id("order-123")
        'order-123'
        >>> validate_record_id("a/../b")  # doctest: +SKIP
        ValidationError: record_id contains invalid characters
    """
    if not isinstance(record_id, str) or not record_id.strip():
        raise ValidationError(f"{field_name} is required")

    if _FORBIDDEN_ID_CHARS.search(record_id) or record_id in (".", ".."):
        raise ValidationError(
            f"{field_name} contains invalid characters. "
            "Path separators and control characters are not allowed."
        )

    if len(record_id) > MAX_RECORD_ID_LENGTH:
        raise ValidationError(f"{field_name} exceeds maximum length of {MAX_RECORD_ID_LENGTH} characters")

    return record_id


def validate_positive_int(value: int, field_name: str = "value", maximum: int | None = None) -> int:
    """
    Validate a positive integer option.

    Args:
        value: Value to validate
        field_name: Name of the field (for error messages)
        maximum: Optional upper bound

    Returns:
        The validated value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"{field_name} must be a positive integer")

    if maximum is not None and value > maximum:
        raise ValidationError(f"{field_name} exceeds maximum of {maximum}")

    return value
