"""
Custom validators
"""
import re
from typing import Any

from iara.utils.exceptions import (
    PayloadTooLargeError,
    UnsupportedMediaError,
    ValidationError,
)

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 5000

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "image/jpeg",
    "image/png",
    "image/gif",
}

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def validate_text_field(value: Any, field: str, min_length: int, max_length: int) -> str:
    """Return the trimmed value or raise ValidationError."""
    if value is None or not isinstance(value, str):
        raise ValidationError(f"{field} is required and must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"{field} is required")
    if len(trimmed) < min_length or len(trimmed) > max_length:
        raise ValidationError(
            f"{field} must be between {min_length} and {max_length} characters"
        )
    return trimmed


def validate_title(title: Any) -> str:
    return validate_text_field(title, "title", TITLE_MIN_LENGTH, TITLE_MAX_LENGTH)


def validate_description(description: Any) -> str:
    return validate_text_field(
        description, "description", DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH
    )


def normalize_content_type(content_type: str) -> str:
    """'Application/PDF; charset=binary' -> 'application/pdf'"""
    return (content_type or "").split(";", 1)[0].strip().lower()


def validate_content_type(content_type: str) -> str:
    normalized = normalize_content_type(content_type)
    if normalized not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedMediaError(content_type)
    return normalized


def validate_file_size(filename: str, size: int, max_bytes: int) -> int:
    if size is None or size < 0:
        raise ValidationError(f"Invalid size for file {filename}")
    if size > max_bytes:
        raise PayloadTooLargeError(filename, max_bytes)
    return size


def validate_case_id(case_id: Any) -> str:
    if not case_id or not isinstance(case_id, str) or not case_id.strip():
        raise ValidationError("caseId is required")
    return case_id.strip()


def is_case_id(value: str) -> bool:
    return bool(UUID_PATTERN.match(value))
