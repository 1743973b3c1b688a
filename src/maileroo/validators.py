"""Request field validators.

All checks count characters as Unicode code points, so a multi-byte
character counts as one towards a length limit.
"""

import re
from typing import Any, Mapping, Sequence

from .exceptions import ValidationError

MAX_SUBJECT_LENGTH = 255
MAX_ASSOCIATIVE_MAP_KEY_LENGTH = 128
MAX_ASSOCIATIVE_MAP_VALUE_LENGTH = 768
REFERENCE_ID_LENGTH = 24

_REFERENCE_ID_RE = re.compile(r"[0-9a-fA-F]{%d}" % REFERENCE_ID_LENGTH)


def require_subject(subject: str) -> None:
    """Check that a subject is non-empty and within the length limit.

    Args:
        subject: Email subject line

    Raises:
        ValidationError: If the subject is blank or too long
    """
    if (
        not isinstance(subject, str)
        or not subject.strip()
        or len(subject) > MAX_SUBJECT_LENGTH
    ):
        raise ValidationError(
            f"subject must be a non-empty string with a maximum length of "
            f"{MAX_SUBJECT_LENGTH} characters"
        )


def require_recipients(addresses: Sequence[Any], field: str = "to") -> None:
    """Check that an address list has at least one entry."""
    if not addresses:
        raise ValidationError(
            f"field {field} is required and must have at least one recipient"
        )


def is_associative_value(value: Any) -> bool:
    """Return True for the primitive types allowed in tags and headers."""
    return isinstance(value, (str, bool, int, float))


def stringify_associative_value(value: Any) -> str:
    """Render a tag/header value the way it is measured against the limit."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def validate_associative_map(mapping: Mapping[str, Any], label: str) -> None:
    """Validate a flat mapping such as tags or custom headers.

    Args:
        mapping: Mapping to validate
        label: Field name used in error messages

    Raises:
        ValidationError: On the first offending entry
    """
    if not isinstance(mapping, Mapping):
        raise ValidationError(f"{label} must be an associative map")

    for key, value in mapping.items():
        if not isinstance(key, str) or not key.strip():
            raise ValidationError(f"{label} keys must be non-empty strings")

        if len(key) > MAX_ASSOCIATIVE_MAP_KEY_LENGTH:
            raise ValidationError(
                f"{label} key must not exceed {MAX_ASSOCIATIVE_MAP_KEY_LENGTH} characters"
            )

        if not is_associative_value(value):
            raise ValidationError(
                f"{label} must be an associative map with string keys and values "
                f"(string/number/bool)"
            )

        if len(stringify_associative_value(value)) > MAX_ASSOCIATIVE_MAP_VALUE_LENGTH:
            raise ValidationError(
                f"{label} value must not exceed {MAX_ASSOCIATIVE_MAP_VALUE_LENGTH} characters"
            )


def validate_template_data(mapping: Mapping[str, Any]) -> None:
    """Validate template variables. Only the keys are constrained."""
    if not isinstance(mapping, Mapping):
        raise ValidationError("template_data must be an associative map")

    for key in mapping:
        if not isinstance(key, str) or not key.strip():
            raise ValidationError("template_data keys must be strings and non-empty")


def validate_reference_id(reference_id: str) -> None:
    """Check that a reference id is exactly 24 hex characters.

    Raises:
        ValidationError: If the id has surrounding whitespace or the wrong shape
    """
    if not isinstance(reference_id, str):
        raise ValidationError(
            f"reference_id must be a {REFERENCE_ID_LENGTH}-character hexadecimal string"
        )

    if reference_id != reference_id.strip():
        raise ValidationError("reference_id must not contain whitespace")

    if not _REFERENCE_ID_RE.fullmatch(reference_id):
        raise ValidationError(
            f"reference_id must be a {REFERENCE_ID_LENGTH}-character hexadecimal string"
        )
