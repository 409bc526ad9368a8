"""Input checks applied before any value is interpolated into a switch command."""

from __future__ import annotations

import posixpath
import re
import uuid

from fsapi.core.errors import ValidationError


_DTMF_RE = re.compile(r"^[0-9*#A-Da-dwW]+$")


def validate_uuid(value: str) -> str:
    try:
        uuid.UUID(value)
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"invalid UUID format: {value}") from None
    return value


def validate_file_path(path: str) -> str:
    if not path:
        raise ValidationError("path cannot be empty")
    if not posixpath.isabs(posixpath.normpath(path)):
        raise ValidationError("path must be absolute")
    if ".." in path:
        raise ValidationError("path traversal not allowed")
    return validate_token(path, "path")


def validate_token(value: str, name: str, *, required: bool = True) -> str:
    """A single command argument: no whitespace, no control characters."""

    if not value:
        if required:
            raise ValidationError(f"{name} is required")
        return value
    if any(char.isspace() or ord(char) < 32 or ord(char) == 127 for char in value):
        raise ValidationError(f"{name} must not contain whitespace or control characters")
    return value


def validate_quoted(value: str, name: str) -> str:
    """A value that is wrapped in single quotes on the command line."""

    if "'" in value:
        raise ValidationError(f"{name} must not contain single quotes")
    _reject_unsafe_chars(value, name)
    return value


def validate_variable_value(value: str, name: str) -> str:
    """A value inside the ``{k=v,...}`` originate prefix."""

    validate_token(value, name, required=False)
    if any(char in value for char in ",{}'"):
        raise ValidationError(f"{name} must not contain ',', '{{', '}}' or single quotes")
    return value


def validate_dtmf(digits: str) -> str:
    if not digits:
        raise ValidationError("digits are required")
    if not _DTMF_RE.match(digits):
        raise ValidationError("digits may only contain 0-9, *, #, A-D and w/W")
    return digits


def validate_non_negative(value, name: str) -> None:
    """Zero means unset; only negative values are rejected."""

    if value is not None and value < 0:
        raise ValidationError(f"{name} must not be negative")


def validate_choice(value: str, name: str, choices) -> str:
    if value not in choices:
        quoted = ", ".join(f"'{choice}'" for choice in choices)
        raise ValidationError(f"{name} must be one of: {quoted}")
    return value


def _reject_unsafe_chars(value: str, name: str) -> None:
    if any(ord(char) < 32 or ord(char) == 127 for char in value):
        raise ValidationError(f"{name} must not contain control characters")
