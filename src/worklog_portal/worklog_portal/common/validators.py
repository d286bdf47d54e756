from __future__ import annotations

import re

from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_HHMM_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_max_length(value: str | None, field_name: str, max_len: int) -> str | None:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} must be at most {max_len} characters")
    return value


def require_email(value: str, field_name: str = "Email") -> str:
    value = require_non_empty(value, field_name).lower()
    if not _EMAIL_RE.match(value):
        raise ValidationError("Invalid email address")
    return value


def require_matching(password: str, confirm: str) -> None:
    if password != confirm:
        raise ValidationError("Passwords don't match")


def require_hhmm(value: str, field_name: str = "Time") -> str:
    """Validate an HH:MM clock value and return it zero-padded."""
    m = _HHMM_RE.match((value or "").strip())
    if not m:
        raise ValidationError(f"Invalid {field_name.lower()} format. Use HH:MM format (e.g., 08:00)")
    return f"{int(m.group(1)):02d}:{m.group(2)}"


def hhmm_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)
