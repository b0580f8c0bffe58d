from __future__ import annotations

from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_text(value: Any, field_name: str) -> str:
    """Text field from a request body; None becomes ""."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be text")
    return value


def require_non_empty(value: Any, field_name: str) -> str:
    v = require_text(value, field_name).strip()
    if not v:
        raise ValidationError(f"{field_name} is required")
    return v


def optional_text(value: Any, field_name: str, max_len: int) -> Optional[str]:
    v = require_text(value, field_name).strip()
    if len(v) > max_len:
        raise ValidationError(f"{field_name} must be at most {max_len} characters")
    return v or None


def require_positive_id(value, field_name: str) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is invalid")
    if v <= 0:
        raise ValidationError(f"{field_name} is invalid")
    return v
