from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Type, TypeVar

from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required", field=field_name)
    return value.strip()


def require_positive_int(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer", field=field_name)
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than 0", field=field_name)
    return number


def require_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise ValidationError(f"{field_name} must be one of {', '.join(allowed)}", field=field_name, allowed=allowed)


def optional_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


def parse_location(value: Any) -> Optional[dict]:
    """Accept ``{"lat": .., "lng": ..}`` or nothing."""
    if value in (None, ""):
        return None
    if not isinstance(value, dict) or "lat" not in value or "lng" not in value:
        raise ValidationError("location must be an object with lat and lng", field="location")
    try:
        return {"lat": float(value["lat"]), "lng": float(value["lng"])}
    except (TypeError, ValueError):
        raise ValidationError("location lat/lng must be numbers", field="location")
