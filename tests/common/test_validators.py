from datetime import date, datetime

import pytest

from shift_tracker.common.serializers import to_jsonable
from shift_tracker.common.validators import (
    optional_text,
    parse_location,
    require_enum,
    require_non_empty,
    require_positive_int,
)
from shift_tracker.core.enums import BreakType
from shift_tracker.core.exceptions import BreakTooShort, ValidationError
from shift_tracker.sessions.model import SessionPage


def test_require_non_empty_strips():
    assert require_non_empty("  busy ", "reason") == "busy"

    with pytest.raises(ValidationError) as exc:
        require_non_empty("   ", "reason")
    assert exc.value.context == {"field": "reason"}


@pytest.mark.parametrize("value", [0, -3, "abc", None])
def test_require_positive_int_rejects(value):
    with pytest.raises(ValidationError):
        require_positive_int(value, "duration")


def test_require_positive_int_accepts_numeric_strings():
    assert require_positive_int("12", "duration") == 12


def test_require_enum_lists_allowed_values():
    assert require_enum(BreakType, "lunch", "break_type") is BreakType.LUNCH

    with pytest.raises(ValidationError) as exc:
        require_enum(BreakType, "nap", "break_type")
    assert exc.value.context["allowed"] == ["short", "lunch", "emergency"]


def test_optional_text():
    assert optional_text(None) is None
    assert optional_text("  ") is None
    assert optional_text(" hi ") == "hi"


def test_parse_location():
    assert parse_location(None) is None
    assert parse_location({"lat": "10.5", "lng": 106}) == {"lat": 10.5, "lng": 106.0}

    with pytest.raises(ValidationError):
        parse_location({"lat": 1})
    with pytest.raises(ValidationError):
        parse_location({"lat": "north", "lng": 1})


def test_to_jsonable_handles_domain_types():
    page = SessionPage(items=[], page=1, limit=20, total=0)

    assert to_jsonable(
        {"when": datetime(2026, 1, 5, 9, 0), "day": date(2026, 1, 5), "types": frozenset({BreakType.SHORT})}
    ) == {"when": "2026-01-05T09:00:00", "day": "2026-01-05", "types": ["short"]}
    assert to_jsonable(page) == {"items": [], "page": 1, "limit": 20, "total": 0}


def test_policy_violation_payload_names_rule():
    err = BreakTooShort(min_duration=10, requested=5)

    assert err.to_dict() == {
        "error": "shift.breakTooShort",
        "message": err.default_message,
        "context": {"min_duration": 10, "requested": 5},
        "rule": "min_duration",
    }
