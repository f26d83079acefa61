from dataclasses import replace
from datetime import datetime, time

import pytest

from shift_tracker.breaks.rules import (
    DEFAULT_RULES,
    BreakRequestContext,
    CooldownRule,
    PreferredWindowRule,
    evaluate_rules,
)
from shift_tracker.core.enums import BreakType
from shift_tracker.core.exceptions import (
    BreakCooldownActive,
    BreakTooLong,
    BreakTooShort,
    BreakTypeNotAllowed,
    MaxBreaksReached,
)
from shift_tracker.shifts.model import BreakPolicy

POLICY = BreakPolicy(
    policy_id=1,
    shift_id=1,
    max_breaks_per_day=2,
    min_duration=10,
    max_duration=30,
    auto_approve_limit=15,
    cooldown_minutes=90,
    allowed_break_types=frozenset({BreakType.SHORT, BreakType.LUNCH}),
)
NOW = datetime(2026, 1, 5, 13, 30)


def ctx(**overrides) -> BreakRequestContext:
    values = dict(policy=POLICY, break_type=BreakType.SHORT, requested_duration=12, now=NOW)
    values.update(overrides)
    return BreakRequestContext(**values)


def test_valid_request_has_no_violations():
    assert evaluate_rules(ctx()) == []


def test_too_short_reports_limits():
    with pytest.raises(BreakTooShort) as exc:
        evaluate_rules(ctx(requested_duration=5))

    assert exc.value.context == {"min_duration": 10, "requested": 5}


def test_too_long_reports_limits():
    with pytest.raises(BreakTooLong) as exc:
        evaluate_rules(ctx(requested_duration=45))

    assert exc.value.context == {"max_duration": 30, "requested": 45}


def test_max_breaks_counts_taken():
    with pytest.raises(MaxBreaksReached) as exc:
        evaluate_rules(ctx(breaks_taken=2))

    assert exc.value.context == {"max_breaks": 2, "taken": 2}


def test_cooldown_remaining_minutes():
    with pytest.raises(BreakCooldownActive) as exc:
        evaluate_rules(ctx(last_break_end=datetime(2026, 1, 5, 13, 0)))

    assert exc.value.context == {"cooldown_minutes": 90, "remaining_minutes": 60}


def test_cooldown_elapsed_allows_request():
    assert CooldownRule().check(ctx(last_break_end=datetime(2026, 1, 5, 12, 0))) is None


def test_type_not_allowed_lists_allowed_types():
    with pytest.raises(BreakTypeNotAllowed) as exc:
        evaluate_rules(ctx(break_type=BreakType.EMERGENCY))

    assert exc.value.context == {"type": "emergency", "allowed_types": ["lunch", "short"]}


def test_first_failing_rule_wins():
    # too short, too many breaks and wrong type at once
    with pytest.raises(BreakTooShort):
        evaluate_rules(ctx(requested_duration=1, breaks_taken=5, break_type=BreakType.EMERGENCY))


def test_preferred_window_is_advisory():
    policy = replace(POLICY, preferred_start_time=time(11, 0), preferred_end_time=time(13, 0))

    assert evaluate_rules(ctx(policy=policy)) == ["preferred_window"]
    assert PreferredWindowRule().check(ctx(policy=policy, now=datetime(2026, 1, 5, 12, 0))) is None


def test_rule_order():
    assert [r.code for r in DEFAULT_RULES] == [
        "min_duration",
        "max_duration",
        "max_breaks",
        "cooldown",
        "break_type",
        "preferred_window",
    ]
