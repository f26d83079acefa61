from datetime import datetime

from shift_tracker.core.enums import CheckInStatus
from shift_tracker.sessions.factory import CheckInStrategyFactory
from shift_tracker.sessions.strategies.early_strategy import EarlyStrategy
from shift_tracker.sessions.strategies.late_strategy import LateStrategy
from shift_tracker.sessions.strategies.normal_strategy import NormalStrategy

SHIFT_START = datetime(2026, 1, 5, 9, 0, 0)


def _decide(now: datetime, grace: int = 10):
    factory = CheckInStrategyFactory()
    strategy = factory.for_check_in(now=now, shift_start=SHIFT_START, grace_minutes=grace)
    return strategy, strategy.decide(now=now, shift_start=SHIFT_START, grace_minutes=grace)


def test_factory_before_start_is_early():
    strategy, decision = _decide(datetime(2026, 1, 5, 8, 45))

    assert isinstance(strategy, EarlyStrategy)
    assert decision.status == CheckInStatus.EARLY
    assert decision.late_minutes == 0


def test_factory_within_grace_is_on_time_with_minutes_past_start():
    strategy, decision = _decide(datetime(2026, 1, 5, 9, 7))

    assert isinstance(strategy, NormalStrategy)
    assert decision.status == CheckInStatus.ON_TIME
    assert decision.late_minutes == 7


def test_factory_exactly_at_grace_end_is_still_on_time():
    strategy, decision = _decide(datetime(2026, 1, 5, 9, 10, 0))

    assert isinstance(strategy, NormalStrategy)
    assert decision.late_minutes == 10


def test_factory_after_grace_counts_from_grace_end():
    strategy, decision = _decide(datetime(2026, 1, 5, 9, 25))

    assert isinstance(strategy, LateStrategy)
    assert decision.status == CheckInStatus.LATE
    assert decision.late_minutes == 15


def test_partial_minutes_are_floored():
    _, decision = _decide(datetime(2026, 1, 5, 9, 25, 59))

    assert decision.late_minutes == 15


def test_zero_grace_makes_any_delay_late():
    strategy, decision = _decide(datetime(2026, 1, 5, 9, 1), grace=0)

    assert isinstance(strategy, LateStrategy)
    assert decision.late_minutes == 1
