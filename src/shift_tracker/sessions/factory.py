from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from .strategies.base import CheckInStrategy
from .strategies.early_strategy import EarlyStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy


@dataclass
class CheckInStrategyFactory:
    """Factory Pattern: choose the check-in strategy from the clock and the shift start."""

    def for_check_in(self, *, now: datetime, shift_start: datetime, grace_minutes: int) -> CheckInStrategy:
        if now < shift_start:
            return EarlyStrategy()
        if now <= shift_start + timedelta(minutes=grace_minutes):
            return NormalStrategy()
        return LateStrategy()
