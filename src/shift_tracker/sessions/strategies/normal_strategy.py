from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import minutes_between
from ...core.enums import CheckInStatus
from .base import CheckInDecision, CheckInStrategy


class NormalStrategy(CheckInStrategy):
    """On-time check-in; minutes past the start are still reported."""

    def decide(self, *, now: datetime, shift_start: datetime, grace_minutes: int) -> CheckInDecision:
        return CheckInDecision(status=CheckInStatus.ON_TIME, late_minutes=max(0, minutes_between(shift_start, now)))
