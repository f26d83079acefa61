from __future__ import annotations

from datetime import datetime, timedelta

from ...common.datetime_utils import minutes_between
from ...core.enums import CheckInStatus
from .base import CheckInDecision, CheckInStrategy


class LateStrategy(CheckInStrategy):
    """Late check-in: minutes counted from the end of the grace period."""

    def decide(self, *, now: datetime, shift_start: datetime, grace_minutes: int) -> CheckInDecision:
        grace_end = shift_start + timedelta(minutes=grace_minutes)
        return CheckInDecision(status=CheckInStatus.LATE, late_minutes=max(0, minutes_between(grace_end, now)))
