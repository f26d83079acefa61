from __future__ import annotations

from datetime import datetime

from ...core.enums import CheckInStatus
from .base import CheckInDecision, CheckInStrategy


class EarlyStrategy(CheckInStrategy):
    """Check-in before the shift starts."""

    def decide(self, *, now: datetime, shift_start: datetime, grace_minutes: int) -> CheckInDecision:
        return CheckInDecision(status=CheckInStatus.EARLY, late_minutes=0)
