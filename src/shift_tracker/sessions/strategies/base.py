from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from ...core.enums import CheckInStatus


@dataclass(frozen=True)
class CheckInDecision:
    status: CheckInStatus
    late_minutes: int = 0


class CheckInStrategy(ABC):
    """Strategy Pattern: how a check-in is classified against the shift start."""

    @abstractmethod
    def decide(self, *, now: datetime, shift_start: datetime, grace_minutes: int) -> CheckInDecision:
        raise NotImplementedError
