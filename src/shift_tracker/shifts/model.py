from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from typing import FrozenSet, Optional

from ..common.datetime_utils import shift_duration_minutes
from ..core import constants
from ..core.enums import AssignmentType, BreakType


@dataclass(frozen=True)
class Shift:
    """Work shift definition. ``end_time <= start_time`` means it crosses midnight."""

    shift_id: int
    name: str
    start_time: time
    end_time: time
    grace_period_minutes: int = 0
    allow_overtime: bool = False
    overtime_requires_approval: bool = True
    max_overtime_minutes: int = 0
    max_late_minutes: Optional[int] = None
    assignment_type: AssignmentType = AssignmentType.ALL
    department_id: Optional[int] = None
    is_active: bool = True

    @property
    def crosses_midnight(self) -> bool:
        return self.end_time <= self.start_time

    @property
    def duration_minutes(self) -> int:
        return shift_duration_minutes(self.start_time, self.end_time)


@dataclass(frozen=True)
class BreakPolicy:
    """Per-shift limits the break policy engine enforces."""

    policy_id: int
    shift_id: int
    max_breaks_per_day: int = constants.DEFAULT_MAX_BREAKS_PER_DAY
    min_duration: int = constants.DEFAULT_MIN_BREAK_MINUTES
    max_duration: int = constants.DEFAULT_MAX_BREAK_MINUTES
    auto_approve_limit: int = constants.DEFAULT_AUTO_APPROVE_LIMIT
    cooldown_minutes: int = constants.DEFAULT_COOLDOWN_MINUTES
    allowed_break_types: FrozenSet[BreakType] = field(default_factory=lambda: frozenset(BreakType))
    preferred_start_time: Optional[time] = None
    preferred_end_time: Optional[time] = None
    # Stored only: enforcing it needs a meeting calendar we do not have.
    block_during_meetings: bool = False
    meeting_buffer_minutes: int = constants.DEFAULT_MEETING_BUFFER_MINUTES
