from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Principal role injected by the gateway."""

    AGENT = "agent"
    SUPERVISOR = "supervisor"


class AgentStatus(str, Enum):
    """Cached projection of what the agent is doing right now."""

    OFFLINE = "offline"
    ACTIVE = "active"
    LATE = "late"
    ON_BREAK = "on_break"


class CheckInStatus(str, Enum):
    ON_TIME = "on_time"
    LATE = "late"
    EARLY = "early"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    ON_BREAK = "on_break"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"

    @property
    def is_open(self) -> bool:
        return self in (SessionStatus.ACTIVE, SessionStatus.ON_BREAK)


class BreakType(str, Enum):
    SHORT = "short"
    LUNCH = "lunch"
    EMERGENCY = "emergency"


class BreakStatus(str, Enum):
    """Break request lifecycle: pending -> approved -> active -> completed."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that count against max_breaks_per_day.
COUNTED_BREAK_STATUSES = frozenset({BreakStatus.APPROVED, BreakStatus.ACTIVE, BreakStatus.COMPLETED})


class AssignmentType(str, Enum):
    ALL = "all"
    DEPARTMENT = "department"
    SPECIFIC = "specific"


class ActivityType(str, Enum):
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    BREAK_REQUEST = "break_request"
    BREAK_START = "break_start"
    BREAK_END = "break_end"
    BREAK_APPROVED = "break_approved"
    BREAK_REJECTED = "break_rejected"
    BREAK_CANCELLED = "break_cancelled"
    STATUS_CHANGE = "status_change"
    SHIFT_CHANGE = "shift_change"
    OVERTIME_REQUEST = "overtime_request"
    OVERTIME_APPROVED = "overtime_approved"
    SYSTEM_EVENT = "system_event"
