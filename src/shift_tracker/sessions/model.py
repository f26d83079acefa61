from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ..core.enums import AgentStatus, CheckInStatus, SessionStatus
from ..core.exceptions import InvalidStateTransition

SESSION_TRANSITIONS = {
    SessionStatus.ACTIVE: frozenset({SessionStatus.ON_BREAK, SessionStatus.COMPLETED, SessionStatus.INCOMPLETE}),
    SessionStatus.ON_BREAK: frozenset({SessionStatus.ACTIVE, SessionStatus.INCOMPLETE}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.INCOMPLETE: frozenset(),
}


def ensure_session_transition(current: SessionStatus, target: SessionStatus) -> None:
    if target not in SESSION_TRANSITIONS[current]:
        raise InvalidStateTransition(
            f"Session cannot move from {current.value} to {target.value}",
            entity="session",
            current=current.value,
            target=target.value,
        )


@dataclass(frozen=True)
class AgentSession:
    """One agent's working day, from check-in to check-out."""

    session_id: int
    agent_id: int
    shift_id: int
    work_date: date
    check_in: datetime
    check_in_status: CheckInStatus
    status: SessionStatus
    late_minutes: int = 0
    check_out: Optional[datetime] = None
    total_work_minutes: int = 0
    total_break_minutes: int = 0
    overtime_minutes: int = 0
    check_in_ip: Optional[str] = None
    check_out_ip: Optional[str] = None
    check_in_location: Optional[dict] = None
    check_out_location: Optional[dict] = None
    notes: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status.is_open


@dataclass(frozen=True)
class SessionListRow:
    """Read-model for the supervisor session list (session joined with agent)."""

    session: AgentSession
    agent_name: str
    department_id: Optional[int]


@dataclass(frozen=True)
class CheckInResult:
    session: AgentSession
    shift: Any
    status: CheckInStatus
    late_minutes: int


@dataclass(frozen=True)
class CheckOutSummary:
    total_minutes: int
    work_minutes: int
    break_minutes: int
    overtime_minutes: int
    number_of_breaks: int


@dataclass(frozen=True)
class CheckOutResult:
    session: AgentSession
    summary: CheckOutSummary


@dataclass(frozen=True)
class LiveStats:
    elapsed_minutes: int
    break_minutes: int
    work_minutes: int
    number_of_breaks: int


@dataclass(frozen=True)
class SessionStatusView:
    has_active_session: bool
    status: AgentStatus
    session: Optional[AgentSession] = None
    shift: Any = None
    active_break: Any = None
    stats: Optional[LiveStats] = None


@dataclass(frozen=True)
class SessionDetails:
    session: AgentSession
    breaks: List[Any] = field(default_factory=list)
    activity: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class HistoryTotals:
    sessions: int
    completed: int
    work_minutes: int
    break_minutes: int
    late_minutes: int
    overtime_minutes: int


@dataclass(frozen=True)
class SessionHistory:
    start_date: date
    end_date: date
    sessions: List[AgentSession]
    totals: HistoryTotals


@dataclass(frozen=True)
class SessionPage:
    items: List[SessionListRow]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": self.items,
            "pagination": {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages},
        }
