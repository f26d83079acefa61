from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence, Tuple

from ..core.enums import CheckInStatus, SessionStatus
from .model import AgentSession, SessionListRow


class SessionRepository(Protocol):
    def get_by_id(self, session_id: int, *, for_update: bool = False) -> Optional[AgentSession]:
        raise NotImplementedError

    def get_for_agent_and_date(
        self, agent_id: int, work_date: date, *, for_update: bool = False
    ) -> Optional[AgentSession]:
        raise NotImplementedError

    def create(
        self,
        *,
        agent_id: int,
        shift_id: int,
        work_date: date,
        check_in: datetime,
        check_in_status: CheckInStatus,
        late_minutes: int,
        check_in_ip: Optional[str] = None,
        check_in_location: Optional[dict] = None,
    ) -> int:
        """Insert an ``active`` session; raises AlreadyCheckedIn on the (agent, date) unique key."""

        raise NotImplementedError

    def update_status(self, session_id: int, *, expected: SessionStatus, status: SessionStatus) -> bool:
        raise NotImplementedError

    def add_break_minutes(self, session_id: int, *, minutes: int) -> bool:
        """Finish a break: ``on_break -> active`` and accumulate the minutes."""

        raise NotImplementedError

    def complete(
        self,
        session_id: int,
        *,
        check_out: datetime,
        total_work_minutes: int,
        overtime_minutes: int,
        check_out_ip: Optional[str] = None,
        check_out_location: Optional[dict] = None,
    ) -> bool:
        raise NotImplementedError

    def mark_incomplete(self, session_id: int, *, expected: SessionStatus, notes: Optional[str]) -> bool:
        raise NotImplementedError

    def list_for_agent(self, agent_id: int, *, start_date: date, end_date: date) -> Sequence[AgentSession]:
        raise NotImplementedError

    def list_sessions(
        self,
        *,
        start_date: date,
        end_date: date,
        agent_id: Optional[int] = None,
        department_id: Optional[int] = None,
        status: Optional[SessionStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[Sequence[SessionListRow], int]:
        raise NotImplementedError

    def list_open_before(self, work_date: date) -> Sequence[AgentSession]:
        raise NotImplementedError
