from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Protocol, Sequence

from ..core.enums import BreakStatus, BreakType
from .model import BreakRequest, PendingBreakRow


class BreakRequestRepository(Protocol):
    def create(
        self,
        *,
        session_id: int,
        agent_id: int,
        policy_id: int,
        break_type: BreakType,
        requested_duration: int,
        status: BreakStatus,
        auto_approved: bool,
        created_at: datetime,
        reason: Optional[str] = None,
        violated_rules: Optional[List[str]] = None,
    ) -> int:
        raise NotImplementedError

    def get_by_id(self, break_id: int, *, for_update: bool = False) -> Optional[BreakRequest]:
        raise NotImplementedError

    def get_active_for_agent(self, agent_id: int, *, for_update: bool = False) -> Optional[BreakRequest]:
        raise NotImplementedError

    def get_active_for_session(self, session_id: int) -> Optional[BreakRequest]:
        raise NotImplementedError

    def has_pending(self, session_id: int) -> bool:
        raise NotImplementedError

    def list_for_session(
        self, session_id: int, *, statuses: Optional[Iterable[BreakStatus]] = None
    ) -> Sequence[BreakRequest]:
        raise NotImplementedError

    def count_for_session(self, session_id: int, *, statuses: Iterable[BreakStatus]) -> int:
        raise NotImplementedError

    def last_break_end(self, agent_id: int) -> Optional[datetime]:
        """End time of the agent's most recently completed break, any day."""

        raise NotImplementedError

    def list_pending(
        self, *, department_id: Optional[int] = None, agent_id: Optional[int] = None
    ) -> Sequence[PendingBreakRow]:
        raise NotImplementedError

    # ---- conditional transitions: False means the row was not in ``expected`` ----

    def mark_reviewed(
        self,
        break_id: int,
        *,
        status: BreakStatus,
        reviewed_by: int,
        reviewed_at: datetime,
        review_note: Optional[str] = None,
    ) -> bool:
        """``pending -> approved|rejected``."""

        raise NotImplementedError

    def mark_started(self, break_id: int, *, start_time: datetime) -> bool:
        """``approved -> active``."""

        raise NotImplementedError

    def mark_completed(
        self, break_id: int, *, end_time: datetime, actual_duration: int, violated_rules: List[str]
    ) -> bool:
        """``active -> completed``."""

        raise NotImplementedError

    def mark_cancelled(
        self, break_id: int, *, expected: BreakStatus, end_time: Optional[datetime] = None, note: Optional[str] = None
    ) -> bool:
        raise NotImplementedError
