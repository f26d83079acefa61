from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Protocol, Sequence

from ..core.enums import ActivityType
from .model import ActivityLog


class ActivityLogRepository(Protocol):
    """Insert and read only; audit rows are never updated or deleted."""

    def append(
        self,
        *,
        agent_id: int,
        activity_type: ActivityType,
        action: str,
        created_at: datetime,
        session_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        performed_by: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def list_for_agent(self, agent_id: int, *, limit: int) -> Sequence[ActivityLog]:
        raise NotImplementedError

    def list_for_session(self, session_id: int) -> Sequence[ActivityLog]:
        raise NotImplementedError

    def list_between(
        self,
        *,
        start: datetime,
        end: datetime,
        agent_id: Optional[int] = None,
        activity_type: Optional[ActivityType] = None,
        limit: Optional[int] = None,
    ) -> Sequence[ActivityLog]:
        raise NotImplementedError
