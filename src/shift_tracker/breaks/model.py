from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..core.enums import BreakStatus, BreakType


@dataclass(frozen=True)
class BreakRequest:
    """A requested break and, once started, its actual timing."""

    break_id: int
    session_id: int
    agent_id: int
    policy_id: int
    break_type: BreakType
    requested_duration: int
    status: BreakStatus
    created_at: datetime
    auto_approved: bool = False
    actual_duration: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    reason: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_note: Optional[str] = None
    violated_rules: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PendingBreakRow:
    """Supervisor queue entry: the request plus who asked for it."""

    request: BreakRequest
    agent_name: str
    department_id: Optional[int]


@dataclass(frozen=True)
class BreakRequestResult:
    break_request: BreakRequest
    requires_approval: bool
