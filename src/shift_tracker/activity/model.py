from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.enums import ActivityType


@dataclass(frozen=True)
class ActivityLog:
    """Append-only audit entry."""

    log_id: int
    agent_id: int
    activity_type: ActivityType
    action: str
    created_at: datetime
    session_id: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    performed_by: Optional[int] = None
