from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import AgentStatus


@dataclass(frozen=True)
class Agent:
    """Field/service agent as seen by the shift tracker.

    Identity data is owned elsewhere; ``current_status`` and
    ``current_session_id`` are a cached projection of the session state.
    """

    agent_id: int
    full_name: str
    department_id: Optional[int]
    shift_id: Optional[int]
    current_status: AgentStatus = AgentStatus.OFFLINE
    current_session_id: Optional[int] = None
