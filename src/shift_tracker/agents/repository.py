from __future__ import annotations

from typing import Optional, Protocol

from ..core.enums import AgentStatus
from .model import Agent


class AgentRepository(Protocol):
    def get_by_id(self, agent_id: int) -> Optional[Agent]:
        raise NotImplementedError

    def update_status(self, agent_id: int, *, status: AgentStatus, session_id: Optional[int]) -> None:
        """Write the cached status; only called inside the session/break transaction."""

        raise NotImplementedError
