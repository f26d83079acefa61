from __future__ import annotations

from typing import Optional

from ..core.enums import AgentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Agent
from .repository import AgentRepository


class MySQLAgentRepository(AgentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, agent_id: int) -> Optional[Agent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT agent_id, full_name, department_id, shift_id, current_status, current_session_id
                FROM agents
                WHERE agent_id=%s
                """,
                (agent_id,),
            )
            row = fetchone(cur)
            if not row:
                return None
            return Agent(
                agent_id=int(row["agent_id"]),
                full_name=row["full_name"],
                department_id=row.get("department_id"),
                shift_id=row.get("shift_id"),
                current_status=AgentStatus(row.get("current_status") or AgentStatus.OFFLINE.value),
                current_session_id=row.get("current_session_id"),
            )

    def update_status(self, agent_id: int, *, status: AgentStatus, session_id: Optional[int]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE agents SET current_status=%s, current_session_id=%s WHERE agent_id=%s",
                (status.value, session_id, agent_id),
            )
