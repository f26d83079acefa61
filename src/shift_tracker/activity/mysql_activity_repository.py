from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ..core.enums import ActivityType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, load_json
from .model import ActivityLog
from .repository import ActivityLogRepository

_COLUMNS = "log_id, agent_id, session_id, activity_type, action, metadata, ip_address, performed_by, created_at"


def _row_to_log(r: Dict[str, Any]) -> ActivityLog:
    return ActivityLog(
        log_id=int(r["log_id"]),
        agent_id=int(r["agent_id"]),
        session_id=r.get("session_id"),
        activity_type=ActivityType(r["activity_type"]),
        action=r["action"],
        metadata=load_json(r.get("metadata"), default={}),
        ip_address=r.get("ip_address"),
        performed_by=r.get("performed_by"),
        created_at=r["created_at"],
    )


class MySQLActivityLogRepository(ActivityLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO activity_logs(
                    agent_id, session_id, activity_type, action, metadata, ip_address, performed_by, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    agent_id,
                    session_id,
                    activity_type.value,
                    action,
                    dump_json(metadata or {}),
                    ip_address,
                    performed_by,
                    created_at,
                ),
            )
            return int(cur.lastrowid)

    def list_for_agent(self, agent_id: int, *, limit: int) -> Sequence[ActivityLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM activity_logs WHERE agent_id=%s ORDER BY created_at DESC, log_id DESC LIMIT %s",
                (agent_id, int(limit)),
            )
            return [_row_to_log(r) for r in fetchall(cur)]

    def list_for_session(self, session_id: int) -> Sequence[ActivityLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM activity_logs WHERE session_id=%s ORDER BY created_at, log_id",
                (session_id,),
            )
            return [_row_to_log(r) for r in fetchall(cur)]

    def list_between(
        self,
        *,
        start: datetime,
        end: datetime,
        agent_id: Optional[int] = None,
        activity_type: Optional[ActivityType] = None,
        limit: Optional[int] = None,
    ) -> Sequence[ActivityLog]:
        where = ["created_at BETWEEN %s AND %s"]
        params: List[Any] = [start, end]
        if agent_id is not None:
            where.append("agent_id=%s")
            params.append(agent_id)
        if activity_type is not None:
            where.append("activity_type=%s")
            params.append(activity_type.value)

        sql = f"SELECT {_COLUMNS} FROM activity_logs WHERE {' AND '.join(where)} ORDER BY created_at DESC, log_id DESC"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_log(r) for r in fetchall(cur)]
