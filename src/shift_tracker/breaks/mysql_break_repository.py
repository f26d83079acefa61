from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..core.enums import BreakStatus, BreakType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, in_clause, load_json
from .model import BreakRequest, PendingBreakRow
from .repository import BreakRequestRepository

_COLUMNS = """
    b.break_id, b.session_id, b.agent_id, b.policy_id, b.break_type, b.requested_duration,
    b.actual_duration, b.start_time, b.end_time, b.status, b.auto_approved, b.reason,
    b.reviewed_by, b.reviewed_at, b.review_note, b.violated_rules, b.created_at
"""


def _row_to_break(r: Dict[str, Any]) -> BreakRequest:
    return BreakRequest(
        break_id=int(r["break_id"]),
        session_id=int(r["session_id"]),
        agent_id=int(r["agent_id"]),
        policy_id=int(r["policy_id"]),
        break_type=BreakType(r["break_type"]),
        requested_duration=int(r["requested_duration"]),
        actual_duration=r.get("actual_duration"),
        start_time=r.get("start_time"),
        end_time=r.get("end_time"),
        status=BreakStatus(r["status"]),
        auto_approved=bool(r.get("auto_approved")),
        reason=r.get("reason"),
        reviewed_by=r.get("reviewed_by"),
        reviewed_at=r.get("reviewed_at"),
        review_note=r.get("review_note"),
        violated_rules=list(load_json(r.get("violated_rules"), default=[])),
        created_at=r["created_at"],
    )


def _lock(for_update: bool) -> str:
    return " FOR UPDATE" if for_update else ""


class MySQLBreakRequestRepository(BreakRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO break_requests(
                    session_id, agent_id, policy_id, break_type, requested_duration,
                    status, auto_approved, reason, violated_rules, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    session_id,
                    agent_id,
                    policy_id,
                    break_type.value,
                    int(requested_duration),
                    status.value,
                    1 if auto_approved else 0,
                    reason,
                    dump_json(list(violated_rules or [])),
                    created_at,
                ),
            )
            return int(cur.lastrowid)

    def get_by_id(self, break_id: int, *, for_update: bool = False) -> Optional[BreakRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM break_requests b WHERE b.break_id=%s{_lock(for_update)}", (break_id,))
            r = fetchone(cur)
            return _row_to_break(r) if r else None

    def get_active_for_agent(self, agent_id: int, *, for_update: bool = False) -> Optional[BreakRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM break_requests b
                WHERE b.agent_id=%s AND b.status=%s
                ORDER BY b.start_time DESC
                LIMIT 1{_lock(for_update)}
                """,
                (agent_id, BreakStatus.ACTIVE.value),
            )
            r = fetchone(cur)
            return _row_to_break(r) if r else None

    def get_active_for_session(self, session_id: int) -> Optional[BreakRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM break_requests b WHERE b.session_id=%s AND b.status=%s LIMIT 1",
                (session_id, BreakStatus.ACTIVE.value),
            )
            r = fetchone(cur)
            return _row_to_break(r) if r else None

    def has_pending(self, session_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS c FROM break_requests WHERE session_id=%s AND status=%s",
                (session_id, BreakStatus.PENDING.value),
            )
            return int((fetchone(cur) or {}).get("c") or 0) > 0

    def list_for_session(
        self, session_id: int, *, statuses: Optional[Iterable[BreakStatus]] = None
    ) -> Sequence[BreakRequest]:
        sql = f"SELECT {_COLUMNS} FROM break_requests b WHERE b.session_id=%s"
        params: List[Any] = [session_id]
        if statuses is not None:
            values = [s.value for s in statuses]
            if not values:
                return []
            sql += f" AND b.status IN ({in_clause(values)})"
            params.extend(values)
        sql += " ORDER BY b.created_at, b.break_id"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_break(r) for r in fetchall(cur)]

    def count_for_session(self, session_id: int, *, statuses: Iterable[BreakStatus]) -> int:
        values = [s.value for s in statuses]
        if not values:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT COUNT(*) AS c FROM break_requests WHERE session_id=%s AND status IN ({in_clause(values)})",
                tuple([session_id] + values),
            )
            return int((fetchone(cur) or {}).get("c") or 0)

    def last_break_end(self, agent_id: int) -> Optional[datetime]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT MAX(end_time) AS last_end FROM break_requests WHERE agent_id=%s AND status=%s",
                (agent_id, BreakStatus.COMPLETED.value),
            )
            return (fetchone(cur) or {}).get("last_end")

    def list_pending(
        self, *, department_id: Optional[int] = None, agent_id: Optional[int] = None
    ) -> Sequence[PendingBreakRow]:
        where = ["b.status=%s"]
        params: List[Any] = [BreakStatus.PENDING.value]
        if department_id is not None:
            where.append("a.department_id=%s")
            params.append(department_id)
        if agent_id is not None:
            where.append("b.agent_id=%s")
            params.append(agent_id)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}, a.full_name AS agent_name, a.department_id AS department_id
                FROM break_requests b
                JOIN agents a ON a.agent_id = b.agent_id
                WHERE {' AND '.join(where)}
                ORDER BY b.created_at ASC, b.break_id ASC
                """,
                tuple(params),
            )
            return [
                PendingBreakRow(request=_row_to_break(r), agent_name=r["agent_name"], department_id=r.get("department_id"))
                for r in fetchall(cur)
            ]

    def mark_reviewed(
        self,
        break_id: int,
        *,
        status: BreakStatus,
        reviewed_by: int,
        reviewed_at: datetime,
        review_note: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE break_requests
                SET status=%s, reviewed_by=%s, reviewed_at=%s, review_note=%s
                WHERE break_id=%s AND status=%s
                """,
                (status.value, reviewed_by, reviewed_at, review_note, break_id, BreakStatus.PENDING.value),
            )
            return cur.rowcount > 0

    def mark_started(self, break_id: int, *, start_time: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE break_requests SET status=%s, start_time=%s WHERE break_id=%s AND status=%s",
                (BreakStatus.ACTIVE.value, start_time, break_id, BreakStatus.APPROVED.value),
            )
            return cur.rowcount > 0

    def mark_completed(
        self, break_id: int, *, end_time: datetime, actual_duration: int, violated_rules: List[str]
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE break_requests
                SET status=%s, end_time=%s, actual_duration=%s, violated_rules=%s
                WHERE break_id=%s AND status=%s
                """,
                (
                    BreakStatus.COMPLETED.value,
                    end_time,
                    int(actual_duration),
                    dump_json(list(violated_rules)),
                    break_id,
                    BreakStatus.ACTIVE.value,
                ),
            )
            return cur.rowcount > 0

    def mark_cancelled(
        self, break_id: int, *, expected: BreakStatus, end_time: Optional[datetime] = None, note: Optional[str] = None
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE break_requests
                SET status=%s, end_time=COALESCE(%s, end_time), review_note=COALESCE(%s, review_note)
                WHERE break_id=%s AND status=%s
                """,
                (BreakStatus.CANCELLED.value, end_time, note, break_id, expected.value),
            )
            return cur.rowcount > 0
