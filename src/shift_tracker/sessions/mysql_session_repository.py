from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import CheckInStatus, SessionStatus
from ..core.exceptions import AlreadyCheckedIn
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, is_lock_conflict, load_json
from .model import AgentSession, SessionListRow
from .repository import SessionRepository

_COLUMNS = """
    s.session_id, s.agent_id, s.shift_id, s.work_date, s.check_in, s.check_out,
    s.check_in_status, s.late_minutes, s.total_work_minutes, s.total_break_minutes,
    s.overtime_minutes, s.status, s.check_in_ip, s.check_out_ip,
    s.check_in_location, s.check_out_location, s.notes
"""


def _row_to_session(r: Dict[str, Any]) -> AgentSession:
    return AgentSession(
        session_id=int(r["session_id"]),
        agent_id=int(r["agent_id"]),
        shift_id=int(r["shift_id"]),
        work_date=r["work_date"],
        check_in=r["check_in"],
        check_out=r.get("check_out"),
        check_in_status=CheckInStatus(r["check_in_status"]),
        late_minutes=int(r.get("late_minutes") or 0),
        total_work_minutes=int(r.get("total_work_minutes") or 0),
        total_break_minutes=int(r.get("total_break_minutes") or 0),
        overtime_minutes=int(r.get("overtime_minutes") or 0),
        status=SessionStatus(r["status"]),
        check_in_ip=r.get("check_in_ip"),
        check_out_ip=r.get("check_out_ip"),
        check_in_location=load_json(r.get("check_in_location")),
        check_out_location=load_json(r.get("check_out_location")),
        notes=r.get("notes"),
    )


def _lock(for_update: bool) -> str:
    return " FOR UPDATE" if for_update else ""


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, session_id: int, *, for_update: bool = False) -> Optional[AgentSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM agent_sessions s WHERE s.session_id=%s{_lock(for_update)}",
                (session_id,),
            )
            r = fetchone(cur)
            return _row_to_session(r) if r else None

    def get_for_agent_and_date(
        self, agent_id: int, work_date: date, *, for_update: bool = False
    ) -> Optional[AgentSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM agent_sessions s WHERE s.agent_id=%s AND s.work_date=%s{_lock(for_update)}",
                (agent_id, work_date),
            )
            r = fetchone(cur)
            return _row_to_session(r) if r else None

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
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO agent_sessions(
                        agent_id, shift_id, work_date, check_in, check_in_status, late_minutes,
                        status, check_in_ip, check_in_location
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        agent_id,
                        shift_id,
                        work_date,
                        check_in,
                        check_in_status.value,
                        int(late_minutes),
                        SessionStatus.ACTIVE.value,
                        check_in_ip,
                        dump_json(check_in_location),
                    ),
                )
                return int(cur.lastrowid)
        except mysql.connector.Error as e:
            # concurrent same-day check-in: duplicate key, or a lock error for the deadlock victim
            if e.errno == errorcode.ER_DUP_ENTRY or is_lock_conflict(e):
                raise AlreadyCheckedIn(agent_id=agent_id, work_date=work_date.isoformat()) from e
            raise

    def update_status(self, session_id: int, *, expected: SessionStatus, status: SessionStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE agent_sessions SET status=%s WHERE session_id=%s AND status=%s",
                (status.value, session_id, expected.value),
            )
            return cur.rowcount > 0

    def add_break_minutes(self, session_id: int, *, minutes: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE agent_sessions
                SET total_break_minutes = total_break_minutes + %s, status=%s
                WHERE session_id=%s AND status=%s
                """,
                (int(minutes), SessionStatus.ACTIVE.value, session_id, SessionStatus.ON_BREAK.value),
            )
            return cur.rowcount > 0

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE agent_sessions
                SET check_out=%s, total_work_minutes=%s, overtime_minutes=%s, status=%s,
                    check_out_ip=%s, check_out_location=%s
                WHERE session_id=%s AND status=%s
                """,
                (
                    check_out,
                    int(total_work_minutes),
                    int(overtime_minutes),
                    SessionStatus.COMPLETED.value,
                    check_out_ip,
                    dump_json(check_out_location),
                    session_id,
                    SessionStatus.ACTIVE.value,
                ),
            )
            return cur.rowcount > 0

    def mark_incomplete(self, session_id: int, *, expected: SessionStatus, notes: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE agent_sessions SET status=%s, notes=%s WHERE session_id=%s AND status=%s",
                (SessionStatus.INCOMPLETE.value, notes, session_id, expected.value),
            )
            return cur.rowcount > 0

    def list_for_agent(self, agent_id: int, *, start_date: date, end_date: date) -> Sequence[AgentSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM agent_sessions s
                WHERE s.agent_id=%s AND s.work_date BETWEEN %s AND %s
                ORDER BY s.work_date DESC
                """,
                (agent_id, start_date, end_date),
            )
            return [_row_to_session(r) for r in fetchall(cur)]

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
        where = ["s.work_date BETWEEN %s AND %s"]
        params: List[Any] = [start_date, end_date]
        if agent_id is not None:
            where.append("s.agent_id=%s")
            params.append(agent_id)
        if department_id is not None:
            where.append("a.department_id=%s")
            params.append(department_id)
        if status is not None:
            where.append("s.status=%s")
            params.append(status.value)
        where_sql = " AND ".join(where)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT COUNT(*) AS total FROM agent_sessions s JOIN agents a ON a.agent_id = s.agent_id WHERE {where_sql}",
                tuple(params),
            )
            total = int((fetchone(cur) or {}).get("total") or 0)

            cur.execute(
                f"""
                SELECT {_COLUMNS}, a.full_name AS agent_name, a.department_id AS department_id
                FROM agent_sessions s
                JOIN agents a ON a.agent_id = s.agent_id
                WHERE {where_sql}
                ORDER BY s.work_date DESC, s.check_in DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            rows = [
                SessionListRow(
                    session=_row_to_session(r),
                    agent_name=r["agent_name"],
                    department_id=r.get("department_id"),
                )
                for r in fetchall(cur)
            ]
        return rows, total

    def list_open_before(self, work_date: date) -> Sequence[AgentSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM agent_sessions s
                WHERE s.work_date < %s AND s.status IN (%s, %s)
                ORDER BY s.work_date
                """,
                (work_date, SessionStatus.ACTIVE.value, SessionStatus.ON_BREAK.value),
            )
            return [_row_to_session(r) for r in fetchall(cur)]
