from __future__ import annotations

import json
from typing import Any, Dict, Optional, Sequence

from ..core import constants
from ..core.enums import AssignmentType, BreakType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, load_json, normalize_mysql_time
from .model import BreakPolicy, Shift
from .repository import BreakPolicyRepository, ShiftRepository

_SHIFT_COLUMNS = """
    shift_id, name, start_time, end_time, grace_period_minutes, allow_overtime,
    overtime_requires_approval, max_overtime_minutes, max_late_minutes,
    assignment_type, department_id, is_active
"""


def _row_to_shift(r: Dict[str, Any]) -> Shift:
    return Shift(
        shift_id=int(r["shift_id"]),
        name=r["name"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        grace_period_minutes=int(r.get("grace_period_minutes") or 0),
        allow_overtime=bool(r.get("allow_overtime")),
        overtime_requires_approval=bool(r.get("overtime_requires_approval", True)),
        max_overtime_minutes=int(r.get("max_overtime_minutes") or 0),
        max_late_minutes=r.get("max_late_minutes"),
        assignment_type=AssignmentType(r.get("assignment_type") or AssignmentType.ALL.value),
        department_id=r.get("department_id"),
        is_active=bool(r.get("is_active", True)),
    )


def _parse_break_types(value: Any) -> frozenset:
    raw = load_json(value, default=None)
    if not raw:
        return frozenset(BreakType)
    if isinstance(raw, str):
        raw = json.loads(raw)
    return frozenset(BreakType(v) for v in raw)


def _int_or(value: Any, default: int) -> int:
    return default if value is None else int(value)


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[Shift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SHIFT_COLUMNS} FROM shifts ORDER BY shift_id")
            return [_row_to_shift(r) for r in fetchall(cur)]

    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SHIFT_COLUMNS} FROM shifts WHERE shift_id=%s", (shift_id,))
            r = fetchone(cur)
            return _row_to_shift(r) if r else None


class MySQLBreakPolicyRepository(BreakPolicyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_shift(self, shift_id: int) -> Optional[BreakPolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT policy_id, shift_id, max_breaks_per_day, min_duration, max_duration,
                       auto_approve_limit, cooldown_minutes, allowed_break_types,
                       preferred_start_time, preferred_end_time, block_during_meetings,
                       meeting_buffer_minutes
                FROM break_policies
                WHERE shift_id=%s
                """,
                (shift_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return BreakPolicy(
                policy_id=int(r["policy_id"]),
                shift_id=int(r["shift_id"]),
                max_breaks_per_day=_int_or(r.get("max_breaks_per_day"), constants.DEFAULT_MAX_BREAKS_PER_DAY),
                min_duration=_int_or(r.get("min_duration"), constants.DEFAULT_MIN_BREAK_MINUTES),
                max_duration=_int_or(r.get("max_duration"), constants.DEFAULT_MAX_BREAK_MINUTES),
                auto_approve_limit=_int_or(r.get("auto_approve_limit"), constants.DEFAULT_AUTO_APPROVE_LIMIT),
                cooldown_minutes=_int_or(r.get("cooldown_minutes"), constants.DEFAULT_COOLDOWN_MINUTES),
                allowed_break_types=_parse_break_types(r.get("allowed_break_types")),
                preferred_start_time=normalize_mysql_time(r.get("preferred_start_time")),
                preferred_end_time=normalize_mysql_time(r.get("preferred_end_time")),
                block_during_meetings=bool(r.get("block_during_meetings")),
                meeting_buffer_minutes=_int_or(
                    r.get("meeting_buffer_minutes"), constants.DEFAULT_MEETING_BUFFER_MINUTES
                ),
            )
