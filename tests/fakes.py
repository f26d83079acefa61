"""In-memory repositories used by the service and API tests.

All repositories share one :class:`InMemoryStore`. The fake transaction
manager snapshots the store on entry and restores it when the block raises,
so tests can check that failed operations leave no partial writes.
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from shift_tracker.activity.model import ActivityLog
from shift_tracker.agents.model import Agent
from shift_tracker.breaks.model import BreakRequest, PendingBreakRow
from shift_tracker.core.enums import BreakStatus, SessionStatus
from shift_tracker.core.exceptions import AlreadyCheckedIn
from shift_tracker.sessions.model import AgentSession, SessionListRow
from shift_tracker.shifts.model import BreakPolicy, Shift


@dataclass
class InMemoryStore:
    agents: Dict[int, Agent] = field(default_factory=dict)
    shifts: Dict[int, Shift] = field(default_factory=dict)
    policies: Dict[int, BreakPolicy] = field(default_factory=dict)
    sessions: Dict[int, AgentSession] = field(default_factory=dict)
    breaks: Dict[int, BreakRequest] = field(default_factory=dict)
    logs: Dict[int, ActivityLog] = field(default_factory=dict)
    next_ids: Dict[str, int] = field(default_factory=dict)
    # (table, id) for every row read FOR UPDATE, in order
    locks: List[tuple] = field(default_factory=list)

    def next_id(self, kind: str) -> int:
        value = self.next_ids.get(kind, 0) + 1
        self.next_ids[kind] = value
        return value

    def snapshot(self) -> dict:
        # Values are frozen dataclasses, copying the dicts is enough.
        return {
            "agents": dict(self.agents),
            "shifts": dict(self.shifts),
            "policies": dict(self.policies),
            "sessions": dict(self.sessions),
            "breaks": dict(self.breaks),
            "logs": dict(self.logs),
            "next_ids": copy.copy(self.next_ids),
        }

    def restore(self, snap: dict) -> None:
        for name, value in snap.items():
            setattr(self, name, value)


class InMemoryTransactionManager:
    def __init__(self, store: InMemoryStore):
        self._store = store
        self._lock = threading.RLock()
        self._depth = 0
        self.committed = 0
        self.rolled_back = 0

    @contextmanager
    def transaction(self):
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self._store
                finally:
                    self._depth -= 1
                return

            snap = self._store.snapshot()
            self._depth = 1
            try:
                yield self._store
                self.committed += 1
            except Exception:
                self._store.restore(snap)
                self.rolled_back += 1
                raise
            finally:
                self._depth = 0


class InMemoryAgents:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get_by_id(self, agent_id):
        return self._s.agents.get(agent_id)

    def update_status(self, agent_id, *, status, session_id):
        agent = self._s.agents.get(agent_id)
        if agent:
            self._s.agents[agent_id] = replace(agent, current_status=status, current_session_id=session_id)


class InMemoryShifts:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def list_all(self):
        return sorted(self._s.shifts.values(), key=lambda s: s.shift_id)

    def get_by_id(self, shift_id):
        return self._s.shifts.get(shift_id)


class InMemoryPolicies:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get_for_shift(self, shift_id):
        for p in self._s.policies.values():
            if p.shift_id == shift_id:
                return p
        return None


class InMemorySessions:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def _update(self, session_id, expected: Iterable[SessionStatus], **changes) -> bool:
        current = self._s.sessions.get(session_id)
        if not current or current.status not in set(expected):
            return False
        self._s.sessions[session_id] = replace(current, **changes)
        return True

    def get_by_id(self, session_id, *, for_update=False):
        if for_update:
            self._s.locks.append(("session", session_id))
        return self._s.sessions.get(session_id)

    def get_for_agent_and_date(self, agent_id, work_date, *, for_update=False):
        for s in self._s.sessions.values():
            if s.agent_id == agent_id and s.work_date == work_date:
                if for_update:
                    self._s.locks.append(("session", s.session_id))
                return s
        return None

    def create(
        self,
        *,
        agent_id,
        shift_id,
        work_date,
        check_in,
        check_in_status,
        late_minutes,
        check_in_ip=None,
        check_in_location=None,
    ):
        if self.get_for_agent_and_date(agent_id, work_date):
            raise AlreadyCheckedIn(agent_id=agent_id, work_date=work_date.isoformat())
        sid = self._s.next_id("session")
        self._s.sessions[sid] = AgentSession(
            session_id=sid,
            agent_id=agent_id,
            shift_id=shift_id,
            work_date=work_date,
            check_in=check_in,
            check_in_status=check_in_status,
            late_minutes=late_minutes,
            status=SessionStatus.ACTIVE,
            check_in_ip=check_in_ip,
            check_in_location=check_in_location,
        )
        return sid

    def update_status(self, session_id, *, expected, status):
        return self._update(session_id, [expected], status=status)

    def add_break_minutes(self, session_id, *, minutes):
        current = self._s.sessions.get(session_id)
        if not current:
            return False
        return self._update(
            session_id,
            [SessionStatus.ON_BREAK],
            status=SessionStatus.ACTIVE,
            total_break_minutes=current.total_break_minutes + int(minutes),
        )

    def complete(
        self, session_id, *, check_out, total_work_minutes, overtime_minutes, check_out_ip=None, check_out_location=None
    ):
        return self._update(
            session_id,
            [SessionStatus.ACTIVE],
            status=SessionStatus.COMPLETED,
            check_out=check_out,
            total_work_minutes=total_work_minutes,
            overtime_minutes=overtime_minutes,
            check_out_ip=check_out_ip,
            check_out_location=check_out_location,
        )

    def mark_incomplete(self, session_id, *, expected, notes):
        return self._update(session_id, [expected], status=SessionStatus.INCOMPLETE, notes=notes)

    def list_for_agent(self, agent_id, *, start_date, end_date):
        items = [
            s for s in self._s.sessions.values() if s.agent_id == agent_id and start_date <= s.work_date <= end_date
        ]
        return sorted(items, key=lambda s: s.work_date, reverse=True)

    def list_sessions(
        self, *, start_date, end_date, agent_id=None, department_id=None, status=None, offset=0, limit=20
    ):
        rows = []
        for s in self._s.sessions.values():
            agent = self._s.agents[s.agent_id]
            if not (start_date <= s.work_date <= end_date):
                continue
            if agent_id is not None and s.agent_id != agent_id:
                continue
            if department_id is not None and agent.department_id != department_id:
                continue
            if status is not None and s.status != status:
                continue
            rows.append(SessionListRow(session=s, agent_name=agent.full_name, department_id=agent.department_id))
        rows.sort(key=lambda r: (r.session.work_date, r.session.check_in), reverse=True)
        return rows[offset : offset + limit], len(rows)

    def list_open_before(self, work_date):
        items = [s for s in self._s.sessions.values() if s.work_date < work_date and s.status.is_open]
        return sorted(items, key=lambda s: s.work_date)


class InMemoryBreaks:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def _update(self, break_id, expected: BreakStatus, **changes) -> bool:
        current = self._s.breaks.get(break_id)
        if not current or current.status != expected:
            return False
        self._s.breaks[break_id] = replace(current, **changes)
        return True

    def create(
        self,
        *,
        session_id,
        agent_id,
        policy_id,
        break_type,
        requested_duration,
        status,
        auto_approved,
        created_at,
        reason=None,
        violated_rules=None,
    ):
        bid = self._s.next_id("break")
        self._s.breaks[bid] = BreakRequest(
            break_id=bid,
            session_id=session_id,
            agent_id=agent_id,
            policy_id=policy_id,
            break_type=break_type,
            requested_duration=requested_duration,
            status=status,
            auto_approved=auto_approved,
            created_at=created_at,
            reason=reason,
            violated_rules=list(violated_rules or []),
        )
        return bid

    def get_by_id(self, break_id, *, for_update=False):
        if for_update:
            self._s.locks.append(("break", break_id))
        return self._s.breaks.get(break_id)

    def get_active_for_agent(self, agent_id, *, for_update=False):
        for b in self._s.breaks.values():
            if b.agent_id == agent_id and b.status == BreakStatus.ACTIVE:
                if for_update:
                    self._s.locks.append(("break", b.break_id))
                return b
        return None

    def get_active_for_session(self, session_id):
        for b in self._s.breaks.values():
            if b.session_id == session_id and b.status == BreakStatus.ACTIVE:
                return b
        return None

    def has_pending(self, session_id):
        return any(b.session_id == session_id and b.status == BreakStatus.PENDING for b in self._s.breaks.values())

    def list_for_session(self, session_id, *, statuses=None):
        wanted = set(statuses) if statuses is not None else None
        items = [
            b
            for b in self._s.breaks.values()
            if b.session_id == session_id and (wanted is None or b.status in wanted)
        ]
        return sorted(items, key=lambda b: (b.created_at, b.break_id))

    def count_for_session(self, session_id, *, statuses):
        return len(self.list_for_session(session_id, statuses=list(statuses)))

    def last_break_end(self, agent_id) -> Optional[datetime]:
        ends = [
            b.end_time
            for b in self._s.breaks.values()
            if b.agent_id == agent_id and b.status == BreakStatus.COMPLETED and b.end_time
        ]
        return max(ends) if ends else None

    def list_pending(self, *, department_id=None, agent_id=None) -> List[PendingBreakRow]:
        rows = []
        for b in self._s.breaks.values():
            if b.status != BreakStatus.PENDING:
                continue
            agent = self._s.agents[b.agent_id]
            if department_id is not None and agent.department_id != department_id:
                continue
            if agent_id is not None and b.agent_id != agent_id:
                continue
            rows.append(PendingBreakRow(request=b, agent_name=agent.full_name, department_id=agent.department_id))
        return sorted(rows, key=lambda r: (r.request.created_at, r.request.break_id))

    def mark_reviewed(self, break_id, *, status, reviewed_by, reviewed_at, review_note=None):
        return self._update(
            break_id,
            BreakStatus.PENDING,
            status=status,
            reviewed_by=reviewed_by,
            reviewed_at=reviewed_at,
            review_note=review_note,
        )

    def mark_started(self, break_id, *, start_time):
        return self._update(break_id, BreakStatus.APPROVED, status=BreakStatus.ACTIVE, start_time=start_time)

    def mark_completed(self, break_id, *, end_time, actual_duration, violated_rules):
        return self._update(
            break_id,
            BreakStatus.ACTIVE,
            status=BreakStatus.COMPLETED,
            end_time=end_time,
            actual_duration=actual_duration,
            violated_rules=list(violated_rules),
        )

    def mark_cancelled(self, break_id, *, expected, end_time=None, note=None):
        current = self._s.breaks.get(break_id)
        if not current:
            return False
        return self._update(
            break_id,
            expected,
            status=BreakStatus.CANCELLED,
            end_time=end_time or current.end_time,
            review_note=note or current.review_note,
        )


class InMemoryActivityLogs:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def append(
        self,
        *,
        agent_id,
        activity_type,
        action,
        created_at,
        session_id=None,
        metadata=None,
        ip_address=None,
        performed_by=None,
    ):
        lid = self._s.next_id("log")
        self._s.logs[lid] = ActivityLog(
            log_id=lid,
            agent_id=agent_id,
            activity_type=activity_type,
            action=action,
            created_at=created_at,
            session_id=session_id,
            metadata=dict(metadata or {}),
            ip_address=ip_address,
            performed_by=performed_by,
        )
        return lid

    def _newest_first(self, items):
        return sorted(items, key=lambda l: (l.created_at, l.log_id), reverse=True)

    def list_for_agent(self, agent_id, *, limit):
        return self._newest_first([l for l in self._s.logs.values() if l.agent_id == agent_id])[:limit]

    def list_for_session(self, session_id):
        items = [l for l in self._s.logs.values() if l.session_id == session_id]
        return sorted(items, key=lambda l: (l.created_at, l.log_id))

    def list_between(self, *, start, end, agent_id=None, activity_type=None, limit=None):
        items = [
            l
            for l in self._s.logs.values()
            if start <= l.created_at <= end
            and (agent_id is None or l.agent_id == agent_id)
            and (activity_type is None or l.activity_type == activity_type)
        ]
        items = self._newest_first(items)
        return items if limit is None else items[:limit]


def logged_types(store: InMemoryStore, *, agent_id: Optional[int] = None) -> List[str]:
    items = sorted(store.logs.values(), key=lambda l: l.log_id)
    return [l.activity_type.value for l in items if agent_id is None or l.agent_id == agent_id]
