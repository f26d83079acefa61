from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from ..activity.service import ActivityLogService
from ..agents.repository import AgentRepository
from ..breaks.repository import BreakRequestRepository
from ..breaks.workflow import ensure_applied, ensure_transition
from ..common.datetime_utils import Clock, SystemClock, at_time, minutes_between
from ..common.validators import optional_text, require_positive_int
from ..core import constants
from ..core.enums import ActivityType, AgentStatus, BreakStatus, CheckInStatus, COUNTED_BREAK_STATUSES, SessionStatus
from ..core.exceptions import (
    AgentNotFound,
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    CannotCheckOutOnBreak,
    NoActiveSession,
    NoShiftAssigned,
    SessionNotFound,
    ShiftNotFound,
    StateConflict,
    TooLateToCheckIn,
    ValidationError,
)
from ..database.transaction import TransactionManager
from ..shifts.model import Shift
from ..shifts.repository import ShiftRepository
from .factory import CheckInStrategyFactory
from .model import (
    AgentSession,
    CheckInResult,
    CheckOutResult,
    CheckOutSummary,
    HistoryTotals,
    LiveStats,
    SessionDetails,
    SessionHistory,
    SessionPage,
    SessionStatusView,
    ensure_session_transition,
)
from .repository import SessionRepository

logger = logging.getLogger(__name__)


class SessionService:
    """Session manager: check-in, check-out and the derived work metrics."""

    def __init__(
        self,
        sessions: SessionRepository,
        agents: AgentRepository,
        shifts: ShiftRepository,
        breaks: BreakRequestRepository,
        activity: ActivityLogService,
        tx: TransactionManager,
        *,
        clock: Optional[Clock] = None,
        strategy_factory: Optional[CheckInStrategyFactory] = None,
        late_checkin_extra_minutes: int = constants.DEFAULT_LATE_CHECKIN_EXTRA_MINUTES,
    ):
        self._sessions = sessions
        self._agents = agents
        self._shifts = shifts
        self._breaks = breaks
        self._activity = activity
        self._tx = tx
        self._clock = clock or SystemClock()
        self._factory = strategy_factory or CheckInStrategyFactory()
        self._late_extra = int(late_checkin_extra_minutes)

    def _late_ceiling(self, shift: Shift) -> int:
        if shift.max_late_minutes is not None:
            return int(shift.max_late_minutes)
        return shift.grace_period_minutes + self._late_extra

    def check_in(
        self, agent_id: int, *, ip_address: Optional[str] = None, location: Optional[dict] = None
    ) -> CheckInResult:
        with self._tx.transaction():
            now = self._clock.now()
            today = now.date()

            agent = self._agents.get_by_id(agent_id)
            if not agent:
                raise AgentNotFound(agent_id=agent_id)
            if not agent.shift_id:
                raise NoShiftAssigned(agent_id=agent_id)
            shift = self._shifts.get_by_id(agent.shift_id)
            if not shift:
                raise ShiftNotFound(shift_id=agent.shift_id)

            # no FOR UPDATE: uq_agent_day decides concurrent check-ins
            existing = self._sessions.get_for_agent_and_date(agent_id, today)
            if existing:
                raise AlreadyCheckedIn(session_id=existing.session_id, status=existing.status.value)

            shift_start = at_time(today, shift.start_time)
            strategy = self._factory.for_check_in(
                now=now, shift_start=shift_start, grace_minutes=shift.grace_period_minutes
            )
            decision = strategy.decide(now=now, shift_start=shift_start, grace_minutes=shift.grace_period_minutes)

            ceiling = self._late_ceiling(shift)
            if decision.late_minutes > ceiling:
                logger.info("check-in refused agent=%s late=%s max=%s", agent_id, decision.late_minutes, ceiling)
                raise TooLateToCheckIn(late_minutes=decision.late_minutes, max_allowed=ceiling)

            session_id = self._sessions.create(
                agent_id=agent_id,
                shift_id=shift.shift_id,
                work_date=today,
                check_in=now,
                check_in_status=decision.status,
                late_minutes=decision.late_minutes,
                check_in_ip=ip_address,
                check_in_location=location,
            )

            agent_status = AgentStatus.LATE if decision.status == CheckInStatus.LATE else AgentStatus.ACTIVE
            self._agents.update_status(agent_id, status=agent_status, session_id=session_id)

            action = f"Agent checked in at {now:%H:%M:%S}"
            if decision.late_minutes > 0:
                action += f" ({decision.late_minutes} minutes late)"
            self._activity.record(
                agent_id=agent_id,
                session_id=session_id,
                activity_type=ActivityType.CHECK_IN,
                action=action,
                metadata={
                    "shift_id": shift.shift_id,
                    "shift_name": shift.name,
                    "check_in_status": decision.status.value,
                    "late_minutes": decision.late_minutes,
                },
                ip_address=ip_address,
            )
            session = self._sessions.get_by_id(session_id)

        logger.info("agent %s checked in (%s, late=%s)", agent_id, decision.status.value, decision.late_minutes)
        return CheckInResult(session=session, shift=shift, status=decision.status, late_minutes=decision.late_minutes)

    def check_out(
        self, agent_id: int, *, ip_address: Optional[str] = None, location: Optional[dict] = None
    ) -> CheckOutResult:
        with self._tx.transaction():
            now = self._clock.now()
            session = self._sessions.get_for_agent_and_date(agent_id, now.date(), for_update=True)
            if not session:
                raise NoActiveSession(agent_id=agent_id)
            if session.status == SessionStatus.ON_BREAK:
                raise CannotCheckOutOnBreak(session_id=session.session_id)
            if not session.is_open:
                raise AlreadyCheckedOut(session_id=session.session_id, status=session.status.value)
            ensure_session_transition(session.status, SessionStatus.COMPLETED)

            shift = self._shifts.get_by_id(session.shift_id)
            if not shift:
                raise ShiftNotFound(shift_id=session.shift_id)

            total_minutes = max(0, minutes_between(session.check_in, now))
            break_minutes = session.total_break_minutes
            work_minutes = total_minutes - break_minutes
            overtime_minutes = max(0, work_minutes - shift.duration_minutes)
            number_of_breaks = self._breaks.count_for_session(session.session_id, statuses=[BreakStatus.COMPLETED])

            applied = self._sessions.complete(
                session.session_id,
                check_out=now,
                total_work_minutes=work_minutes,
                overtime_minutes=overtime_minutes,
                check_out_ip=ip_address,
                check_out_location=location,
            )
            if not applied:
                raise StateConflict(session_id=session.session_id, expected=SessionStatus.ACTIVE.value)

            cancelled = self._cancel_pending(session, note="Cancelled at check-out")
            self._agents.update_status(agent_id, status=AgentStatus.OFFLINE, session_id=None)

            summary = CheckOutSummary(
                total_minutes=total_minutes,
                work_minutes=work_minutes,
                break_minutes=break_minutes,
                overtime_minutes=overtime_minutes,
                number_of_breaks=number_of_breaks,
            )
            overtime_exceeds_limit = overtime_minutes > 0 and (
                not shift.allow_overtime or overtime_minutes > shift.max_overtime_minutes
            )
            self._activity.record(
                agent_id=agent_id,
                session_id=session.session_id,
                activity_type=ActivityType.CHECK_OUT,
                action=f"Agent checked out at {now:%H:%M:%S} (worked {work_minutes} minutes)",
                metadata={
                    "total_minutes": total_minutes,
                    "work_minutes": work_minutes,
                    "break_minutes": break_minutes,
                    "overtime_minutes": overtime_minutes,
                    "number_of_breaks": number_of_breaks,
                    "overtime_exceeds_limit": overtime_exceeds_limit,
                    "cancelled_requests": cancelled,
                },
                ip_address=ip_address,
            )
            completed = self._sessions.get_by_id(session.session_id)

        if overtime_exceeds_limit:
            logger.warning(
                "agent %s overtime %s min exceeds shift %s limit", agent_id, overtime_minutes, shift.shift_id
            )
        logger.info("agent %s checked out (work=%s, break=%s)", agent_id, work_minutes, break_minutes)
        return CheckOutResult(session=completed, summary=summary)

    def _cancel_pending(self, session: AgentSession, *, note: str) -> list:
        cancelled = []
        for br in self._breaks.list_for_session(session.session_id, statuses=[BreakStatus.PENDING]):
            ensure_transition(br.status, BreakStatus.CANCELLED, break_id=br.break_id)
            ensure_applied(
                self._breaks.mark_cancelled(br.break_id, expected=BreakStatus.PENDING, note=note),
                break_id=br.break_id,
                expected=BreakStatus.PENDING,
            )
            cancelled.append(br.break_id)
        return cancelled

    def get_status(self, agent_id: int) -> SessionStatusView:
        now = self._clock.now()
        session = self._sessions.get_for_agent_and_date(agent_id, now.date())
        if not session or not session.is_open:
            return SessionStatusView(has_active_session=False, status=AgentStatus.OFFLINE)

        agent = self._agents.get_by_id(agent_id)
        shift = self._shifts.get_by_id(session.shift_id)
        active_break = self._breaks.get_active_for_session(session.session_id)

        elapsed = max(0, minutes_between(session.check_in, now))
        break_minutes = session.total_break_minutes
        if active_break and active_break.start_time:
            break_minutes += max(0, minutes_between(active_break.start_time, now))
        break_minutes = min(break_minutes, elapsed)

        stats = LiveStats(
            elapsed_minutes=elapsed,
            break_minutes=break_minutes,
            work_minutes=elapsed - break_minutes,
            number_of_breaks=self._breaks.count_for_session(session.session_id, statuses=COUNTED_BREAK_STATUSES),
        )
        return SessionStatusView(
            has_active_session=True,
            status=agent.current_status if agent else AgentStatus.ACTIVE,
            session=session,
            shift=shift,
            active_break=active_break,
            stats=stats,
        )

    def get_session_details(self, session_id: int, *, agent_id: Optional[int] = None) -> SessionDetails:
        session = self._sessions.get_by_id(session_id)
        if not session or (agent_id is not None and session.agent_id != agent_id):
            raise SessionNotFound(session_id=session_id)
        return SessionDetails(
            session=session,
            breaks=list(self._breaks.list_for_session(session_id)),
            activity=list(self._activity.session_logs(session_id)),
        )

    def get_history(
        self, agent_id: int, *, start: Optional[date] = None, end: Optional[date] = None
    ) -> SessionHistory:
        today = self._clock.now().date()
        end = end or today
        start = start or (end - timedelta(days=constants.DEFAULT_HISTORY_DAYS))
        if end < start:
            raise ValidationError("end date must not be before start date", start=start.isoformat(), end=end.isoformat())

        sessions = list(self._sessions.list_for_agent(agent_id, start_date=start, end_date=end))
        totals = HistoryTotals(
            sessions=len(sessions),
            completed=sum(1 for s in sessions if s.status == SessionStatus.COMPLETED),
            work_minutes=sum(s.total_work_minutes for s in sessions),
            break_minutes=sum(s.total_break_minutes for s in sessions),
            late_minutes=sum(s.late_minutes for s in sessions if s.check_in_status == CheckInStatus.LATE),
            overtime_minutes=sum(s.overtime_minutes for s in sessions),
        )
        return SessionHistory(start_date=start, end_date=end, sessions=sessions, totals=totals)

    def list_sessions(
        self,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        agent_id: Optional[int] = None,
        department_id: Optional[int] = None,
        status: Optional[SessionStatus] = None,
        page: int = 1,
        limit: int = constants.DEFAULT_PAGE_SIZE,
    ) -> SessionPage:
        today = self._clock.now().date()
        end = end or today
        start = start or end
        if end < start:
            raise ValidationError("end date must not be before start date", start=start.isoformat(), end=end.isoformat())
        page = require_positive_int(page, "page")
        limit = min(require_positive_int(limit, "limit"), 100)

        rows, total = self._sessions.list_sessions(
            start_date=start,
            end_date=end,
            agent_id=agent_id,
            department_id=department_id,
            status=status,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return SessionPage(items=list(rows), page=page, limit=limit, total=total)

    def mark_incomplete(self, session_id: int, *, performed_by: int, reason: Optional[str] = None) -> AgentSession:
        """Administrative override for a session that was never checked out."""

        reason = optional_text(reason)
        with self._tx.transaction():
            now = self._clock.now()
            session = self._sessions.get_by_id(session_id, for_update=True)
            if not session:
                raise SessionNotFound(session_id=session_id)
            ensure_session_transition(session.status, SessionStatus.INCOMPLETE)

            active_break = self._breaks.get_active_for_session(session_id)
            if active_break:
                ensure_transition(active_break.status, BreakStatus.CANCELLED, break_id=active_break.break_id)
                ensure_applied(
                    self._breaks.mark_cancelled(
                        active_break.break_id, expected=BreakStatus.ACTIVE, end_time=now, note="Session closed"
                    ),
                    break_id=active_break.break_id,
                    expected=BreakStatus.ACTIVE,
                )
            cancelled = self._cancel_pending(session, note="Session closed")

            if not self._sessions.mark_incomplete(session_id, expected=session.status, notes=reason):
                raise StateConflict(session_id=session_id, expected=session.status.value)
            self._agents.update_status(session.agent_id, status=AgentStatus.OFFLINE, session_id=None)

            self._activity.record(
                agent_id=session.agent_id,
                session_id=session_id,
                activity_type=ActivityType.STATUS_CHANGE,
                action=f"Session marked incomplete by {performed_by}",
                metadata={
                    "from": session.status.value,
                    "to": SessionStatus.INCOMPLETE.value,
                    "reason": reason,
                    "cancelled_break_id": active_break.break_id if active_break else None,
                    "cancelled_requests": cancelled,
                },
                performed_by=performed_by,
            )
            updated = self._sessions.get_by_id(session_id)

        logger.info("session %s marked incomplete by %s", session_id, performed_by)
        return updated

    def close_stale_sessions(self, *, performed_by: int, before: Optional[date] = None) -> list:
        """Mark every open session dated before ``before`` (default today) incomplete."""

        before = before or self._clock.now().date()
        closed = []
        for session in self._sessions.list_open_before(before):
            closed.append(
                self.mark_incomplete(
                    session.session_id,
                    performed_by=performed_by,
                    reason=f"Not checked out on {session.work_date.isoformat()}",
                )
            )
        if closed:
            logger.info("closed %s stale sessions before %s", len(closed), before.isoformat())
        return closed
