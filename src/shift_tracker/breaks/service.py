from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from ..activity.service import ActivityLogService
from ..agents.repository import AgentRepository
from ..common.datetime_utils import Clock, SystemClock, minutes_between
from ..common.validators import optional_text, require_enum, require_non_empty, require_positive_int
from ..core.enums import ActivityType, AgentStatus, BreakStatus, BreakType, COUNTED_BREAK_STATUSES, SessionStatus
from ..core.exceptions import (
    AlreadyOnBreak,
    BreakAlreadyActive,
    BreakNotApproved,
    BreakNotPending,
    BreakPolicyNotFound,
    BreakRequestAlreadyPending,
    BreakRequestNotFound,
    BreakRequestRejected,
    BreakWithoutSession,
    NoActiveBreak,
    PolicyViolation,
    StateConflict,
)
from ..database.transaction import TransactionManager
from ..sessions.model import ensure_session_transition
from ..sessions.repository import SessionRepository
from ..shifts.repository import BreakPolicyRepository
from .model import BreakRequest, BreakRequestResult, PendingBreakRow
from .repository import BreakRequestRepository
from .rules import DEFAULT_RULES, BreakRequestContext, BreakRule, evaluate_rules
from .workflow import ensure_applied, ensure_transition

logger = logging.getLogger(__name__)

OVERRUN = "overrun"


class BreakService:
    """Break policy engine and the supervisor approval workflow."""

    def __init__(
        self,
        breaks: BreakRequestRepository,
        sessions: SessionRepository,
        policies: BreakPolicyRepository,
        agents: AgentRepository,
        activity: ActivityLogService,
        tx: TransactionManager,
        *,
        clock: Optional[Clock] = None,
        rules: Sequence[BreakRule] = DEFAULT_RULES,
    ):
        self._breaks = breaks
        self._sessions = sessions
        self._policies = policies
        self._agents = agents
        self._activity = activity
        self._tx = tx
        self._clock = clock or SystemClock()
        self._rules = tuple(rules)

    # ------------------------------------------------------------------ engine

    def request_break(
        self, agent_id: int, break_type, requested_duration, *, reason: Optional[str] = None
    ) -> BreakRequestResult:
        break_type = require_enum(BreakType, break_type, "break_type")
        requested = require_positive_int(requested_duration, "duration")
        reason = optional_text(reason)

        with self._tx.transaction():
            now = self._clock.now()
            session = self._sessions.get_for_agent_and_date(agent_id, now.date(), for_update=True)
            if not session or not session.is_open:
                raise BreakWithoutSession(agent_id=agent_id)
            if session.status == SessionStatus.ON_BREAK:
                raise AlreadyOnBreak(session_id=session.session_id)
            if self._breaks.has_pending(session.session_id):
                raise BreakRequestAlreadyPending(session_id=session.session_id)

            policy = self._policies.get_for_shift(session.shift_id)
            if not policy:
                raise BreakPolicyNotFound(shift_id=session.shift_id)

            ctx = BreakRequestContext(
                policy=policy,
                break_type=break_type,
                requested_duration=requested,
                now=now,
                breaks_taken=self._breaks.count_for_session(session.session_id, statuses=COUNTED_BREAK_STATUSES),
                last_break_end=self._breaks.last_break_end(agent_id),
            )
            try:
                advisories = evaluate_rules(ctx, self._rules)
            except PolicyViolation as e:
                logger.info("break request denied agent=%s rule=%s context=%s", agent_id, e.rule, e.context)
                raise

            auto_approved = requested <= policy.auto_approve_limit
            break_id = self._breaks.create(
                session_id=session.session_id,
                agent_id=agent_id,
                policy_id=policy.policy_id,
                break_type=break_type,
                requested_duration=requested,
                status=BreakStatus.APPROVED if auto_approved else BreakStatus.PENDING,
                auto_approved=auto_approved,
                created_at=now,
                reason=reason,
                violated_rules=advisories,
            )
            self._activity.record(
                agent_id=agent_id,
                session_id=session.session_id,
                activity_type=ActivityType.BREAK_REQUEST,
                action=f"Requested {break_type.value} break for {requested} minutes",
                metadata={
                    "break_id": break_id,
                    "break_type": break_type.value,
                    "duration": requested,
                    "auto_approved": auto_approved,
                    "violated_rules": advisories,
                },
            )
            if auto_approved:
                self._start(self._breaks.get_by_id(break_id, for_update=True), now=now)
            result = self._breaks.get_by_id(break_id)

        logger.info(
            "break %s requested by agent %s (%s min, %s)",
            break_id,
            agent_id,
            requested,
            "auto-approved" if auto_approved else "pending",
        )
        return BreakRequestResult(break_request=result, requires_approval=not auto_approved)

    # ---------------------------------------------------------------- workflow

    def start_break(self, break_id: int, *, agent_id: Optional[int] = None) -> BreakRequest:
        with self._tx.transaction():
            br = self._lock(break_id, agent_id=agent_id)
            self._start(br, now=self._clock.now())
            return self._breaks.get_by_id(break_id)

    def _start(self, br: BreakRequest, *, now: datetime) -> None:
        if br.status == BreakStatus.REJECTED:
            raise BreakRequestRejected(break_id=br.break_id)
        if br.status == BreakStatus.ACTIVE:
            raise BreakAlreadyActive(break_id=br.break_id)
        if br.status != BreakStatus.APPROVED:
            raise BreakNotApproved(break_id=br.break_id, status=br.status.value)

        session = self._sessions.get_by_id(br.session_id, for_update=True)
        if not session or not session.is_open:
            raise BreakWithoutSession(agent_id=br.agent_id, session_id=br.session_id)
        if session.status == SessionStatus.ON_BREAK:
            raise AlreadyOnBreak(session_id=session.session_id)
        ensure_session_transition(session.status, SessionStatus.ON_BREAK)
        ensure_transition(br.status, BreakStatus.ACTIVE, break_id=br.break_id)

        ensure_applied(self._breaks.mark_started(br.break_id, start_time=now), break_id=br.break_id, expected=br.status)
        if not self._sessions.update_status(session.session_id, expected=SessionStatus.ACTIVE, status=SessionStatus.ON_BREAK):
            raise StateConflict(session_id=session.session_id, expected=SessionStatus.ACTIVE.value)
        self._agents.update_status(br.agent_id, status=AgentStatus.ON_BREAK, session_id=session.session_id)

        self._activity.record(
            agent_id=br.agent_id,
            session_id=session.session_id,
            activity_type=ActivityType.BREAK_START,
            action=f"Started {br.break_type.value} break",
            metadata={"break_id": br.break_id, "requested_duration": br.requested_duration},
        )
        logger.info("break %s started for agent %s", br.break_id, br.agent_id)

    def end_break(self, agent_id: int) -> BreakRequest:
        with self._tx.transaction():
            now = self._clock.now()
            br = self._breaks.get_active_for_agent(agent_id)
            if br:
                br = self._lock(br.break_id, agent_id=agent_id)
            if not br or br.status != BreakStatus.ACTIVE:
                raise NoActiveBreak(agent_id=agent_id)
            ensure_transition(br.status, BreakStatus.COMPLETED, break_id=br.break_id)

            actual = max(0, minutes_between(br.start_time, now)) if br.start_time else 0
            overrun_minutes = max(0, actual - br.requested_duration)
            violated_rules = list(br.violated_rules)
            if overrun_minutes and OVERRUN not in violated_rules:
                violated_rules.append(OVERRUN)

            ensure_applied(
                self._breaks.mark_completed(
                    br.break_id, end_time=now, actual_duration=actual, violated_rules=violated_rules
                ),
                break_id=br.break_id,
                expected=BreakStatus.ACTIVE,
            )
            ensure_session_transition(SessionStatus.ON_BREAK, SessionStatus.ACTIVE)
            if not self._sessions.add_break_minutes(br.session_id, minutes=actual):
                raise StateConflict(session_id=br.session_id, expected=SessionStatus.ON_BREAK.value)
            self._agents.update_status(agent_id, status=AgentStatus.ACTIVE, session_id=br.session_id)

            metadata = {"break_id": br.break_id, "actual_duration": actual, "requested_duration": br.requested_duration}
            if overrun_minutes:
                metadata["overrun_minutes"] = overrun_minutes
            self._activity.record(
                agent_id=agent_id,
                session_id=br.session_id,
                activity_type=ActivityType.BREAK_END,
                action=f"Ended {br.break_type.value} break after {actual} minutes",
                metadata=metadata,
            )
            ended = self._breaks.get_by_id(br.break_id)

        if overrun_minutes:
            logger.warning("break %s overran by %s minutes", br.break_id, overrun_minutes)
        logger.info("break %s ended for agent %s (%s min)", br.break_id, agent_id, actual)
        return ended

    def approve_break(self, break_id: int, *, reviewer_id: int, notes: Optional[str] = None) -> BreakRequest:
        notes = optional_text(notes)
        with self._tx.transaction():
            now = self._clock.now()
            br = self._get_pending(break_id)
            ensure_transition(br.status, BreakStatus.APPROVED, break_id=break_id)
            ensure_applied(
                self._breaks.mark_reviewed(
                    break_id, status=BreakStatus.APPROVED, reviewed_by=reviewer_id, reviewed_at=now, review_note=notes
                ),
                break_id=break_id,
                expected=BreakStatus.PENDING,
            )
            self._activity.record(
                agent_id=br.agent_id,
                session_id=br.session_id,
                activity_type=ActivityType.BREAK_APPROVED,
                action=f"Break request approved by {reviewer_id}",
                metadata={"break_id": break_id, "notes": notes},
                performed_by=reviewer_id,
            )
            self._start(self._breaks.get_by_id(break_id, for_update=True), now=now)
            approved = self._breaks.get_by_id(break_id)

        logger.info("break %s approved by %s", break_id, reviewer_id)
        return approved

    def reject_break(self, break_id: int, *, reviewer_id: int, reason: Optional[str]) -> BreakRequest:
        reason = require_non_empty(reason, "reason")
        with self._tx.transaction():
            now = self._clock.now()
            br = self._get_pending(break_id)
            ensure_transition(br.status, BreakStatus.REJECTED, break_id=break_id)
            ensure_applied(
                self._breaks.mark_reviewed(
                    break_id, status=BreakStatus.REJECTED, reviewed_by=reviewer_id, reviewed_at=now, review_note=reason
                ),
                break_id=break_id,
                expected=BreakStatus.PENDING,
            )
            self._activity.record(
                agent_id=br.agent_id,
                session_id=br.session_id,
                activity_type=ActivityType.BREAK_REJECTED,
                action=f"Break request rejected by {reviewer_id}",
                metadata={"break_id": break_id, "reason": reason},
                performed_by=reviewer_id,
            )
            rejected = self._breaks.get_by_id(break_id)

        logger.info("break %s rejected by %s", break_id, reviewer_id)
        return rejected

    def cancel_break(self, agent_id: int, break_id: int) -> BreakRequest:
        """Agent withdraws a request that nobody has reviewed yet."""

        with self._tx.transaction():
            br = self._lock(break_id, agent_id=agent_id)
            if br.status != BreakStatus.PENDING:
                raise BreakNotPending(break_id=break_id, status=br.status.value)
            ensure_transition(br.status, BreakStatus.CANCELLED, break_id=break_id)
            ensure_applied(
                self._breaks.mark_cancelled(break_id, expected=BreakStatus.PENDING, note="Cancelled by agent"),
                break_id=break_id,
                expected=BreakStatus.PENDING,
            )
            self._activity.record(
                agent_id=agent_id,
                session_id=br.session_id,
                activity_type=ActivityType.BREAK_CANCELLED,
                action="Break request cancelled by agent",
                metadata={"break_id": break_id},
            )
            cancelled = self._breaks.get_by_id(break_id)

        logger.info("break %s cancelled by agent %s", break_id, agent_id)
        return cancelled

    # ----------------------------------------------------------------- queries

    def get_pending_requests(
        self, *, department_id: Optional[int] = None, agent_id: Optional[int] = None
    ) -> Sequence[PendingBreakRow]:
        return self._breaks.list_pending(department_id=department_id, agent_id=agent_id)

    def get_today_breaks(self, agent_id: int) -> List[BreakRequest]:
        session = self._sessions.get_for_agent_and_date(agent_id, self._clock.now().date())
        if not session:
            return []
        return list(self._breaks.list_for_session(session.session_id, statuses=COUNTED_BREAK_STATUSES))

    # ----------------------------------------------------------------- helpers

    def _get_owned(self, break_id: int, *, agent_id: Optional[int], for_update: bool = False) -> BreakRequest:
        br = self._breaks.get_by_id(break_id, for_update=for_update)
        if not br or (agent_id is not None and br.agent_id != agent_id):
            raise BreakRequestNotFound(break_id=break_id)
        return br

    def _lock(self, break_id: int, *, agent_id: Optional[int] = None) -> BreakRequest:
        """Lock the owning session row, then the break row (the order check-out uses)."""

        br = self._get_owned(break_id, agent_id=agent_id)
        self._sessions.get_by_id(br.session_id, for_update=True)
        return self._get_owned(break_id, agent_id=agent_id, for_update=True)

    def _get_pending(self, break_id: int) -> BreakRequest:
        br = self._lock(break_id)
        if br.status != BreakStatus.PENDING:
            raise BreakNotPending(break_id=break_id, status=br.status.value)
        return br
