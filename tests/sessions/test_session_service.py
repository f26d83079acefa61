from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

import pytest

from shift_tracker.core.enums import AgentStatus, BreakStatus, BreakType, CheckInStatus, SessionStatus
from shift_tracker.core.exceptions import (
    AgentNotFound,
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    CannotCheckOutOnBreak,
    InvalidStateTransition,
    NoActiveSession,
    NoShiftAssigned,
    SessionNotFound,
    TooLateToCheckIn,
)
from shift_tracker.sessions.model import ensure_session_transition

from tests.conftest import AGENT_ID, NO_SHIFT_AGENT_ID, OTHER_AGENT_ID, SUPERVISOR_ID
from tests.fakes import logged_types


def at(hour: int, minute: int = 0, second: int = 0, day: int = 5) -> datetime:
    return datetime(2026, 1, day, hour, minute, second)


# ---------------------------------------------------------------- check-in


def test_check_in_within_grace_is_on_time(sessions, clock, store):
    clock.set(at(9, 7))

    result = sessions.check_in(AGENT_ID, ip_address="10.0.0.5", location={"lat": 1.5, "lng": 2.5})

    assert result.status == CheckInStatus.ON_TIME
    assert result.late_minutes == 7
    assert result.session.status == SessionStatus.ACTIVE
    assert result.session.check_in == at(9, 7)
    assert result.session.check_in_ip == "10.0.0.5"
    assert store.agents[AGENT_ID].current_status == AgentStatus.ACTIVE
    assert store.agents[AGENT_ID].current_session_id == result.session.session_id
    assert logged_types(store) == ["check_in"]


def test_check_in_after_grace_is_late(sessions, clock, store):
    clock.set(at(9, 25))

    result = sessions.check_in(AGENT_ID)

    assert result.status == CheckInStatus.LATE
    assert result.late_minutes == 15
    assert store.agents[AGENT_ID].current_status == AgentStatus.LATE


def test_check_in_before_start_is_early(sessions, clock):
    clock.set(at(8, 40))

    result = sessions.check_in(AGENT_ID)

    assert result.status == CheckInStatus.EARLY
    assert result.late_minutes == 0


def test_check_in_too_late_is_refused_without_side_effects(sessions, clock, store):
    # grace 10 + 60 extra minutes
    clock.set(at(10, 21))

    with pytest.raises(TooLateToCheckIn) as exc:
        sessions.check_in(AGENT_ID)

    assert exc.value.context == {"late_minutes": 71, "max_allowed": 70}
    assert exc.value.rule == "max_late"
    assert store.sessions == {}
    assert store.logs == {}
    assert store.agents[AGENT_ID].current_status == AgentStatus.OFFLINE


def test_check_in_at_ceiling_is_allowed(sessions, clock):
    clock.set(at(10, 20))

    result = sessions.check_in(AGENT_ID)

    assert result.late_minutes == 70


def test_shift_max_late_minutes_overrides_default_ceiling(sessions, clock, store, day_shift):
    store.shifts[1] = replace(day_shift, max_late_minutes=5)
    clock.set(at(9, 16))

    with pytest.raises(TooLateToCheckIn) as exc:
        sessions.check_in(AGENT_ID)

    assert exc.value.context["max_allowed"] == 5


def test_second_check_in_same_day_conflicts(sessions, clock):
    sessions.check_in(AGENT_ID)
    clock.advance(minutes=5)

    with pytest.raises(AlreadyCheckedIn):
        sessions.check_in(AGENT_ID)


def test_check_in_after_check_out_same_day_conflicts(sessions, clock):
    sessions.check_in(AGENT_ID)
    clock.set(at(17, 0))
    sessions.check_out(AGENT_ID)

    with pytest.raises(AlreadyCheckedIn):
        sessions.check_in(AGENT_ID)


def test_check_in_takes_no_row_locks(sessions, store):
    # the unique (agent, day) key decides between concurrent check-ins
    sessions.check_in(AGENT_ID)

    assert store.locks == []


def test_check_out_locks_session_before_breaks(sessions, breaks, clock, store):
    session = sessions.check_in(AGENT_ID).session
    clock.set(at(10, 0))
    breaks.request_break(AGENT_ID, BreakType.LUNCH, 20)
    store.locks.clear()
    clock.set(at(17, 0))

    sessions.check_out(AGENT_ID)

    assert store.locks[0] == ("session", session.session_id)


def test_check_in_unknown_agent(sessions):
    with pytest.raises(AgentNotFound):
        sessions.check_in(12345)


def test_check_in_without_shift(sessions):
    with pytest.raises(NoShiftAssigned):
        sessions.check_in(NO_SHIFT_AGENT_ID)


# --------------------------------------------------------------- check-out


def test_check_out_computes_work_and_overtime(sessions, clock, store):
    sessions.check_in(AGENT_ID)
    clock.set(at(17, 30))

    result = sessions.check_out(AGENT_ID, ip_address="10.0.0.9")

    assert result.summary.total_minutes == 510
    assert result.summary.break_minutes == 0
    assert result.summary.work_minutes == 510
    assert result.summary.overtime_minutes == 30
    assert result.session.status == SessionStatus.COMPLETED
    assert result.session.check_out == at(17, 30)
    assert result.session.total_work_minutes == 510
    assert store.agents[AGENT_ID].current_status == AgentStatus.OFFLINE
    assert store.agents[AGENT_ID].current_session_id is None

    checkout_log = [l for l in store.logs.values() if l.activity_type.value == "check_out"][0]
    assert checkout_log.metadata["overtime_exceeds_limit"] is False


def test_check_out_flags_overtime_above_shift_limit(sessions, clock, store):
    sessions.check_in(AGENT_ID)
    clock.set(at(18, 30))

    result = sessions.check_out(AGENT_ID)

    assert result.summary.overtime_minutes == 90
    checkout_log = [l for l in store.logs.values() if l.activity_type.value == "check_out"][0]
    assert checkout_log.metadata["overtime_exceeds_limit"] is True


def test_check_out_without_session(sessions):
    with pytest.raises(NoActiveSession):
        sessions.check_out(AGENT_ID)


def test_check_out_twice(sessions, clock):
    sessions.check_in(AGENT_ID)
    clock.set(at(17, 0))
    sessions.check_out(AGENT_ID)

    with pytest.raises(AlreadyCheckedOut):
        sessions.check_out(AGENT_ID)


def test_check_out_on_break_then_after_break(sessions, breaks, clock):
    sessions.check_in(AGENT_ID)
    clock.set(at(11, 0))
    breaks.request_break(AGENT_ID, BreakType.SHORT, 12)
    clock.set(at(11, 5))

    with pytest.raises(CannotCheckOutOnBreak):
        sessions.check_out(AGENT_ID)

    clock.set(at(11, 12))
    breaks.end_break(AGENT_ID)
    clock.set(at(17, 0))
    result = sessions.check_out(AGENT_ID)

    assert result.summary.total_minutes == 480
    assert result.summary.break_minutes == 12
    assert result.summary.work_minutes == 468
    assert result.summary.overtime_minutes == 0
    assert result.summary.number_of_breaks == 1


def test_check_out_cancels_pending_requests(sessions, breaks, clock, store):
    sessions.check_in(AGENT_ID)
    clock.set(at(10, 0))
    pending = breaks.request_break(AGENT_ID, BreakType.LUNCH, 25).break_request
    clock.set(at(17, 0))

    sessions.check_out(AGENT_ID)

    assert store.breaks[pending.break_id].status == BreakStatus.CANCELLED


# ------------------------------------------------------------------ status


def test_status_without_session(sessions):
    view = sessions.get_status(AGENT_ID)

    assert view.has_active_session is False
    assert view.status == AgentStatus.OFFLINE


def test_status_counts_running_break(sessions, breaks, clock):
    sessions.check_in(AGENT_ID)
    clock.set(at(10, 0))
    breaks.request_break(AGENT_ID, BreakType.SHORT, 12)
    clock.set(at(10, 5))

    view = sessions.get_status(AGENT_ID)

    assert view.has_active_session is True
    assert view.status == AgentStatus.ON_BREAK
    assert view.active_break is not None
    assert view.stats.elapsed_minutes == 65
    assert view.stats.break_minutes == 5
    assert view.stats.work_minutes == 60
    assert view.stats.number_of_breaks == 1


def test_repeated_status_is_monotonic(sessions, clock):
    sessions.check_in(AGENT_ID)
    clock.set(at(10, 0))
    first = sessions.get_status(AGENT_ID)
    second = sessions.get_status(AGENT_ID)
    clock.advance(minutes=3)
    third = sessions.get_status(AGENT_ID)

    assert first == second
    assert third.stats.elapsed_minutes >= second.stats.elapsed_minutes
    assert third.stats.work_minutes >= second.stats.work_minutes
    assert third.session == second.session


def test_status_after_check_out_is_offline(sessions, clock):
    sessions.check_in(AGENT_ID)
    clock.set(at(17, 0))
    sessions.check_out(AGENT_ID)

    assert sessions.get_status(AGENT_ID).has_active_session is False


# ------------------------------------------------------- details / history


def test_session_details_include_breaks_and_logs(sessions, breaks, clock):
    session = sessions.check_in(AGENT_ID).session
    clock.set(at(10, 0))
    breaks.request_break(AGENT_ID, BreakType.SHORT, 12)

    details = sessions.get_session_details(session.session_id, agent_id=AGENT_ID)

    assert details.session.session_id == session.session_id
    assert [b.status for b in details.breaks] == [BreakStatus.ACTIVE]
    assert [l.activity_type.value for l in details.activity] == ["check_in", "break_request", "break_start"]


def test_session_details_hidden_from_other_agents(sessions):
    session = sessions.check_in(AGENT_ID).session

    with pytest.raises(SessionNotFound):
        sessions.get_session_details(session.session_id, agent_id=OTHER_AGENT_ID)


def test_history_totals(sessions, clock):
    clock.set(at(9, 20, day=5))
    sessions.check_in(AGENT_ID)
    clock.set(at(17, 0, day=5))
    sessions.check_out(AGENT_ID)
    clock.set(at(9, 0, day=6))
    sessions.check_in(AGENT_ID)
    clock.set(at(18, 0, day=6))
    sessions.check_out(AGENT_ID)

    history = sessions.get_history(AGENT_ID, start=date(2026, 1, 1), end=date(2026, 1, 6))

    assert history.totals.sessions == 2
    assert history.totals.completed == 2
    assert history.totals.work_minutes == 460 + 540
    assert history.totals.late_minutes == 10
    assert history.totals.overtime_minutes == 60
    assert [s.work_date for s in history.sessions] == [date(2026, 1, 6), date(2026, 1, 5)]


def test_list_sessions_paginates_and_filters(sessions, clock):
    sessions.check_in(AGENT_ID)
    clock.advance(minutes=1)
    sessions.check_in(OTHER_AGENT_ID)

    page = sessions.list_sessions(page=1, limit=1)
    assert page.total == 2
    assert page.pages == 2
    assert len(page.items) == 1

    dept = sessions.list_sessions(department_id=2)
    assert [row.agent_name for row in dept.items] == ["Ben Okafor"]


# ------------------------------------------------------- admin overrides


def test_mark_incomplete_cancels_active_break(sessions, breaks, clock, store):
    session = sessions.check_in(AGENT_ID).session
    clock.set(at(10, 0))
    br = breaks.request_break(AGENT_ID, BreakType.SHORT, 12).break_request
    clock.set(at(10, 3))

    updated = sessions.mark_incomplete(session.session_id, performed_by=SUPERVISOR_ID, reason="device lost")

    assert updated.status == SessionStatus.INCOMPLETE
    assert updated.notes == "device lost"
    assert store.breaks[br.break_id].status == BreakStatus.CANCELLED
    assert store.agents[AGENT_ID].current_status == AgentStatus.OFFLINE
    last = max(store.logs.values(), key=lambda l: l.log_id)
    assert last.activity_type.value == "status_change"
    assert last.performed_by == SUPERVISOR_ID


def test_mark_incomplete_on_completed_session_is_invalid(sessions, clock):
    session = sessions.check_in(AGENT_ID).session
    clock.set(at(17, 0))
    sessions.check_out(AGENT_ID)

    with pytest.raises(InvalidStateTransition):
        sessions.mark_incomplete(session.session_id, performed_by=SUPERVISOR_ID)


def test_close_stale_sessions(sessions, clock, store):
    sessions.check_in(AGENT_ID)
    sessions.check_in(OTHER_AGENT_ID)
    clock.set(at(8, 0, day=6))

    closed = sessions.close_stale_sessions(performed_by=SUPERVISOR_ID)

    assert len(closed) == 2
    assert all(s.status == SessionStatus.INCOMPLETE for s in store.sessions.values())


def test_session_transition_table():
    ensure_session_transition(SessionStatus.ACTIVE, SessionStatus.ON_BREAK)
    ensure_session_transition(SessionStatus.ON_BREAK, SessionStatus.INCOMPLETE)

    with pytest.raises(InvalidStateTransition):
        ensure_session_transition(SessionStatus.ON_BREAK, SessionStatus.COMPLETED)
    with pytest.raises(InvalidStateTransition):
        ensure_session_transition(SessionStatus.COMPLETED, SessionStatus.ACTIVE)
