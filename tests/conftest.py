from __future__ import annotations

from datetime import datetime, time

import pytest

from shift_tracker.agents.model import Agent
from shift_tracker.common.datetime_utils import FixedClock
from shift_tracker.container import wire_container
from shift_tracker.core.enums import BreakType
from shift_tracker.main import create_app
from shift_tracker.shifts.model import BreakPolicy, Shift

from tests.fakes import (
    InMemoryActivityLogs,
    InMemoryAgents,
    InMemoryBreaks,
    InMemoryPolicies,
    InMemorySessions,
    InMemoryShifts,
    InMemoryStore,
    InMemoryTransactionManager,
)

AGENT_ID = 7
OTHER_AGENT_ID = 8
NO_SHIFT_AGENT_ID = 9
SUPERVISOR_ID = 100


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 1, 5, 9, 0, 0)


@pytest.fixture
def clock(fixed_now) -> FixedClock:
    return FixedClock(fixed_now)


@pytest.fixture
def day_shift() -> Shift:
    return Shift(
        shift_id=1,
        name="Day Shift",
        start_time=time(9, 0),
        end_time=time(17, 0),
        grace_period_minutes=10,
        allow_overtime=True,
        max_overtime_minutes=60,
    )


@pytest.fixture
def policy() -> BreakPolicy:
    return BreakPolicy(
        policy_id=1,
        shift_id=1,
        max_breaks_per_day=2,
        min_duration=10,
        max_duration=30,
        auto_approve_limit=15,
        cooldown_minutes=90,
        allowed_break_types=frozenset({BreakType.SHORT, BreakType.LUNCH}),
    )


@pytest.fixture
def store(day_shift, policy) -> InMemoryStore:
    s = InMemoryStore()
    s.shifts[day_shift.shift_id] = day_shift
    s.policies[policy.policy_id] = policy
    s.agents[AGENT_ID] = Agent(agent_id=AGENT_ID, full_name="Ana Morales", department_id=1, shift_id=1)
    s.agents[OTHER_AGENT_ID] = Agent(agent_id=OTHER_AGENT_ID, full_name="Ben Okafor", department_id=2, shift_id=1)
    s.agents[NO_SHIFT_AGENT_ID] = Agent(agent_id=NO_SHIFT_AGENT_ID, full_name="Chen Wei", department_id=1, shift_id=None)
    return s


@pytest.fixture
def tx(store) -> InMemoryTransactionManager:
    return InMemoryTransactionManager(store)


@pytest.fixture
def container(store, tx, clock):
    return wire_container(
        clock=clock,
        tx=tx,
        agents_repo=InMemoryAgents(store),
        shifts_repo=InMemoryShifts(store),
        policies_repo=InMemoryPolicies(store),
        sessions_repo=InMemorySessions(store),
        breaks_repo=InMemoryBreaks(store),
        activity_repo=InMemoryActivityLogs(store),
    )


@pytest.fixture
def sessions(container):
    return container.session_service


@pytest.fixture
def breaks(container):
    return container.break_service


@pytest.fixture
def activity(container):
    return container.activity_service


@pytest.fixture
def app(container):
    return create_app(container, settings_module="shift_tracker.config.testing")


@pytest.fixture
def client(app):
    return app.test_client()


def agent_headers(agent_id: int = AGENT_ID) -> dict:
    return {"X-Principal-Id": str(agent_id), "X-Principal-Role": "agent"}


def supervisor_headers(supervisor_id: int = SUPERVISOR_ID) -> dict:
    return {"X-Principal-Id": str(supervisor_id), "X-Principal-Role": "supervisor"}
