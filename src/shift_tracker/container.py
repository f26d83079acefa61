from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .activity.mysql_activity_repository import MySQLActivityLogRepository
from .activity.repository import ActivityLogRepository
from .activity.service import ActivityLogService
from .agents.mysql_agent_repository import MySQLAgentRepository
from .agents.repository import AgentRepository
from .breaks.mysql_break_repository import MySQLBreakRequestRepository
from .breaks.repository import BreakRequestRepository
from .breaks.service import BreakService
from .common.datetime_utils import Clock, SystemClock
from .core import constants
from .database.connection import DBConfig, DatabaseConnection
from .database.transaction import MySQLTransactionManager, TransactionManager
from .sessions.factory import CheckInStrategyFactory
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .sessions.service import SessionService
from .shifts.mysql_shift_repository import MySQLBreakPolicyRepository, MySQLShiftRepository
from .shifts.repository import BreakPolicyRepository, ShiftRepository


@dataclass(frozen=True)
class Container:
    clock: Clock
    tx: TransactionManager

    agents_repo: AgentRepository
    shifts_repo: ShiftRepository
    policies_repo: BreakPolicyRepository
    sessions_repo: SessionRepository
    breaks_repo: BreakRequestRepository
    activity_repo: ActivityLogRepository

    activity_service: ActivityLogService
    session_service: SessionService
    break_service: BreakService


def wire_container(
    *,
    clock: Clock,
    tx: TransactionManager,
    agents_repo: AgentRepository,
    shifts_repo: ShiftRepository,
    policies_repo: BreakPolicyRepository,
    sessions_repo: SessionRepository,
    breaks_repo: BreakRequestRepository,
    activity_repo: ActivityLogRepository,
    late_checkin_extra_minutes: int = constants.DEFAULT_LATE_CHECKIN_EXTRA_MINUTES,
) -> Container:
    """Build the services on top of whatever repositories the caller provides."""

    activity_service = ActivityLogService(activity_repo, clock=clock)
    session_service = SessionService(
        sessions_repo,
        agents_repo,
        shifts_repo,
        breaks_repo,
        activity_service,
        tx,
        clock=clock,
        strategy_factory=CheckInStrategyFactory(),
        late_checkin_extra_minutes=late_checkin_extra_minutes,
    )
    break_service = BreakService(
        breaks_repo,
        sessions_repo,
        policies_repo,
        agents_repo,
        activity_service,
        tx,
        clock=clock,
    )

    return Container(
        clock=clock,
        tx=tx,
        agents_repo=agents_repo,
        shifts_repo=shifts_repo,
        policies_repo=policies_repo,
        sessions_repo=sessions_repo,
        breaks_repo=breaks_repo,
        activity_repo=activity_repo,
        activity_service=activity_service,
        session_service=session_service,
        break_service=break_service,
    )


def build_container(
    *,
    db_config: dict,
    clock: Optional[Clock] = None,
    late_checkin_extra_minutes: int = constants.DEFAULT_LATE_CHECKIN_EXTRA_MINUTES,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return wire_container(
        clock=clock or SystemClock(),
        tx=MySQLTransactionManager(conn),
        agents_repo=MySQLAgentRepository(conn),
        shifts_repo=MySQLShiftRepository(conn),
        policies_repo=MySQLBreakPolicyRepository(conn),
        sessions_repo=MySQLSessionRepository(conn),
        breaks_repo=MySQLBreakRequestRepository(conn),
        activity_repo=MySQLActivityLogRepository(conn),
        late_checkin_extra_minutes=late_checkin_extra_minutes,
    )
