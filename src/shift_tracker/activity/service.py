from __future__ import annotations

import csv
import io
import json
import logging
from datetime import date, datetime, time
from typing import Any, Dict, Optional, Sequence

from ..common.datetime_utils import Clock, SystemClock
from ..core import constants
from ..core.enums import ActivityType
from ..core.exceptions import ValidationError
from .model import ActivityLog
from .repository import ActivityLogRepository

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    "log_id",
    "created_at",
    "agent_id",
    "session_id",
    "activity_type",
    "action",
    "ip_address",
    "performed_by",
    "metadata",
]


class ActivityLogService:
    """Single writer of the audit trail plus its read queries.

    ``record`` does not open a transaction of its own: callers invoke it
    inside the transaction that performs the logged state change, so the
    entry and the change commit or roll back together.
    """

    def __init__(self, logs: ActivityLogRepository, *, clock: Optional[Clock] = None):
        self._logs = logs
        self._clock = clock or SystemClock()

    def record(
        self,
        *,
        agent_id: int,
        activity_type: ActivityType,
        action: str,
        session_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        performed_by: Optional[int] = None,
    ) -> int:
        log_id = self._logs.append(
            agent_id=agent_id,
            activity_type=activity_type,
            action=action,
            created_at=self._clock.now(),
            session_id=session_id,
            metadata=metadata or {},
            ip_address=ip_address,
            performed_by=performed_by,
        )
        logger.debug("activity %s agent=%s session=%s", activity_type.value, agent_id, session_id)
        return log_id

    def agent_logs(self, agent_id: int, *, limit: int = constants.DEFAULT_ACTIVITY_LIMIT) -> Sequence[ActivityLog]:
        return self._logs.list_for_agent(agent_id, limit=max(1, int(limit)))

    def session_logs(self, session_id: int) -> Sequence[ActivityLog]:
        return self._logs.list_for_session(session_id)

    def logs_between(
        self,
        *,
        start: date,
        end: date,
        agent_id: Optional[int] = None,
        activity_type: Optional[ActivityType] = None,
        limit: Optional[int] = constants.DEFAULT_ADMIN_ACTIVITY_LIMIT,
    ) -> Sequence[ActivityLog]:
        if end < start:
            raise ValidationError("end date must not be before start date", start=start.isoformat(), end=end.isoformat())
        return self._logs.list_between(
            start=datetime.combine(start, time.min),
            end=datetime.combine(end, time.max),
            agent_id=agent_id,
            activity_type=activity_type,
            limit=limit,
        )

    def export_csv(
        self,
        *,
        start: date,
        end: date,
        agent_id: Optional[int] = None,
        activity_type: Optional[ActivityType] = None,
    ) -> str:
        """Raw audit rows as CSV text, oldest first."""

        rows = self.logs_between(start=start, end=end, agent_id=agent_id, activity_type=activity_type, limit=None)

        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for log in reversed(list(rows)):
            writer.writerow(
                {
                    "log_id": log.log_id,
                    "created_at": log.created_at.strftime("%Y-%m-%d %H:%M:%S"),
                    "agent_id": log.agent_id,
                    "session_id": log.session_id if log.session_id is not None else "",
                    "activity_type": log.activity_type.value,
                    "action": log.action,
                    "ip_address": log.ip_address or "",
                    "performed_by": log.performed_by if log.performed_by is not None else "",
                    "metadata": json.dumps(log.metadata, sort_keys=True, default=str),
                }
            )
        return out.getvalue()
