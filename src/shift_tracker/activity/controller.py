from __future__ import annotations

from datetime import timedelta

from flask import Flask, request

from ..common.http import agent_required, arg_date, arg_int, current_principal, ok, supervisor_required
from ..common.validators import require_enum
from ..container import Container
from ..core import constants
from ..core.enums import ActivityType


def register(app: Flask, container: Container) -> None:
    svc = container.activity_service
    clock = container.clock

    def _range():
        today = clock.now().date()
        end = arg_date("end", today)
        start = arg_date("start", end - timedelta(days=constants.DEFAULT_HISTORY_DAYS))
        return start, end

    def _activity_type():
        value = request.args.get("type")
        return require_enum(ActivityType, value, "type") if value else None

    @app.route("/api/agents/activity-logs", methods=["GET"], endpoint="agent_activity_logs")
    @agent_required
    def agent_activity_logs():
        logs = svc.agent_logs(
            current_principal().principal_id, limit=arg_int("limit", constants.DEFAULT_ACTIVITY_LIMIT)
        )
        return ok({"logs": logs, "count": len(logs)}, message="shift.activityLogsRetrieved")

    @app.route("/api/admin/activity-logs", methods=["GET"], endpoint="admin_activity_logs")
    @supervisor_required
    def admin_activity_logs():
        start, end = _range()
        logs = svc.logs_between(
            start=start,
            end=end,
            agent_id=arg_int("agent_id"),
            activity_type=_activity_type(),
            limit=arg_int("limit", constants.DEFAULT_ADMIN_ACTIVITY_LIMIT),
        )
        return ok({"logs": logs, "count": len(logs)}, message="shift.activityLogsRetrieved")

    @app.route("/api/admin/activity-logs.csv", methods=["GET"], endpoint="admin_activity_logs_csv")
    @supervisor_required
    def admin_activity_logs_csv():
        start, end = _range()
        text = svc.export_csv(start=start, end=end, agent_id=arg_int("agent_id"), activity_type=_activity_type())
        filename = f"activity_logs_{start.strftime('%Y%m%d')}_{end.strftime('%Y%m%d')}.csv"
        return app.response_class(
            text.encode("utf-8-sig"),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/admin/agents/<int:agent_id>/activity-logs", methods=["GET"], endpoint="admin_agent_activity_logs")
    @supervisor_required
    def admin_agent_activity_logs(agent_id: int):
        logs = svc.agent_logs(agent_id, limit=arg_int("limit", constants.DEFAULT_ADMIN_ACTIVITY_LIMIT))
        return ok({"logs": logs, "count": len(logs)}, message="shift.activityLogsRetrieved")
