from __future__ import annotations

from flask import Flask, request

from ..common.http import (
    agent_required,
    arg_date,
    arg_int,
    client_ip,
    current_principal,
    json_body,
    ok,
    supervisor_required,
)
from ..common.validators import optional_text, parse_location, require_enum
from ..container import Container
from ..core import constants
from ..core.enums import CheckInStatus, SessionStatus


def register(app: Flask, container: Container) -> None:
    svc = container.session_service

    # ---- agent ----

    @app.route("/api/agents/check-in", methods=["POST"], endpoint="agent_check_in")
    @agent_required
    def check_in():
        body = json_body()
        result = svc.check_in(
            current_principal().principal_id,
            ip_address=client_ip(),
            location=parse_location(body.get("location")),
        )
        message = "shift.checkedInLate" if result.status == CheckInStatus.LATE else "shift.checkedInSuccess"
        return ok(result, message=message, status=201)

    @app.route("/api/agents/check-out", methods=["POST"], endpoint="agent_check_out")
    @agent_required
    def check_out():
        body = json_body()
        result = svc.check_out(
            current_principal().principal_id,
            ip_address=client_ip(),
            location=parse_location(body.get("location")),
        )
        return ok(result, message="shift.checkedOutSuccess")

    @app.route("/api/agents/session/status", methods=["GET"], endpoint="agent_session_status")
    @agent_required
    def session_status():
        return ok(svc.get_status(current_principal().principal_id), message="shift.statusRetrieved")

    @app.route("/api/agents/session/<int:session_id>", methods=["GET"], endpoint="agent_session_details")
    @agent_required
    def session_details(session_id: int):
        details = svc.get_session_details(session_id, agent_id=current_principal().principal_id)
        return ok(details, message="shift.sessionRetrieved")

    @app.route("/api/agents/sessions/history", methods=["GET"], endpoint="agent_session_history")
    @agent_required
    def session_history():
        history = svc.get_history(
            current_principal().principal_id,
            start=arg_date("start"),
            end=arg_date("end"),
        )
        return ok(history, message="shift.historyRetrieved")

    # ---- supervisor ----

    @app.route("/api/admin/sessions", methods=["GET"], endpoint="admin_sessions")
    @supervisor_required
    def admin_sessions():
        status = request.args.get("status")
        page = svc.list_sessions(
            start=arg_date("start"),
            end=arg_date("end"),
            agent_id=arg_int("agent_id"),
            department_id=arg_int("department_id"),
            status=require_enum(SessionStatus, status, "status") if status else None,
            page=arg_int("page", 1),
            limit=arg_int("limit", constants.DEFAULT_PAGE_SIZE),
        )
        return ok(page.to_dict(), message="shift.sessionsRetrieved")

    @app.route("/api/admin/sessions/<int:session_id>", methods=["GET"], endpoint="admin_session_details")
    @supervisor_required
    def admin_session_details(session_id: int):
        return ok(svc.get_session_details(session_id), message="shift.sessionRetrieved")

    @app.route("/api/admin/sessions/<int:session_id>/incomplete", methods=["POST"], endpoint="admin_mark_incomplete")
    @supervisor_required
    def admin_mark_incomplete(session_id: int):
        body = json_body()
        session = svc.mark_incomplete(
            session_id,
            performed_by=current_principal().principal_id,
            reason=optional_text(body.get("reason")),
        )
        return ok(session, message="shift.sessionMarkedIncomplete")

    @app.route("/api/admin/sessions/close-stale", methods=["POST"], endpoint="admin_close_stale_sessions")
    @supervisor_required
    def admin_close_stale_sessions():
        closed = svc.close_stale_sessions(performed_by=current_principal().principal_id, before=arg_date("before"))
        return ok({"closed": closed, "count": len(closed)}, message="shift.staleSessionsClosed")
