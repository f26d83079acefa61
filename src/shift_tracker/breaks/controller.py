from __future__ import annotations

from flask import Flask

from ..common.http import agent_required, arg_int, current_principal, json_body, ok, supervisor_required
from ..container import Container


def _first(body: dict, *keys: str):
    """Value of the first key present in the body (clients use several spellings)."""
    for key in keys:
        if body.get(key) is not None:
            return body[key]
    return None


def register(app: Flask, container: Container) -> None:
    svc = container.break_service

    # ---- agent ----

    @app.route("/api/agents/break/request", methods=["POST"], endpoint="agent_request_break")
    @agent_required
    def request_break():
        body = json_body()
        result = svc.request_break(
            current_principal().principal_id,
            _first(body, "type", "break_type"),
            _first(body, "duration", "requested_duration", "requestedDuration"),
            reason=body.get("reason"),
        )
        if result.requires_approval:
            return ok(result, message="shift.breakRequestPending", status=202)
        return ok(result, message="shift.breakStarted", status=201)

    @app.route("/api/agents/break/end", methods=["POST"], endpoint="agent_end_break")
    @agent_required
    def end_break():
        return ok(svc.end_break(current_principal().principal_id), message="shift.breakEnded")

    @app.route("/api/agents/break/<int:break_id>/cancel", methods=["POST"], endpoint="agent_cancel_break")
    @agent_required
    def cancel_break(break_id: int):
        return ok(svc.cancel_break(current_principal().principal_id, break_id), message="shift.breakCancelled")

    @app.route("/api/agents/breaks/today", methods=["GET"], endpoint="agent_today_breaks")
    @agent_required
    def today_breaks():
        breaks = svc.get_today_breaks(current_principal().principal_id)
        return ok({"breaks": breaks, "count": len(breaks)}, message="shift.breaksRetrieved")

    # ---- supervisor ----

    @app.route("/api/admin/break-requests/pending", methods=["GET"], endpoint="admin_pending_breaks")
    @supervisor_required
    def pending_breaks():
        rows = svc.get_pending_requests(department_id=arg_int("department_id"), agent_id=arg_int("agent_id"))
        return ok({"requests": rows, "count": len(rows)}, message="shift.pendingRequestsRetrieved")

    @app.route("/api/admin/break-requests/<int:break_id>/approve", methods=["POST"], endpoint="admin_approve_break")
    @supervisor_required
    def approve_break(break_id: int):
        body = json_body()
        br = svc.approve_break(break_id, reviewer_id=current_principal().principal_id, notes=body.get("notes"))
        return ok(br, message="shift.breakRequestApproved")

    @app.route("/api/admin/break-requests/<int:break_id>/reject", methods=["POST"], endpoint="admin_reject_break")
    @supervisor_required
    def reject_break(break_id: int):
        body = json_body()
        br = svc.reject_break(break_id, reviewer_id=current_principal().principal_id, reason=body.get("reason"))
        return ok(br, message="shift.breakRequestRejected")
