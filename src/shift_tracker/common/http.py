"""Request/response plumbing shared by the JSON controllers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from functools import wraps
from typing import Any, Optional

from flask import g, jsonify, request

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from .datetime_utils import parse_iso_date
from .serializers import to_jsonable

PRINCIPAL_ID_HEADER = "X-Principal-Id"
PRINCIPAL_ROLE_HEADER = "X-Principal-Role"


@dataclass(frozen=True)
class Principal:
    principal_id: int
    role: Role


def _load_principal() -> Principal:
    raw_id = request.headers.get(PRINCIPAL_ID_HEADER)
    raw_role = request.headers.get(PRINCIPAL_ROLE_HEADER)
    if not raw_id or not raw_role:
        raise AuthenticationError()
    try:
        return Principal(principal_id=int(raw_id), role=Role(raw_role.strip().lower()))
    except ValueError:
        raise AuthenticationError("Invalid principal headers")


def role_required(role: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            principal = _load_principal()
            if principal.role != role:
                raise AuthorizationError(required_role=role.value)
            g.principal = principal
            return view(*args, **kwargs)

        return wrapper

    return decorator


agent_required = role_required(Role.AGENT)
supervisor_required = role_required(Role.SUPERVISOR)


def current_principal() -> Principal:
    return g.principal


def ok(data: Any = None, *, message: str = "success", status: int = 200):
    return jsonify({"ok": True, "message": message, "data": to_jsonable(data)}), status


def json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def client_ip() -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.remote_addr


def arg_int(name: str, default: Optional[int] = None) -> Optional[int]:
    value = request.args.get(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", field=name)


def arg_date(name: str, default: Optional[date] = None) -> Optional[date]:
    value = request.args.get(name)
    if not value:
        return default
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)", field=name)
