from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from .datetime_utils import parse_iso_date
from ..core.exceptions import AuthenticationError, DomainError, ValidationError, error_kind

_STATUS_BY_KIND = {"unauthenticated": 401, "not_found": 404, "invalid": 400, "conflict": 409, "error": 500}


def status_for(kind: Optional[str]) -> int:
    return _STATUS_BY_KIND.get(kind or "error", 500)


def actor_required(view):
    """Reject requests that carry no acting user in the session."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            current_actor()
        except AuthenticationError as exc:
            return domain_error_response(exc)
        return view(*args, **kwargs)

    return wrapper


def current_actor() -> str:
    user_id = session.get("user_id")
    if user_id is None:
        raise AuthenticationError("Authentication required")
    return str(user_id)


def json_body() -> dict[str, Any]:
    return request.get_json(silent=True) or {}


def require_date(body: dict[str, Any], key: str) -> date:
    raw = body.get(key)
    if not raw:
        raise ValidationError(f"{key} is required")
    try:
        return parse_iso_date(str(raw))
    except ValueError:
        raise ValidationError(f"{key} must be a date in YYYY-MM-DD format")


def domain_error_response(exc: DomainError):
    return jsonify({"success": False, "message": str(exc)}), status_for(error_kind(exc))


def failed_result_response(errors, kind: Optional[str]):
    return jsonify({"success": False, "errors": list(errors)}), status_for(kind)


def to_plain(value: Any) -> Any:
    """Dataclasses, enums, dates and Decimals to JSON-friendly values."""

    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value
