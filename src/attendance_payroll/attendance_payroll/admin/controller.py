from __future__ import annotations

from typing import Any

from flask import Flask, jsonify

from ..common.http import (
    actor_required,
    current_actor,
    domain_error_response,
    failed_result_response,
    json_body,
    require_date,
    to_plain,
)
from ..container import Container
from ..core.exceptions import DomainError
from ..periods.model import AttendancePeriod, FinalizationResult


def _period_dict(period: AttendancePeriod) -> dict[str, Any]:
    return to_plain(period)


def _finalization_dict(result: FinalizationResult) -> dict[str, Any]:
    return {
        "success": True,
        "period": _period_dict(result.period) if result.period else None,
        "affected_record_count": result.affected_record_count,
        "employee_count": result.employee_count,
    }


def register(app: Flask, container: Container) -> None:
    admin = container.admin_service

    @app.route("/api/periods", methods=["GET"], endpoint="list_periods")
    @actor_required
    def list_periods():
        return jsonify({"success": True, "periods": [_period_dict(p) for p in admin.list_periods()]})

    @app.route("/api/periods", methods=["POST"], endpoint="create_period")
    @actor_required
    def create_period():
        body = json_body()
        try:
            period = admin.create_period(require_date(body, "start_date"), require_date(body, "end_date"), current_actor())
        except DomainError as e:
            return domain_error_response(e)
        return jsonify({"success": True, "period": _period_dict(period)}), 201

    @app.route("/api/periods/<period_id>/summary", methods=["GET"], endpoint="period_summary")
    @actor_required
    def period_summary(period_id: str):
        try:
            summary = admin.get_period_summary(period_id)
        except DomainError as e:
            return domain_error_response(e)
        return jsonify(
            {
                "success": True,
                "period": _period_dict(summary.period),
                "total_records": summary.total_records,
                "employee_count": summary.employee_count,
                "incomplete_records": summary.incomplete_records,
                "unresolved_conflicts": summary.unresolved_conflicts,
                "can_finalize": summary.can_finalize,
            }
        )

    @app.route("/api/periods/<period_id>/audit", methods=["GET"], endpoint="period_audit_trail")
    @actor_required
    def period_audit_trail(period_id: str):
        try:
            entries = admin.get_period_audit_trail(period_id)
        except DomainError as e:
            return domain_error_response(e)
        return jsonify({"success": True, "entries": [to_plain(entry) for entry in entries]})

    @app.route("/api/periods/<period_id>/finalize", methods=["POST"], endpoint="finalize_period")
    @actor_required
    def finalize_period(period_id: str):
        body = json_body()
        try:
            result = admin.finalize_period(period_id, current_actor(), confirm=body.get("confirm") is True)
        except DomainError as e:
            return domain_error_response(e)
        if not result.success:
            return failed_result_response(result.errors, result.error_kind)
        return jsonify(_finalization_dict(result))

    @app.route("/api/periods/<period_id>/unlock", methods=["POST"], endpoint="unlock_period")
    @actor_required
    def unlock_period(period_id: str):
        body = json_body()
        try:
            result = admin.unlock_period(
                period_id, current_actor(), str(body.get("reason") or ""), confirm=body.get("confirm") is True
            )
        except DomainError as e:
            return domain_error_response(e)
        if not result.success:
            return failed_result_response(result.errors, result.error_kind)
        return jsonify(_finalization_dict(result))

    @app.route("/api/attendance/<record_id>/resolve", methods=["POST"], endpoint="resolve_conflict")
    @actor_required
    def resolve_conflict(record_id: str):
        body = json_body()
        try:
            record = admin.resolve_conflict(record_id, current_actor(), str(body.get("notes") or ""))
        except DomainError as e:
            return domain_error_response(e)
        return jsonify({"success": True, "record_id": record.record_id, "validation_status": record.validation_status.value})

    @app.route("/api/attendance/<record_id>/editable", methods=["GET"], endpoint="record_editable")
    @actor_required
    def record_editable(record_id: str):
        check = admin.is_record_editable(record_id)
        return jsonify({"success": True, "editable": check.editable, "reason": check.reason})
