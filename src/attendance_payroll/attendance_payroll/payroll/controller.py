from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import (
    actor_required,
    current_actor,
    domain_error_response,
    failed_result_response,
    json_body,
    to_plain,
)
from ..container import Container
from ..core.exceptions import DomainError, ValidationError


def _employee_ids(raw) -> list[str] | None:
    if not raw:
        return None
    if isinstance(raw, str):
        raw = raw.split(",")
    if not isinstance(raw, list):
        raise ValidationError("employee_ids must be a list or a comma-separated string")
    return [str(x).strip() for x in raw if str(x).strip()]


def register(app: Flask, container: Container) -> None:
    payroll = container.payroll_service

    @app.route("/api/payroll/periods", methods=["GET"], endpoint="list_payroll_periods")
    @actor_required
    def list_payroll_periods():
        return jsonify({"success": True, "periods": to_plain(list(payroll.list_periods()))})

    @app.route("/api/payroll/eligibility/<attendance_period_id>", methods=["GET"], endpoint="payroll_eligibility")
    @actor_required
    def payroll_eligibility(attendance_period_id: str):
        result = payroll.validate_eligibility(attendance_period_id)
        return jsonify({"success": True, "eligible": result.eligible, "reason": result.reason})

    @app.route("/api/payroll/preview/<attendance_period_id>", methods=["GET"], endpoint="payroll_preview")
    @actor_required
    def payroll_preview(attendance_period_id: str):
        try:
            rows = payroll.preview(attendance_period_id, _employee_ids(request.args.get("employee_ids")))
        except DomainError as e:
            return domain_error_response(e)
        return jsonify({"success": True, "rows": to_plain(rows)})

    @app.route("/api/payroll/calculate/<attendance_period_id>", methods=["POST"], endpoint="payroll_calculate")
    @actor_required
    def payroll_calculate(attendance_period_id: str):
        body = json_body()
        try:
            result = payroll.calculate(
                attendance_period_id,
                current_actor(),
                confirm=body.get("confirm") is True,
                employee_ids=_employee_ids(body.get("employee_ids")),
            )
        except DomainError as e:
            return domain_error_response(e)
        if not result.success:
            return failed_result_response(result.errors, result.error_kind)
        return jsonify(
            {
                "success": True,
                "period": to_plain(result.period),
                "records_processed": result.records_processed,
                "total_amount": str(result.total_amount),
            }
        )

    @app.route("/api/payroll/<payroll_period_id>/approve", methods=["POST"], endpoint="payroll_approve")
    @actor_required
    def payroll_approve(payroll_period_id: str):
        body = json_body()
        try:
            result = payroll.approve(
                payroll_period_id, current_actor(), confirm=body.get("confirm") is True, notes=body.get("notes")
            )
        except DomainError as e:
            return domain_error_response(e)
        if not result.success:
            return failed_result_response(result.errors, result.error_kind)
        return jsonify({"success": True, "period": to_plain(result.period)})

    @app.route("/api/payroll/<payroll_period_id>/summary", methods=["GET"], endpoint="payroll_summary")
    @actor_required
    def payroll_summary(payroll_period_id: str):
        try:
            summary = payroll.get_summary(payroll_period_id)
        except DomainError as e:
            return domain_error_response(e)
        return jsonify({"success": True, "summary": to_plain(summary)})

    @app.route("/api/payroll/<payroll_period_id>/records", methods=["GET"], endpoint="payroll_records")
    @actor_required
    def payroll_records(payroll_period_id: str):
        try:
            records = payroll.list_records(payroll_period_id)
        except DomainError as e:
            return domain_error_response(e)
        return jsonify({"success": True, "records": to_plain(list(records))})
