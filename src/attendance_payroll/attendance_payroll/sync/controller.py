from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import actor_required, current_actor, domain_error_response, json_body
from ..container import Container
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    sync = container.sync_service

    @app.route("/api/sync", methods=["POST"], endpoint="sync_devices")
    @actor_required
    def sync_devices():
        report = sync.sync(current_actor())
        return jsonify(report.to_dict()), (200 if report.success else 502)

    @app.route("/api/sync/validate-ids", methods=["POST"], endpoint="validate_terminal_ids")
    @actor_required
    def validate_terminal_ids():
        ids = json_body().get("terminal_user_ids") or []
        if not isinstance(ids, list):
            return jsonify({"success": False, "message": "terminal_user_ids must be a list"}), 400
        batch = sync.validate_employee_ids_batch([str(i) for i in ids])
        return jsonify({"success": True, **batch.to_dict()})

    @app.route("/api/devices/test", methods=["POST"], endpoint="test_devices")
    @actor_required
    def test_devices():
        return jsonify({"success": True, **sync.test_devices().to_dict()})

    @app.route("/api/devices/status", methods=["GET"], endpoint="device_status")
    @actor_required
    def device_status():
        return jsonify({"success": True, "devices": sync.get_device_status()})

    @app.route("/api/devices/<device_id>/info", methods=["GET"], endpoint="device_info")
    @actor_required
    def device_info(device_id: str):
        try:
            result = sync.get_device_info(device_id)
        except DomainError as e:
            return domain_error_response(e)
        if not result.success:
            return jsonify({"success": False, "error": result.error.to_dict()}), 502
        return jsonify({"success": True, "device": result.data.to_dict()})

    @app.route("/api/devices/reset", methods=["POST"], endpoint="reset_devices")
    @actor_required
    def reset_devices():
        device_id = json_body().get("device_id")
        reset = sync.reset_device(str(device_id) if device_id else None)
        if device_id and not reset:
            return jsonify({"success": False, "message": f"Unknown device: {device_id}"}), 404
        return jsonify({"success": True, "reset": reset})
