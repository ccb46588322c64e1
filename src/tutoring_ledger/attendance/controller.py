from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local
from ..common.http import int_arg, json_body, optional_date, optional_datetime
from ..container import Container
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.exceptions import ValidationError
from .model import affected_months


def register(app: Flask, container: Container) -> None:
    @app.route("/api/reservations/<int:reservation_id>/attendance", methods=["POST"], endpoint="api_record_attendance")
    def api_record_attendance(reservation_id: int):
        data = json_body()
        status = (data.get("status") or "").strip()
        if not status:
            raise ValidationError("status is required")

        before = container.ledger.get_for_reservation(reservation_id)
        log = container.ledger.record_outcome(
            reservation_id,
            status,
            optional_datetime(data, "at"),
            substitute_at=optional_datetime(data, "substitute_at"),
            memo=(data.get("memo") or None),
            modified_by=(data.get("modified_by") or None),
            change_reason=(data.get("change_reason") or None),
        )
        container.rollup_cache.invalidate(affected_months(before, log))
        return jsonify({"success": True, "data": log.to_dict()})

    @app.route("/api/attendance/<int:log_id>/void", methods=["POST"], endpoint="api_void_attendance")
    def api_void_attendance(log_id: int):
        data = json_body()
        log = container.ledger.void_entry(
            log_id,
            reason=(data.get("reason") or None),
            modified_by=(data.get("modified_by") or None),
        )
        container.rollup_cache.invalidate(affected_months(log))
        return jsonify({"success": True, "data": log.to_dict()})

    @app.route("/api/attendance/unprocessed", methods=["GET"], endpoint="api_unprocessed_attendance")
    def api_unprocessed_attendance():
        today = optional_date(request.args, "today") or now_local().date()
        rows = container.ledger.find_unprocessed(today=today)
        return jsonify({"success": True, "data": [r.to_dict() for r in rows]})

    @app.route("/api/contracts/<int:contract_id>/attendance", methods=["GET"], endpoint="api_contract_attendance")
    def api_contract_attendance(contract_id: int):
        logs = container.ledger.list_for_contract(contract_id)
        return jsonify({"success": True, "data": [log.to_dict() for log in logs]})

    @app.route("/api/students/<int:student_id>/attendance", methods=["GET"], endpoint="api_student_attendance")
    def api_student_attendance(student_id: int):
        logs = container.ledger.list_for_student(student_id, limit=int_arg("limit", DEFAULT_LIST_LIMIT))
        return jsonify({"success": True, "data": [log.to_dict() for log in logs]})
