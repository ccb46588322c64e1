from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import json_body, optional_date, optional_time, required_date
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/contracts/<int:contract_id>/reservations/generate", methods=["POST"], endpoint="api_generate_reservations")
    def api_generate_reservations(contract_id: int):
        data = json_body()
        horizon_end = required_date(data, "horizon_end")
        created = container.reservation_service.materialize(contract_id, horizon_end)
        return jsonify({
            "success": True,
            "created": len(created),
            "data": [r.to_dict() for r in created],
        }), 201 if created else 200

    @app.route("/api/contracts/<int:contract_id>/reservations", methods=["GET"], endpoint="api_list_reservations")
    def api_list_reservations(contract_id: int):
        rows = container.reservation_service.list_for_contract(
            contract_id,
            start=optional_date(request.args, "start"),
            end=optional_date(request.args, "end"),
        )
        return jsonify({"success": True, "data": [r.to_dict() for r in rows]})

    @app.route("/api/reservations/<int:reservation_id>/substitute", methods=["POST"], endpoint="api_substitute")
    def api_substitute(reservation_id: int):
        data = json_body()
        result = container.substitution.substitute(
            reservation_id,
            required_date(data, "new_date"),
            optional_time(data, "new_time"),
            reason=(data.get("reason") or None),
        )
        container.rollup_cache.invalidate(result.affected)
        return jsonify({
            "success": True,
            "reservation": result.reservation.to_dict(),
            "log": result.log.to_dict(),
        })

    @app.route("/api/reservations/<int:reservation_id>/restore", methods=["POST"], endpoint="api_restore")
    def api_restore(reservation_id: int):
        data = json_body()
        result = container.substitution.restore_original(
            reservation_id,
            operator=str(data.get("operator") or ""),
            reason=(data.get("reason") or None),
        )
        container.rollup_cache.invalidate(result.affected)
        return jsonify({
            "success": True,
            "reservation": result.reservation.to_dict(),
            "log": result.log.to_dict(),
        })
