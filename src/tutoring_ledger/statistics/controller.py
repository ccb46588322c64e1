from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import now_local
from ..common.http import int_arg
from ..common.validators import require_month, require_year, require_year_range
from ..container import Container
from ..core.exceptions import ValidationError
from .presentation import chart_max


def register(app: Flask, container: Container) -> None:
    @app.route("/api/statistics/rollup", methods=["GET"], endpoint="api_statistics_rollup")
    def api_statistics_rollup():
        year = int_arg("year")
        if year is None:
            raise ValidationError("year is required")
        year = require_year(year)
        month = int_arg("month")
        if month is not None:
            month = require_month(month)
        rollup = container.rollup_cache.get(year, month)
        return jsonify({"success": True, "data": rollup.to_dict()})

    @app.route("/api/statistics/range", methods=["GET"], endpoint="api_statistics_range")
    def api_statistics_range():
        this_year = now_local().year
        year_from, year_to = require_year_range(
            int_arg("year_from", this_year),
            int_arg("year_to", this_year),
        )
        years = container.aggregator.rollup_range(year_from, year_to)
        months = [m for y in years for m in y.months]
        return jsonify({
            "success": True,
            "data": [y.to_dict() for y in years],
            "chartMax": {
                "revenue": chart_max(m.revenue for m in months),
                "lessonCount": chart_max(m.lesson_count for m in months),
                "contractCount": chart_max(m.contract_count for m in months),
            },
        })

    @app.route("/api/statistics/summary", methods=["GET"], endpoint="api_statistics_summary")
    def api_statistics_summary():
        summary = container.aggregator.summary(today=now_local().date())
        return jsonify({"success": True, "data": summary.to_dict()})
