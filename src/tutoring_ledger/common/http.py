"""Request helpers shared by the JSON controllers."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from flask import request

from ..core.exceptions import ValidationError
from .datetime_utils import parse_hhmm, parse_iso_date, parse_iso_datetime


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def required_date(data: dict, key: str) -> date:
    value = data.get(key)
    if not value:
        raise ValidationError(f"{key} is required")
    return parse_iso_date(str(value))


def optional_date(data, key: str) -> Optional[date]:
    value = data.get(key)
    return parse_iso_date(str(value)) if value else None


def optional_datetime(data, key: str) -> Optional[datetime]:
    value = data.get(key)
    return parse_iso_datetime(str(value)) if value else None


def optional_time(data, key: str) -> Optional[time]:
    value = data.get(key)
    return parse_hhmm(str(value)) if value else None


def int_arg(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
