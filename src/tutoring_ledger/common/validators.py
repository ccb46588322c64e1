from __future__ import annotations

from ..core.exceptions import ValidationError


def require_positive_id(value: int, field_name: str) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is not a valid id")
    if v <= 0:
        raise ValidationError(f"{field_name} is not a valid id")
    return v


def require_month(value: int) -> int:
    month = int(value)
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    return month


# The last year whose exclusive end bound is still a valid datetime.
MAX_YEAR = 9998


def require_year(value: int) -> int:
    try:
        year = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Year is not a number: {value!r}")
    if not 1 <= year <= MAX_YEAR:
        raise ValidationError(f"Year must be between 1 and {MAX_YEAR}, got {year}")
    return year


def require_year_range(year_from: int, year_to: int) -> tuple[int, int]:
    year_from, year_to = require_year(year_from), require_year(year_to)
    if year_from > year_to:
        raise ValidationError("year_from must not be after year_to")
    return year_from, year_to


def require_operator(operator: str) -> str:
    if not operator or not str(operator).strip():
        raise ValidationError("Operator identity is required for correction tools")
    return str(operator).strip()
