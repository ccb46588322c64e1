"""Recurrence parsing and slot expansion.

Contracts persist their schedule as a list of weekday codes (``MON`` .. ``SUN``,
or ``ANY`` for "no fixed day"), an optional ``HH:MM`` lesson time and an
optional list of explicit ``YYYY-MM-DD`` dates. This module turns that into a
RecurrenceRule and expands the rule into concrete (date, time) slots.
"""

from __future__ import annotations

import json
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional, Sequence, Union

from ..core.constants import ANY_WEEKDAY_CODE, WEEKDAY_CODES
from ..core.exceptions import InvalidRecurrenceDefinition
from .model import RecurrenceRule

Slot = tuple[date, Optional[time]]


def _as_list(value: Union[None, str, Sequence]) -> list:
    if value is None:
        return []
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        v = value.strip()
        if not v:
            return []
        if v.startswith("["):
            try:
                decoded = json.loads(v)
            except json.JSONDecodeError:
                raise InvalidRecurrenceDefinition(f"Malformed recurrence list: {value!r}")
            if not isinstance(decoded, list):
                raise InvalidRecurrenceDefinition(f"Malformed recurrence list: {value!r}")
            return decoded
        return [part.strip() for part in v.split(",") if part.strip()]
    return list(value)


def _parse_weekday(code) -> Optional[int]:
    if isinstance(code, int) and not isinstance(code, bool):
        if 0 <= code <= 6:
            return code
        raise InvalidRecurrenceDefinition(f"Weekday out of range: {code!r}")
    if not isinstance(code, str):
        raise InvalidRecurrenceDefinition(f"Malformed weekday value: {code!r}")
    key = code.strip().upper()
    if key == ANY_WEEKDAY_CODE:
        return None
    if key not in WEEKDAY_CODES:
        raise InvalidRecurrenceDefinition(f"Malformed weekday value: {code!r}")
    return WEEKDAY_CODES[key]


def _parse_time(value) -> Optional[time]:
    if value is None or isinstance(value, time):
        return value
    v = str(value).strip()
    if not v:
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(v, fmt).time()
        except ValueError:
            continue
    raise InvalidRecurrenceDefinition(f"Malformed lesson time: {value!r}")


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        raise InvalidRecurrenceDefinition(f"Malformed explicit date: {value!r}")


def parse_recurrence(day_codes=None, lesson_time=None, explicit_dates=None) -> RecurrenceRule:
    """Build a RecurrenceRule from its persisted form.

    Raises InvalidRecurrenceDefinition when a value is malformed or when the
    definition names neither weekdays, ``ANY`` nor explicit dates.
    """

    codes = _as_list(day_codes)
    dates = _as_list(explicit_dates)
    if not codes and not dates:
        raise InvalidRecurrenceDefinition("Recurrence needs weekday codes or explicit dates")

    weekdays = {wd for wd in (_parse_weekday(c) for c in codes) if wd is not None}
    return RecurrenceRule(
        weekdays=tuple(sorted(weekdays)),
        time_of_day=_parse_time(lesson_time),
        explicit_dates=tuple(sorted({_parse_date(d) for d in dates})),
    )


def iter_slots(rule: RecurrenceRule, start: date, end: date) -> Iterator[Slot]:
    """Yield the rule's slots in [start, end], ordered and without duplicates."""

    if start > end or rule.is_empty:
        return

    days: set[date] = {d for d in rule.explicit_dates if start <= d <= end}
    if rule.weekdays:
        wanted = set(rule.weekdays)
        current = start
        while current <= end:
            if current.weekday() in wanted:
                days.add(current)
            current += timedelta(days=1)

    for day in sorted(days):
        yield day, rule.time_of_day
