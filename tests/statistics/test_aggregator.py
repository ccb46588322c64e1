from __future__ import annotations

from datetime import date, datetime

import pytest

from tutoring_ledger.attendance.model import AttendanceLog, Attended
from tutoring_ledger.core.enums import RateBasis
from tutoring_ledger.core.exceptions import ValidationError
from tutoring_ledger.statistics.aggregator import summarize
from tutoring_ledger.statistics.model import Rollup


def _attend_all(container, by_date):
    return {d: container.ledger.record_outcome(r.reservation_id, "attended") for d, r in by_date.items()}


def test_january_scenario(container, january):
    _, by_date = january
    _attend_all(container, by_date)

    assert container.aggregator.rollup(2025, 1) == Rollup(2025, 1, lesson_count=4, contract_count=1, revenue=200_000)


def test_substitution_moves_the_lesson_to_the_new_month(container, january):
    _, by_date = january
    _attend_all(container, by_date)

    container.substitution.substitute(by_date[date(2025, 1, 20)].reservation_id, date(2025, 2, 3))

    jan = container.aggregator.rollup(2025, 1)
    feb = container.aggregator.rollup(2025, 2)
    assert (jan.lesson_count, jan.revenue) == (3, 150_000)
    assert (feb.lesson_count, feb.contract_count, feb.revenue) == (1, 1, 50_000)
    assert container.aggregator.rollup(2025).lesson_count == 4


def test_voided_lessons_drop_out_of_the_rollup(container, january):
    _, by_date = january
    logs = _attend_all(container, by_date)
    container.substitution.substitute(by_date[date(2025, 1, 20)].reservation_id, date(2025, 2, 3))

    container.ledger.void_entry(logs[date(2025, 1, 6)].log_id, reason="duplicate")

    assert container.aggregator.rollup(2025, 1).lesson_count == 2
    voided = container.ledger.get(logs[date(2025, 1, 6)].log_id)
    assert voided.voided and voided.void_reason == "duplicate"
    assert voided.occurred_at == datetime(2025, 1, 6)


def test_empty_period_is_all_zero(container):
    rollup = container.aggregator.rollup(2024, 5)
    assert rollup == Rollup(2024, 5)
    assert rollup.to_dict() == {"year": 2024, "month": 5, "lessonCount": 0, "contractCount": 0, "revenue": 0}


def test_absences_count_the_contract_but_not_the_lesson(container, january):
    _, by_date = january
    container.ledger.record_outcome(by_date[date(2025, 1, 6)].reservation_id, "absent")
    container.ledger.record_outcome(by_date[date(2025, 1, 13)].reservation_id, "pending")

    assert container.aggregator.rollup(2025, 1) == Rollup(2025, 1, lesson_count=0, contract_count=1, revenue=0)


def test_monthly_rate_is_billed_once_per_month(container, contracts, contract_factory):
    contract = contracts.add(contract_factory(rate=400_000, rate_basis=RateBasis.PER_MONTH))
    for r in container.reservation_service.materialize(contract.contract_id, date(2025, 2, 10)):
        container.ledger.record_outcome(r.reservation_id, "attended")

    assert container.aggregator.rollup(2025, 1).revenue == 400_000
    assert container.aggregator.rollup(2025, 2).revenue == 400_000
    assert container.aggregator.rollup(2025) == Rollup(2025, None, lesson_count=6, contract_count=1, revenue=800_000)


def test_rollup_range_returns_twelve_months_per_year(container, january):
    _, by_date = january
    _attend_all(container, by_date)

    years = container.aggregator.rollup_range(2024, 2025)

    assert [y.year for y in years] == [2024, 2025]
    assert len(years[1].months) == 12
    assert years[1].months[0].lesson_count == 4
    assert years[1].total.revenue == 200_000
    assert years[0].total == Rollup(2024, None)


def test_invalid_periods(container):
    with pytest.raises(ValidationError):
        container.aggregator.rollup(2025, 13)
    with pytest.raises(ValidationError):
        container.aggregator.rollup_range(2026, 2025)
    with pytest.raises(ValidationError):
        container.aggregator.rollup(0)
    with pytest.raises(ValidationError):
        container.aggregator.rollup(9999, 12)
    with pytest.raises(ValidationError):
        container.aggregator.rollup_range(2025, 10000)
    assert container.aggregator.rollup(9998, 12).lesson_count == 0


def test_summary_counts_contracts(container, january):
    _, by_date = january
    container.ledger.record_outcome(by_date[date(2025, 1, 6)].reservation_id, "attended")

    summary = container.aggregator.summary(today=date(2025, 1, 15))

    assert summary.this_month.lesson_count == 1
    assert summary.active_contracts == 1
    assert summary.ended_contracts == 0


def test_summarize_counts_lessons_of_unknown_contracts_without_revenue():
    log = AttendanceLog(
        log_id=1,
        contract_id=77,
        student_id=1,
        reservation_id=1,
        occurred_at=datetime(2025, 1, 6, 18, 0),
        outcome=Attended(),
    )
    rollup = summarize(
        [log], {}, year=2025, month=1, start=datetime(2025, 1, 1), end=datetime(2025, 2, 1)
    )
    assert (rollup.lesson_count, rollup.contract_count, rollup.revenue) == (1, 1, 0)
