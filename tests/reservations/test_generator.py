from __future__ import annotations

from datetime import date, time

import pytest

from tutoring_ledger.core.enums import ContractStatus
from tutoring_ledger.core.exceptions import ContractNotFound, InvalidTransition, ValidationError


def test_materializes_weekly_occurrences_up_to_horizon(january):
    _, by_date = january
    assert sorted(by_date) == [date(2025, 1, 6), date(2025, 1, 13), date(2025, 1, 20), date(2025, 1, 27)]
    assert all(r.scheduled_date == r.reserved_date for r in by_date.values())


def test_generating_twice_creates_no_duplicates(container, january, reservations):
    contract, _ = january
    again = container.reservation_service.materialize(contract.contract_id, date(2025, 1, 31))
    assert again == []
    assert len(reservations.list_for_contract(contract.contract_id)) == 4


def test_extending_horizon_only_adds_the_gap(container, january, reservations):
    contract, _ = january
    added = container.reservation_service.materialize(contract.contract_id, date(2025, 2, 14))
    assert [r.reserved_date for r in added] == [date(2025, 2, 3), date(2025, 2, 10)]
    assert len(reservations.list_for_contract(contract.contract_id)) == 6


def test_plan_is_pure_and_does_not_persist(container, contracts, contract_factory, reservations):
    contract = contracts.add(contract_factory(lesson_time="18:00"))
    planned = container.generator.generate(contract, date(2025, 1, 20))
    assert [(n.reserved_date, n.reserved_time) for n in planned] == [
        (date(2025, 1, 6), time(18, 0)),
        (date(2025, 1, 13), time(18, 0)),
        (date(2025, 1, 20), time(18, 0)),
    ]
    assert reservations.list_for_contract(contract.contract_id) == []


def test_contract_end_date_clamps_the_window(container, contracts, contract_factory):
    contract = contracts.add(contract_factory(end=date(2025, 1, 15)))
    created = container.reservation_service.materialize(contract.contract_id, date(2025, 3, 1))
    assert [r.reserved_date for r in created] == [date(2025, 1, 6), date(2025, 1, 13)]


def test_horizon_before_start_is_rejected(container, contracts, contract_factory):
    contract = contracts.add(contract_factory(start=date(2025, 3, 3)))
    with pytest.raises(ValidationError):
        container.reservation_service.materialize(contract.contract_id, date(2025, 1, 31))


def test_any_weekday_contract_materializes_nothing(container, contracts, contract_factory):
    contract = contracts.add(contract_factory(weekdays=("ANY",)))
    assert container.reservation_service.materialize(contract.contract_id, date(2025, 3, 1)) == []


@pytest.mark.parametrize("status", [ContractStatus.DRAFT, ContractStatus.COMPLETED, ContractStatus.TERMINATED])
def test_only_sent_or_active_contracts_are_scheduled(container, contracts, contract_factory, status):
    contract = contracts.add(contract_factory(status=status))
    with pytest.raises(InvalidTransition):
        container.reservation_service.materialize(contract.contract_id, date(2025, 1, 31))


def test_unknown_contract(container):
    with pytest.raises(ContractNotFound):
        container.reservation_service.materialize(404, date(2025, 1, 31))


def test_substituted_slot_is_not_regenerated(container, january, reservations):
    contract, by_date = january
    container.substitution.substitute(by_date[date(2025, 1, 20)].reservation_id, date(2025, 1, 22))

    again = container.reservation_service.materialize(contract.contract_id, date(2025, 1, 31))
    assert again == []
    assert date(2025, 1, 20) not in {r.reserved_date for r in reservations.list_for_contract(contract.contract_id)}


def test_voided_occurrence_is_not_regenerated(container, january):
    contract, by_date = january
    log = container.ledger.record_outcome(by_date[date(2025, 1, 13)].reservation_id, "attended")
    container.ledger.void_entry(log.log_id)

    assert container.reservation_service.materialize(contract.contract_id, date(2025, 1, 31)) == []


def test_horizon_job_covers_every_schedulable_contract(container, contracts, contract_factory):
    contracts.add(contract_factory(1))
    contracts.add(contract_factory(2, weekdays=("WED",), start=date(2025, 1, 1)))
    contracts.add(contract_factory(3, status=ContractStatus.DRAFT))
    contracts.add(contract_factory(4, start=date(2025, 6, 2)))

    first = container.reservation_service.extend_horizon(today=date(2025, 1, 1), days=30)
    assert first == {1: 4, 2: 5}

    second = container.reservation_service.extend_horizon(today=date(2025, 1, 1), days=30)
    assert second == {1: 0, 2: 0}
