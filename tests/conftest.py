from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime

import pytest

from tutoring_ledger.attendance.model import AttendanceLog, PurgeSummary
from tutoring_ledger.container import assemble
from tutoring_ledger.contracts.model import Contract
from tutoring_ledger.contracts.recurrence import parse_recurrence
from tutoring_ledger.core.enums import ContractStatus, RateBasis
from tutoring_ledger.core.exceptions import SlotConflict
from tutoring_ledger.reservations.model import Reservation


class InMemoryContracts:
    def __init__(self, contracts=()):
        self._by_id = {c.contract_id: c for c in contracts}

    def add(self, contract: Contract) -> Contract:
        self._by_id[contract.contract_id] = contract
        return contract

    def get_by_id(self, contract_id):
        return self._by_id.get(int(contract_id))

    def get_many(self, contract_ids):
        return {i: self._by_id[i] for i in contract_ids if i in self._by_id}

    def list_schedulable(self):
        return [c for _, c in sorted(self._by_id.items()) if c.is_schedulable]

    def count_ended_before(self, day):
        return sum(
            1
            for c in self._by_id.values()
            if c.status in (ContractStatus.COMPLETED, ContractStatus.TERMINATED)
            or (c.end_date is not None and c.end_date < day)
        )


class InMemoryReservations:
    """Enforces the same unique active slot and version guard as the MySQL schema."""

    def __init__(self):
        self._next_id = 1
        self._rows: dict[int, Reservation] = {}
        self._lock = threading.Lock()

    def _taken(self, contract_id, reserved_date, reserved_time, exclude_id=None):
        for r in self._rows.values():
            if r.reservation_id == exclude_id or r.released:
                continue
            if r.contract_id == contract_id and r.slot == (reserved_date, reserved_time):
                return r
        return None

    def get_by_id(self, reservation_id):
        return self._rows.get(int(reservation_id))

    def list_for_contract(self, contract_id, *, start=None, end=None):
        def in_range(day):
            return (start is None or day >= start) and (end is None or day <= end)

        rows = [
            r
            for r in self._rows.values()
            if r.contract_id == int(contract_id) and (in_range(r.scheduled_date) or in_range(r.reserved_date))
        ]
        return sorted(rows, key=lambda r: (r.reserved_date, r.reserved_time or datetime.min.time(), r.reservation_id))

    def find_active_slot(self, *, contract_id, reserved_date, reserved_time, exclude_id=None):
        return self._taken(contract_id, reserved_date, reserved_time, exclude_id)

    def insert_missing(self, rows):
        inserted = []
        with self._lock:
            for row in rows:
                if self._taken(row.contract_id, row.reserved_date, row.reserved_time):
                    continue
                r = Reservation(
                    reservation_id=self._next_id,
                    contract_id=row.contract_id,
                    scheduled_date=row.reserved_date,
                    reserved_date=row.reserved_date,
                    reserved_time=row.reserved_time,
                    scheduled_time=row.reserved_time,
                )
                self._rows[r.reservation_id] = r
                self._next_id += 1
                inserted.append(r)
        return inserted

    def update_slot(self, *, reservation_id, reserved_date, reserved_time, expected_version):
        with self._lock:
            r = self._rows.get(int(reservation_id))
            if r is None or r.version != expected_version:
                return False
            if not r.released and self._taken(r.contract_id, reserved_date, reserved_time, r.reservation_id):
                raise SlotConflict(f"Slot {reserved_date} {reserved_time} is taken")
            self._rows[r.reservation_id] = replace(
                r, reserved_date=reserved_date, reserved_time=reserved_time, version=r.version + 1
            )
            return True

    def set_released(self, *, reservation_id, released):
        with self._lock:
            r = self._rows.get(int(reservation_id))
            if r is None:
                return False
            self._rows[r.reservation_id] = replace(r, released=bool(released), version=r.version + 1)
            return True

    def unrelease_for_contract(self, *, contract_id):
        """Un-release released rows whose slot is free; (restored, skipped) ids."""

        restored, skipped = [], []
        with self._lock:
            for r in sorted(self._rows.values(), key=lambda x: x.reservation_id):
                if r.contract_id != contract_id or not r.released:
                    continue
                if self._taken(r.contract_id, r.reserved_date, r.reserved_time, r.reservation_id):
                    skipped.append(r.reservation_id)
                    continue
                self._rows[r.reservation_id] = replace(r, released=False, version=r.version + 1)
                restored.append(r.reservation_id)
        return tuple(restored), tuple(skipped)

    def list_unlogged_before(self, *, day, contract_ids):
        # Wired to the attendance fake by the fixture below.
        logged = {log.reservation_id for log in self.attendance.all() if not log.voided}
        rows = [
            r
            for r in self._rows.values()
            if r.contract_id in set(contract_ids)
            and not r.released
            and r.reserved_date < day
            and r.reservation_id not in logged
        ]
        return sorted(rows, key=lambda r: (r.reserved_date, r.contract_id))


class InMemoryAttendance:
    def __init__(self):
        self._next_id = 1
        self._rows: dict[int, AttendanceLog] = {}
        self._lock = threading.Lock()

    def all(self):
        return list(self._rows.values())

    def get_by_id(self, log_id):
        return self._rows.get(int(log_id))

    def get_for_reservation(self, reservation_id):
        for log in self._rows.values():
            if log.reservation_id == int(reservation_id):
                return log
        return None

    def create(
        self,
        *,
        contract_id,
        student_id,
        reservation_id,
        occurred_at,
        outcome,
        memo,
        recorded_at,
        rescheduled_at=None,
        modified_by=None,
        change_reason=None,
    ):
        with self._lock:
            if self.get_for_reservation(reservation_id) is not None:
                raise SlotConflict(f"Reservation {reservation_id} already has a log")
            log = AttendanceLog(
                log_id=self._next_id,
                contract_id=contract_id,
                student_id=student_id,
                reservation_id=reservation_id,
                occurred_at=occurred_at,
                outcome=outcome,
                memo=memo,
                recorded_at=recorded_at,
                rescheduled_at=rescheduled_at,
                modified_by=modified_by,
                change_reason=change_reason,
            )
            self._rows[log.log_id] = log
            self._next_id += 1
            return log

    def update_outcome(
        self, *, log_id, outcome, memo, modified_at, rescheduled_at=None, modified_by=None, change_reason=None
    ):
        with self._lock:
            log = self._rows.get(int(log_id))
            if log is None or log.voided:
                return False
            self._rows[log.log_id] = log.with_outcome(
                outcome,
                memo=memo,
                at=modified_at,
                rescheduled_at=rescheduled_at,
                modified_by=modified_by,
                change_reason=change_reason,
            )
            return True

    def mark_voided(self, *, log_id, reason, modified_at, modified_by=None):
        with self._lock:
            log = self._rows.get(int(log_id))
            if log is None or log.voided:
                return False
            self._rows[log.log_id] = replace(
                log,
                voided=True,
                void_reason=reason,
                change_reason=reason,
                modified_at=modified_at,
                modified_by=modified_by,
            )
            return True

    def list_effective_between(self, *, start, end):
        return [
            log
            for log in sorted(self._rows.values(), key=lambda x: (x.occurred_at, x.log_id))
            if not log.voided
            and any(start <= instant < end for instant in (log.occurred_at, log.effective_at))
        ]

    def list_for_contract(self, contract_id, *, include_voided=False):
        rows = [
            log
            for log in self._rows.values()
            if log.contract_id == int(contract_id) and (include_voided or not log.voided)
        ]
        return sorted(rows, key=lambda x: (x.occurred_at, x.log_id), reverse=True)

    def list_for_student(self, student_id, *, limit):
        rows = [log for log in self._rows.values() if log.student_id == int(student_id) and not log.voided]
        return sorted(rows, key=lambda x: (x.occurred_at, x.log_id), reverse=True)[:limit]

    def purge_contract(self, contract_id):
        with self._lock:
            ids = [i for i, log in self._rows.items() if log.contract_id == int(contract_id)]
            for i in ids:
                del self._rows[i]
            restored, skipped = self.reservations.unrelease_for_contract(contract_id=int(contract_id))
            return PurgeSummary(deleted=len(ids), restored=restored, skipped=skipped)


class RecordingPublisher:
    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)


def make_contract(
    contract_id: int = 1,
    *,
    student_id: int = 100,
    subject: str = "Math",
    weekdays=("MON",),
    lesson_time=None,
    explicit_dates=None,
    start: date = date(2025, 1, 6),
    end=None,
    status: ContractStatus = ContractStatus.ACTIVE,
    rate: int = 50_000,
    rate_basis: RateBasis = RateBasis.PER_LESSON,
    terminated_at=None,
) -> Contract:
    return Contract(
        contract_id=contract_id,
        student_id=student_id,
        subject=subject,
        recurrence=parse_recurrence(list(weekdays), lesson_time, explicit_dates),
        start_date=start,
        end_date=end,
        status=status,
        rate=rate,
        rate_basis=rate_basis,
        terminated_at=terminated_at,
    )


FIXED_NOW = datetime(2025, 3, 1, 9, 0, 0)


@pytest.fixture
def contracts():
    return InMemoryContracts()


@pytest.fixture
def attendance():
    return InMemoryAttendance()


@pytest.fixture
def reservations(attendance):
    repo = InMemoryReservations()
    repo.attendance = attendance
    attendance.reservations = repo
    return repo


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def contract_factory():
    return make_contract


@pytest.fixture
def container(contracts, reservations, attendance, publisher):
    return assemble(
        contracts_repo=contracts,
        reservations_repo=reservations,
        attendance_repo=attendance,
        publisher=publisher,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def january(container, contracts):
    """Weekly Monday contract from 2025-01-06, materialized through 2025-01-31."""

    contract = contracts.add(make_contract())
    created = container.reservation_service.materialize(contract.contract_id, date(2025, 1, 31))
    return contract, {r.reserved_date: r for r in created}
