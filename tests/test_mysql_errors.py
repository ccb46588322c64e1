from __future__ import annotations

from datetime import date, time, timedelta

import pytest
from mysql.connector import errors

from tutoring_ledger.attendance.mysql_attendance_repository import MySQLAttendanceRepository
from tutoring_ledger.common import retry
from tutoring_ledger.core.exceptions import SlotConflict, TransientStorageFailure
from tutoring_ledger.database.mysql_base import db_cursor, normalize_mysql_time, translate_mysql_error
from tutoring_ledger.reservations.mysql_reservation_repository import MySQLReservationRepository


class FakeCursor:
    def __init__(self, rows=None, error=None):
        self.rows = list(rows or [])
        self.error = error
        self.executed = []
        self.rowcount = 0
        self.lastrowid = None

    def execute(self, sql, params=None):
        self.executed.append((sql, params))
        if self.error is not None:
            raise self.error

    def fetchone(self):
        return self.rows[0] if self.rows else None

    def fetchall(self):
        return list(self.rows)

    def close(self):
        pass


class FakeConn:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = 0
        self.rolled_back = 0
        self.closed = False

    def cursor(self, dictionary=False):
        return self._cursor

    def commit(self):
        self.committed += 1

    def rollback(self):
        self.rolled_back += 1

    def close(self):
        self.closed = True


class FakeFactory:
    """Hands out the queued outcomes in order: a connection or an error to raise."""

    def __init__(self, *outcomes):
        self._outcomes = list(outcomes)

    def connect(self):
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def test_duplicate_key_maps_to_slot_conflict():
    err = errors.IntegrityError(msg="Duplicate entry '1-2025-01-27' for key 'uq_reservation_active_slot'", errno=1062)
    assert isinstance(translate_mysql_error(err), SlotConflict)


@pytest.mark.parametrize("errno", [1205, 1213, 2006, 2013])
def test_lock_and_connection_errors_are_transient(errno):
    assert isinstance(translate_mysql_error(errors.DatabaseError(msg="x", errno=errno)), TransientStorageFailure)


def test_operational_errors_are_transient():
    assert isinstance(translate_mysql_error(errors.OperationalError(msg="gone")), TransientStorageFailure)


def test_programming_errors_pass_through():
    assert translate_mysql_error(errors.ProgrammingError(msg="syntax", errno=1064)) is None


def test_db_cursor_rolls_back_and_translates():
    conn = FakeConn(FakeCursor(error=errors.IntegrityError(msg="dup", errno=1062)))
    with pytest.raises(SlotConflict):
        with db_cursor(FakeFactory(conn)) as (_, cur):
            cur.execute("UPDATE reservations SET reserved_date=%s", (date(2025, 1, 27),))
    assert conn.rolled_back == 1 and conn.committed == 0 and conn.closed


def test_repository_retries_a_lost_connection_once(monkeypatch):
    monkeypatch.setattr(retry, "_default_backoff", 0.0)
    row = {
        "reservation_id": 5,
        "contract_id": 1,
        "scheduled_date": date(2025, 1, 20),
        "scheduled_time": timedelta(hours=18),
        "reserved_date": date(2025, 2, 3),
        "reserved_time": timedelta(hours=18),
        "released": 0,
        "version": 3,
    }
    factory = FakeFactory(errors.OperationalError(msg="Lost connection", errno=2013), FakeConn(FakeCursor([row])))

    r = MySQLReservationRepository(factory).get_by_id(5)

    assert r.scheduled_slot == (date(2025, 1, 20), time(18, 0))
    assert r.reserved_date == date(2025, 2, 3)
    assert r.version == 3


def test_normalize_mysql_time():
    assert normalize_mysql_time(timedelta(hours=8, minutes=30)) == time(8, 30)
    assert normalize_mysql_time("18:05:00") == time(18, 5)
    assert normalize_mysql_time(None) is None


class ScriptedCursor(FakeCursor):
    """Each execute consumes the next (rows, rowcount) pair."""

    def __init__(self, *script):
        super().__init__()
        self.script = list(script)

    def execute(self, sql, params=None):
        super().execute(sql, params)
        rows, self.rowcount = self.script.pop(0)
        self.rows = list(rows)


def test_purge_runs_in_one_transaction_and_skips_reused_slots():
    cursor = ScriptedCursor(
        ([], 2),
        (
            [
                {"reservation_id": 2, "reserved_date": date(2025, 1, 13), "slot_time": timedelta(0)},
                {"reservation_id": 3, "reserved_date": date(2025, 1, 20), "slot_time": timedelta(0)},
            ],
            2,
        ),
        ([{"reservation_id": 4}], 1),
        ([], 0),
        ([], 1),
    )
    conn = FakeConn(cursor)

    summary = MySQLAttendanceRepository(FakeFactory(conn)).purge_contract(1)

    assert summary.deleted == 2
    assert summary.restored == (3,) and summary.skipped == (2,)
    assert conn.committed == 1 and conn.rolled_back == 0
    assert cursor.executed[0][0].startswith("DELETE FROM attendance_logs")
    assert cursor.executed[-1] == ("UPDATE reservations SET released=0, version=version+1 WHERE reservation_id=%s", (3,))
