from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..common.retry import retry_transient
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceLog, Outcome, PurgeSummary, outcome_from_row
from .repository import AttendanceRepository

_COLUMNS = """
    log_id, contract_id, student_id, reservation_id, occurred_at, status, substitute_at,
    rescheduled_at, voided, void_reason, memo, recorded_at, modified_at, modified_by, change_reason
"""


def _row_to_log(r: dict[str, Any]) -> AttendanceLog:
    return AttendanceLog(
        log_id=int(r["log_id"]),
        contract_id=int(r["contract_id"]),
        student_id=int(r["student_id"]),
        reservation_id=int(r["reservation_id"]),
        occurred_at=r["occurred_at"],
        outcome=outcome_from_row(r["status"], r.get("substitute_at")),
        voided=bool(r.get("voided")),
        void_reason=r.get("void_reason"),
        memo=r.get("memo"),
        recorded_at=r.get("recorded_at"),
        modified_at=r.get("modified_at"),
        rescheduled_at=r.get("rescheduled_at"),
        modified_by=r.get("modified_by"),
        change_reason=r.get("change_reason"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @retry_transient()
    def get_by_id(self, log_id: int) -> Optional[AttendanceLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_logs WHERE log_id=%s", (int(log_id),))
            r = fetchone(cur)
            return _row_to_log(r) if r else None

    @retry_transient()
    def get_for_reservation(self, reservation_id: int) -> Optional[AttendanceLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_logs WHERE reservation_id=%s", (int(reservation_id),))
            r = fetchone(cur)
            return _row_to_log(r) if r else None

    @retry_transient()
    def create(
        self,
        *,
        contract_id: int,
        student_id: int,
        reservation_id: int,
        occurred_at: datetime,
        outcome: Outcome,
        memo: Optional[str],
        recorded_at: datetime,
        rescheduled_at: Optional[datetime] = None,
        modified_by: Optional[str] = None,
        change_reason: Optional[str] = None,
    ) -> AttendanceLog:
        substitute_at = getattr(outcome, "substitute_at", None)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_logs(
                    contract_id, student_id, reservation_id, occurred_at, status, substitute_at,
                    rescheduled_at, memo, recorded_at, modified_by, change_reason
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(contract_id),
                    int(student_id),
                    int(reservation_id),
                    occurred_at,
                    outcome.status.value,
                    substitute_at,
                    rescheduled_at,
                    memo,
                    recorded_at,
                    modified_by,
                    change_reason,
                ),
            )
            return AttendanceLog(
                log_id=int(cur.lastrowid),
                contract_id=int(contract_id),
                student_id=int(student_id),
                reservation_id=int(reservation_id),
                occurred_at=occurred_at,
                outcome=outcome,
                memo=memo,
                recorded_at=recorded_at,
                rescheduled_at=rescheduled_at,
                modified_by=modified_by,
                change_reason=change_reason,
            )

    @retry_transient()
    def update_outcome(
        self,
        *,
        log_id: int,
        outcome: Outcome,
        memo: Optional[str],
        modified_at: datetime,
        rescheduled_at: Optional[datetime] = None,
        modified_by: Optional[str] = None,
        change_reason: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_logs
                SET status=%s, substitute_at=%s, rescheduled_at=%s, memo=%s,
                    modified_at=%s, modified_by=%s, change_reason=%s
                WHERE log_id=%s AND voided=0
                """,
                (
                    outcome.status.value,
                    getattr(outcome, "substitute_at", None),
                    rescheduled_at,
                    memo,
                    modified_at,
                    modified_by,
                    change_reason,
                    int(log_id),
                ),
            )
            return cur.rowcount > 0

    @retry_transient()
    def mark_voided(
        self,
        *,
        log_id: int,
        reason: Optional[str],
        modified_at: datetime,
        modified_by: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_logs
                SET voided=1, void_reason=%s, change_reason=%s, modified_at=%s, modified_by=%s
                WHERE log_id=%s AND voided=0
                """,
                (reason, reason, modified_at, modified_by, int(log_id)),
            )
            return cur.rowcount > 0

    @retry_transient()
    def list_effective_between(self, *, start: datetime, end: datetime) -> Sequence[AttendanceLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            # Index-friendly ranges; the aggregator filters on the effective instant.
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_logs
                WHERE voided=0
                  AND ((occurred_at >= %s AND occurred_at < %s)
                       OR (substitute_at >= %s AND substitute_at < %s)
                       OR (rescheduled_at >= %s AND rescheduled_at < %s))
                ORDER BY occurred_at ASC, log_id ASC
                """,
                (start, end, start, end, start, end),
            )
            return [_row_to_log(r) for r in fetchall(cur)]

    @retry_transient()
    def list_for_contract(self, contract_id: int, *, include_voided: bool = False) -> Sequence[AttendanceLog]:
        clauses = ["contract_id=%s"]
        if not include_voided:
            clauses.append("voided=0")
        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_logs WHERE {where} ORDER BY occurred_at DESC, log_id DESC",
                (int(contract_id),),
            )
            return [_row_to_log(r) for r in fetchall(cur)]

    @retry_transient()
    def list_for_student(self, student_id: int, *, limit: int) -> Sequence[AttendanceLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_logs
                WHERE student_id=%s AND voided=0
                ORDER BY occurred_at DESC, log_id DESC
                LIMIT %s
                """,
                (int(student_id), int(limit)),
            )
            return [_row_to_log(r) for r in fetchall(cur)]

    @retry_transient()
    def purge_contract(self, contract_id: int) -> PurgeSummary:
        restored: list[int] = []
        skipped: list[int] = []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_logs WHERE contract_id=%s", (int(contract_id),))
            deleted = int(cur.rowcount)

            cur.execute(
                """
                SELECT reservation_id, reserved_date, slot_time
                FROM reservations
                WHERE contract_id=%s AND released=1
                ORDER BY reservation_id ASC
                FOR UPDATE
                """,
                (int(contract_id),),
            )
            for r in fetchall(cur):
                cur.execute(
                    """
                    SELECT reservation_id
                    FROM reservations
                    WHERE contract_id=%s AND reserved_date=%s AND slot_time=%s AND released=0
                    LIMIT 1
                    FOR UPDATE
                    """,
                    (int(contract_id), r["reserved_date"], r["slot_time"]),
                )
                if fetchone(cur):
                    skipped.append(int(r["reservation_id"]))
                    continue
                cur.execute(
                    "UPDATE reservations SET released=0, version=version+1 WHERE reservation_id=%s",
                    (int(r["reservation_id"]),),
                )
                restored.append(int(r["reservation_id"]))

        return PurgeSummary(deleted=deleted, restored=tuple(restored), skipped=tuple(skipped))
