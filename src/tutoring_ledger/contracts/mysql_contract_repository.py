from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from ..common.retry import retry_transient
from ..core.enums import ContractStatus, RateBasis
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Contract
from .recurrence import parse_recurrence
from .repository import ContractRepository

_COLUMNS = """
    contract_id, student_id, subject, day_of_week, lesson_time, explicit_dates,
    started_at, ended_at, status, rate, rate_basis, created_at, terminated_at
"""


def _row_to_contract(r: dict[str, Any]) -> Contract:
    return Contract(
        contract_id=int(r["contract_id"]),
        student_id=int(r["student_id"]),
        subject=r["subject"],
        recurrence=parse_recurrence(r.get("day_of_week"), r.get("lesson_time"), r.get("explicit_dates")),
        start_date=r["started_at"],
        end_date=r.get("ended_at"),
        status=ContractStatus(r["status"]),
        rate=int(r.get("rate") or 0),
        rate_basis=RateBasis(r.get("rate_basis") or RateBasis.PER_LESSON.value),
        created_at=r.get("created_at"),
        terminated_at=r.get("terminated_at"),
    )


class MySQLContractRepository(ContractRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @retry_transient()
    def get_by_id(self, contract_id: int) -> Optional[Contract]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM contracts WHERE contract_id=%s", (int(contract_id),))
            r = fetchone(cur)
            return _row_to_contract(r) if r else None

    @retry_transient()
    def get_many(self, contract_ids: Sequence[int]) -> dict[int, Contract]:
        ids = sorted({int(i) for i in contract_ids})
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM contracts WHERE contract_id IN ({in_clause(ids)})", tuple(ids))
            return {c.contract_id: c for c in (_row_to_contract(r) for r in fetchall(cur))}

    @retry_transient()
    def list_schedulable(self) -> Sequence[Contract]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM contracts
                WHERE status IN (%s, %s)
                ORDER BY contract_id ASC
                """,
                (ContractStatus.SENT.value, ContractStatus.ACTIVE.value),
            )
            return [_row_to_contract(r) for r in fetchall(cur)]

    @retry_transient()
    def count_ended_before(self, day: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM contracts WHERE ended_at < %s", (day,))
            r = fetchone(cur)
            return int(r["n"]) if r else 0
