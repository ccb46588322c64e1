from __future__ import annotations

from datetime import date, time
from typing import Any, Optional, Sequence

from ..common.retry import retry_transient
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, normalize_mysql_time
from .model import NewReservation, Reservation
from .repository import ReservationRepository

_COLUMNS = (
    "reservation_id, contract_id, scheduled_date, scheduled_time, reserved_date, reserved_time, released, version"
)


def _row_to_reservation(r: dict[str, Any]) -> Reservation:
    return Reservation(
        reservation_id=int(r["reservation_id"]),
        contract_id=int(r["contract_id"]),
        scheduled_date=r["scheduled_date"],
        reserved_date=r["reserved_date"],
        reserved_time=normalize_mysql_time(r.get("reserved_time")),
        released=bool(r.get("released")),
        version=int(r.get("version") or 1),
        scheduled_time=normalize_mysql_time(r.get("scheduled_time")),
    )


class MySQLReservationRepository(ReservationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @retry_transient()
    def get_by_id(self, reservation_id: int) -> Optional[Reservation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM reservations WHERE reservation_id=%s", (int(reservation_id),))
            r = fetchone(cur)
            return _row_to_reservation(r) if r else None

    @retry_transient()
    def list_for_contract(
        self,
        contract_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Reservation]:
        clauses = ["contract_id=%s"]
        params: list[object] = [int(contract_id)]

        if start is not None and end is not None:
            clauses.append("(scheduled_date BETWEEN %s AND %s OR reserved_date BETWEEN %s AND %s)")
            params.extend([start, end, start, end])
        elif start is not None:
            clauses.append("(scheduled_date >= %s OR reserved_date >= %s)")
            params.extend([start, start])
        elif end is not None:
            clauses.append("(scheduled_date <= %s OR reserved_date <= %s)")
            params.extend([end, end])

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM reservations
                WHERE {where}
                ORDER BY reserved_date ASC, slot_time ASC, reservation_id ASC
                """,
                tuple(params),
            )
            return [_row_to_reservation(r) for r in fetchall(cur)]

    @retry_transient()
    def find_active_slot(
        self,
        *,
        contract_id: int,
        reserved_date: date,
        reserved_time: Optional[time],
        exclude_id: Optional[int] = None,
    ) -> Optional[Reservation]:
        clauses = ["contract_id=%s", "reserved_date=%s", "slot_time=COALESCE(%s, '00:00:00')", "released=0"]
        params: list[object] = [int(contract_id), reserved_date, reserved_time]
        if exclude_id is not None:
            clauses.append("reservation_id<>%s")
            params.append(int(exclude_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM reservations WHERE {where} LIMIT 1", tuple(params))
            r = fetchone(cur)
            return _row_to_reservation(r) if r else None

    @retry_transient()
    def insert_missing(self, rows: Sequence[NewReservation]) -> Sequence[Reservation]:
        inserted: list[Reservation] = []
        with db_cursor(self._conn_factory) as (_, cur):
            for row in rows:
                # No-op update on duplicate: the unique slot index arbitrates concurrent generators.
                cur.execute(
                    """
                    INSERT INTO reservations(contract_id, scheduled_date, scheduled_time, reserved_date, reserved_time)
                    VALUES(%s,%s,%s,%s,%s)
                    ON DUPLICATE KEY UPDATE reservation_id=reservation_id
                    """,
                    (int(row.contract_id), row.reserved_date, row.reserved_time, row.reserved_date, row.reserved_time),
                )
                if cur.rowcount == 1 and cur.lastrowid:
                    inserted.append(
                        Reservation(
                            reservation_id=int(cur.lastrowid),
                            contract_id=int(row.contract_id),
                            scheduled_date=row.reserved_date,
                            reserved_date=row.reserved_date,
                            reserved_time=row.reserved_time,
                            scheduled_time=row.reserved_time,
                        )
                    )
        return inserted

    @retry_transient()
    def update_slot(
        self,
        *,
        reservation_id: int,
        reserved_date: date,
        reserved_time: Optional[time],
        expected_version: int,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE reservations
                SET reserved_date=%s, reserved_time=%s, version=version+1
                WHERE reservation_id=%s AND version=%s
                """,
                (reserved_date, reserved_time, int(reservation_id), int(expected_version)),
            )
            return cur.rowcount > 0

    @retry_transient()
    def set_released(self, *, reservation_id: int, released: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE reservations SET released=%s, version=version+1 WHERE reservation_id=%s",
                (1 if released else 0, int(reservation_id)),
            )
            return cur.rowcount > 0

    @retry_transient()
    def list_unlogged_before(self, *, day: date, contract_ids: Sequence[int]) -> Sequence[Reservation]:
        ids = sorted({int(i) for i in contract_ids})
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT r.reservation_id, r.contract_id, r.scheduled_date, r.scheduled_time,
                       r.reserved_date, r.reserved_time, r.released, r.version
                FROM reservations r
                LEFT JOIN attendance_logs al ON al.reservation_id = r.reservation_id AND al.voided = 0
                WHERE r.contract_id IN ({in_clause(ids)})
                  AND r.released = 0
                  AND r.reserved_date < %s
                  AND al.log_id IS NULL
                ORDER BY r.reserved_date ASC, r.contract_id ASC
                """,
                (*ids, day),
            )
            return [_row_to_reservation(r) for r in fetchall(cur)]
