from __future__ import annotations

from datetime import date, time
from typing import Optional, Protocol, Sequence

from .model import NewReservation, Reservation


class ReservationRepository(Protocol):
    def get_by_id(self, reservation_id: int) -> Optional[Reservation]:
        raise NotImplementedError

    def list_for_contract(
        self,
        contract_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Reservation]:
        """Reservations whose scheduled or reserved date falls in [start, end]."""

        raise NotImplementedError

    def find_active_slot(
        self,
        *,
        contract_id: int,
        reserved_date: date,
        reserved_time: Optional[time],
        exclude_id: Optional[int] = None,
    ) -> Optional[Reservation]:
        raise NotImplementedError

    def insert_missing(self, rows: Sequence[NewReservation]) -> Sequence[Reservation]:
        """Insert rows, silently skipping any whose active slot already exists.

        Returns only the rows that were actually inserted.
        """

        raise NotImplementedError

    def update_slot(
        self,
        *,
        reservation_id: int,
        reserved_date: date,
        reserved_time: Optional[time],
        expected_version: int,
    ) -> bool:
        """Move a reservation to a new slot.

        Returns False when expected_version is stale (a concurrent writer won).
        Raises SlotConflict when the slot is taken.
        """

        raise NotImplementedError

    def set_released(self, *, reservation_id: int, released: bool) -> bool:
        raise NotImplementedError

    def list_unlogged_before(self, *, day: date, contract_ids: Sequence[int]) -> Sequence[Reservation]:
        """Non-released reservations dated before `day` with no non-voided attendance log."""

        raise NotImplementedError
