"""Occurrence generator.

Expands a contract's recurrence rule into dated reservations between the
contract start and a horizon. Generation is idempotent: slots already held by
an existing reservation of the contract (either its original scheduled slot or
its current, possibly substituted, slot) are never emitted again.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Sequence

from ..contracts.model import Contract
from ..contracts.recurrence import iter_slots
from ..core.exceptions import ValidationError
from .model import NewReservation, Reservation
from .repository import ReservationRepository

logger = logging.getLogger(__name__)


class OccurrenceGenerator:
    def __init__(self, reservations: ReservationRepository):
        self._reservations = reservations

    @staticmethod
    def window(contract: Contract, horizon_end: date) -> tuple[date, date]:
        if contract.start_date > horizon_end:
            raise ValidationError(
                f"Horizon {horizon_end.isoformat()} is before contract start {contract.start_date.isoformat()}"
            )
        end = horizon_end if contract.end_date is None else min(horizon_end, contract.end_date)
        return contract.start_date, end

    def generate(self, contract: Contract, horizon_end: date) -> list[NewReservation]:
        """Return the reservations still missing up to horizon_end (not persisted)."""

        start, end = self.window(contract, horizon_end)
        existing = self._reservations.list_for_contract(contract.contract_id, start=start, end=end)
        return self.plan(contract, start, end, existing)

    @staticmethod
    def plan(contract: Contract, start: date, end: date, existing: Sequence[Reservation]) -> list[NewReservation]:
        taken: set = set()
        for r in existing:
            taken.add(r.scheduled_slot)
            if not r.released:
                taken.add(r.slot)

        out: list[NewReservation] = []
        for day, at in iter_slots(contract.recurrence, start, end):
            if (day, at) in taken:
                continue
            taken.add((day, at))
            out.append(NewReservation(contract_id=contract.contract_id, reserved_date=day, reserved_time=at))
        return out

    def materialize(self, contract: Contract, horizon_end: date) -> list[Reservation]:
        """Persist the gap returned by generate()."""

        missing = self.generate(contract, horizon_end)
        if not missing:
            return []

        created = list(self._reservations.insert_missing(missing))
        logger.info(
            "Materialized %d/%d reservation(s) for contract %s up to %s",
            len(created),
            len(missing),
            contract.contract_id,
            horizon_end.isoformat(),
        )
        return created
