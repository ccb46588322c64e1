from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceLog, Outcome, PurgeSummary


class AttendanceRepository(Protocol):
    def get_by_id(self, log_id: int) -> Optional[AttendanceLog]:
        raise NotImplementedError

    def get_for_reservation(self, reservation_id: int) -> Optional[AttendanceLog]:
        """The single log of an occurrence, voided or not."""

        raise NotImplementedError

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
        """Insert the first log of an occurrence.

        Raises SlotConflict if the occurrence already has a log (lost race).
        """

        raise NotImplementedError

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
        """Last-write-wins update of a non-voided log. occurred_at is never touched."""

        raise NotImplementedError

    def mark_voided(
        self,
        *,
        log_id: int,
        reason: Optional[str],
        modified_at: datetime,
        modified_by: Optional[str] = None,
    ) -> bool:
        """Set voided=1 on a non-voided log; False if it was already voided."""

        raise NotImplementedError

    def list_effective_between(self, *, start: datetime, end: datetime) -> Sequence[AttendanceLog]:
        """Non-voided logs whose occurred_at, substitute_at or rescheduled_at falls in [start, end)."""

        raise NotImplementedError

    def list_for_contract(self, contract_id: int, *, include_voided: bool = False) -> Sequence[AttendanceLog]:
        raise NotImplementedError

    def list_for_student(self, student_id: int, *, limit: int) -> Sequence[AttendanceLog]:
        raise NotImplementedError

    def purge_contract(self, contract_id: int) -> PurgeSummary:
        """Administrative purge, in one transaction.

        Hard-deletes every log of the contract and un-releases its released
        reservations whose slot no other active reservation holds. Reservations
        whose slot was reused stay released and are reported as skipped.
        """

        raise NotImplementedError
