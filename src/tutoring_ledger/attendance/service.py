from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_positive_id
from ..contracts.model import Contract
from ..contracts.repository import ContractRepository
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import AttendanceStatus, ContractStatus
from ..core.exceptions import (
    AttendanceLogNotFound,
    ContractNotFound,
    InvalidTransition,
    ReservationNotFound,
    SlotConflict,
)
from ..reservations.model import Reservation
from ..reservations.repository import ReservationRepository
from .model import AttendanceLog, make_outcome
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnprocessedOccurrence:
    """Past occurrence with no outcome recorded yet."""

    reservation_id: int
    contract_id: int
    student_id: int
    subject: str
    missed_date: date

    def to_dict(self) -> dict:
        return {
            "reservation_id": self.reservation_id,
            "contract_id": self.contract_id,
            "student_id": self.student_id,
            "subject": self.subject,
            "missed_date": self.missed_date.isoformat(),
        }


class AttendanceLedger:
    """Records occurrence outcomes: one log per reservation, upserted in place."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        reservations: ReservationRepository,
        contracts: ContractRepository,
        *,
        allow_backfill: bool = False,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._reservations = reservations
        self._contracts = contracts
        self._allow_backfill = bool(allow_backfill)
        self._clock = clock

    def _load_occurrence(self, reservation_id: int) -> tuple[Reservation, Contract]:
        reservation = self._reservations.get_by_id(require_positive_id(reservation_id, "reservation_id"))
        if not reservation:
            raise ReservationNotFound(f"Reservation {reservation_id} does not exist")
        contract = self._contracts.get_by_id(reservation.contract_id)
        if not contract:
            raise ContractNotFound(f"Contract {reservation.contract_id} does not exist")
        return reservation, contract

    def _check_policy(self, reservation: Reservation, contract: Contract) -> None:
        if contract.status == ContractStatus.DRAFT:
            raise InvalidTransition(f"Contract {contract.contract_id} is still a draft")
        if contract.status != ContractStatus.TERMINATED or self._allow_backfill:
            return
        cutoff = contract.terminated_at
        if cutoff is None or reservation.scheduled_date > cutoff:
            raise InvalidTransition(
                f"Contract {contract.contract_id} was terminated; "
                f"cannot record an outcome for {reservation.scheduled_date.isoformat()}"
            )

    def now(self) -> datetime:
        return self._clock()

    def assert_recordable(self, reservation_id: int) -> None:
        """Raise the same errors record_outcome would, without writing."""

        reservation, contract = self._load_occurrence(reservation_id)
        self._check_policy(reservation, contract)

    def record_outcome(
        self,
        reservation_id: int,
        status: AttendanceStatus | str,
        at: Optional[datetime] = None,
        *,
        substitute_at: Optional[datetime] = None,
        memo: Optional[str] = None,
        modified_by: Optional[str] = None,
        change_reason: Optional[str] = None,
    ) -> AttendanceLog:
        """Create or update the occurrence's log (last write wins).

        `at` is when the outcome is recorded and defaults to now. occurred_at is
        always the reservation's original scheduled instant and never changes.
        When the reservation has been moved off its original slot, the log keeps
        the moved instant as rescheduled_at, so a substituted lesson recorded
        later as attended still counts at its new date.
        """

        reservation, contract = self._load_occurrence(reservation_id)
        self._check_policy(reservation, contract)
        outcome = make_outcome(status, substitute_at)
        at = at or self._clock()
        memo = memo.strip() if memo else None
        modified_by = modified_by.strip() if modified_by else None
        change_reason = change_reason.strip() if change_reason else None
        rescheduled_at = reservation.reserved_at if reservation.reserved_at != reservation.scheduled_at else None

        existing = self._attendance.get_for_reservation(reservation.reservation_id)
        if existing is None:
            try:
                log = self._attendance.create(
                    contract_id=contract.contract_id,
                    student_id=contract.student_id,
                    reservation_id=reservation.reservation_id,
                    occurred_at=reservation.scheduled_at,
                    outcome=outcome,
                    memo=memo,
                    recorded_at=at,
                    rescheduled_at=rescheduled_at,
                    modified_by=modified_by,
                    change_reason=change_reason,
                )
                logger.info(
                    "Recorded %s for reservation %s (contract %s)",
                    outcome.status.value,
                    reservation.reservation_id,
                    contract.contract_id,
                )
                return log
            except SlotConflict:
                # Another request created the log first; fall through to the update path.
                existing = self._attendance.get_for_reservation(reservation.reservation_id)
                if existing is None:
                    raise

        if existing.voided:
            raise InvalidTransition(f"Attendance log {existing.log_id} is voided")

        updated = self._attendance.update_outcome(
            log_id=existing.log_id,
            outcome=outcome,
            memo=memo,
            modified_at=at,
            rescheduled_at=rescheduled_at,
            modified_by=modified_by,
            change_reason=change_reason,
        )
        if not updated:
            raise InvalidTransition(f"Attendance log {existing.log_id} was voided concurrently")

        logger.info(
            "Updated log %s: %s -> %s",
            existing.log_id,
            existing.status.value,
            outcome.status.value,
        )
        return existing.with_outcome(
            outcome,
            memo=memo,
            at=at,
            rescheduled_at=rescheduled_at,
            modified_by=modified_by,
            change_reason=change_reason,
        )

    def void_entry(
        self,
        log_id: int,
        *,
        reason: Optional[str] = None,
        modified_by: Optional[str] = None,
    ) -> AttendanceLog:
        """Exclude a log from aggregation. Voiding twice is a no-op."""

        log = self._attendance.get_by_id(require_positive_id(log_id, "log_id"))
        if not log:
            raise AttendanceLogNotFound(f"Attendance log {log_id} does not exist")
        if log.voided:
            return log

        at = self._clock()
        reason = reason.strip() if reason else None
        modified_by = modified_by.strip() if modified_by else None
        voided = self._attendance.mark_voided(
            log_id=log.log_id,
            reason=reason,
            modified_at=at,
            modified_by=modified_by,
        )
        if not voided:
            current = self._attendance.get_by_id(log.log_id)
            if current is None:
                raise AttendanceLogNotFound(f"Attendance log {log_id} does not exist")
            return current

        # Voided occurrences stop blocking their slot.
        self._reservations.set_released(reservation_id=log.reservation_id, released=True)
        logger.info("Voided attendance log %s (contract %s)", log.log_id, log.contract_id)
        return replace(
            log,
            voided=True,
            void_reason=reason,
            change_reason=reason,
            modified_at=at,
            modified_by=modified_by,
        )

    def get(self, log_id: int) -> AttendanceLog:
        log = self._attendance.get_by_id(require_positive_id(log_id, "log_id"))
        if not log:
            raise AttendanceLogNotFound(f"Attendance log {log_id} does not exist")
        return log

    def get_for_reservation(self, reservation_id: int) -> Optional[AttendanceLog]:
        return self._attendance.get_for_reservation(require_positive_id(reservation_id, "reservation_id"))

    def list_for_contract(self, contract_id: int) -> Sequence[AttendanceLog]:
        contract = self._contracts.get_by_id(require_positive_id(contract_id, "contract_id"))
        if not contract:
            raise ContractNotFound(f"Contract {contract_id} does not exist")
        return self._attendance.list_for_contract(contract.contract_id)

    def list_for_student(self, student_id: int, *, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[AttendanceLog]:
        return self._attendance.list_for_student(require_positive_id(student_id, "student_id"), limit=int(limit))

    def find_unprocessed(self, *, today: date) -> list[UnprocessedOccurrence]:
        """Occurrences before today, of sent/active contracts, with no outcome yet."""

        contracts = {c.contract_id: c for c in self._contracts.list_schedulable()}
        if not contracts:
            return []

        out: list[UnprocessedOccurrence] = []
        for r in self._reservations.list_unlogged_before(day=today, contract_ids=list(contracts)):
            contract = contracts.get(r.contract_id)
            if contract is None or not contract.covers(r.scheduled_date):
                continue
            out.append(
                UnprocessedOccurrence(
                    reservation_id=r.reservation_id,
                    contract_id=contract.contract_id,
                    student_id=contract.student_id,
                    subject=contract.subject,
                    missed_date=r.reserved_date,
                )
            )
        out.sort(key=lambda x: (x.missed_date, x.contract_id))
        return out
