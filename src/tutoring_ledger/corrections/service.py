"""Administrative correction commands.

Each command is narrow and idempotent, and reports the (contract_id, year,
month) keys it touched so statistics caches can be invalidated. Commands that
bypass the normal invariant-checked paths log the operator and prior value
before writing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from ..attendance.model import Pending, Substituted, affected_months
from ..attendance.repository import AttendanceRepository
from ..attendance.service import AttendanceLedger
from ..common.validators import require_operator, require_positive_id
from ..contracts.repository import ContractRepository
from ..core.enums import CorrectionAction
from ..core.exceptions import ContractNotFound, InvalidTransition, ReservationNotFound
from ..reservations.model import Reservation
from ..reservations.repository import ReservationRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorrectionResult:
    action: CorrectionAction
    target_id: int
    changed: bool
    affected: frozenset = frozenset()
    detail: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "action": self.action.value,
            "target_id": self.target_id,
            "changed": self.changed,
            "affected": sorted([list(k) for k in self.affected]),
            "detail": self.detail,
        }


class CorrectionTools:
    def __init__(
        self,
        ledger: AttendanceLedger,
        attendance: AttendanceRepository,
        reservations: ReservationRepository,
        contracts: ContractRepository,
    ):
        self._ledger = ledger
        self._attendance = attendance
        self._reservations = reservations
        self._contracts = contracts

    def void_attendance(self, log_id: int, *, operator: str, reason: Optional[str] = None) -> CorrectionResult:
        operator = require_operator(operator)
        before = self._ledger.get(log_id)
        if before.voided:
            return CorrectionResult(CorrectionAction.VOID_ATTENDANCE, before.log_id, changed=False)

        logger.warning(
            "Operator %s voids attendance log %s (contract %s, status=%s, occurred_at=%s, reason=%s)",
            operator,
            before.log_id,
            before.contract_id,
            before.status.value,
            before.occurred_at.isoformat(),
            reason,
        )
        after = self._ledger.void_entry(before.log_id, reason=reason, modified_by=operator)
        return CorrectionResult(
            CorrectionAction.VOID_ATTENDANCE,
            before.log_id,
            changed=True,
            affected=affected_months(after),
        )

    def reset_reservation_date(
        self,
        reservation_id: int,
        original_date: date,
        *,
        operator: str,
        reason: Optional[str] = None,
    ) -> CorrectionResult:
        """Trusted-operator override: put reserved_date back to an operator-supplied date.

        This skips the resolver's slot checks; the database unique slot index
        still applies and surfaces as SlotConflict. Use
        SubstitutionResolver.restore_original for the checked undo path.

        The occurrence's log follows the reservation: a substitution points at
        the new slot, or goes back to pending when the slot is the original one.
        """

        operator = require_operator(operator)
        reservation = self._reservations.get_by_id(require_positive_id(reservation_id, "reservation_id"))
        if not reservation:
            raise ReservationNotFound(f"Reservation {reservation_id} does not exist")

        if reservation.reserved_date == original_date:
            return CorrectionResult(CorrectionAction.RESET_RESERVATION_DATE, reservation.reservation_id, changed=False)

        logger.warning(
            "Operator %s overrides reservation %s date: %s -> %s (scheduled_date=%s, reason=%s)",
            operator,
            reservation.reservation_id,
            reservation.reserved_date.isoformat(),
            original_date.isoformat(),
            reservation.scheduled_date.isoformat(),
            reason,
        )
        updated = self._reservations.update_slot(
            reservation_id=reservation.reservation_id,
            reserved_date=original_date,
            reserved_time=reservation.reserved_time,
            expected_version=reservation.version,
        )
        if not updated:
            raise InvalidTransition(f"Reservation {reservation.reservation_id} changed during the override; retry")

        moved = replace(reservation, reserved_date=original_date, version=reservation.version + 1)
        try:
            before, after = self._follow_reservation(moved, operator=operator, reason=reason)
        except Exception:
            self._reservations.update_slot(
                reservation_id=reservation.reservation_id,
                reserved_date=reservation.reserved_date,
                reserved_time=reservation.reserved_time,
                expected_version=moved.version,
            )
            raise

        affected = set(affected_months(before, after))
        for day in (reservation.reserved_date, original_date):
            affected.add((reservation.contract_id, day.year, day.month))
        return CorrectionResult(
            CorrectionAction.RESET_RESERVATION_DATE,
            reservation.reservation_id,
            changed=True,
            affected=frozenset(affected),
            detail=f"{reservation.reserved_date.isoformat()} -> {original_date.isoformat()}",
        )

    def _follow_reservation(self, reservation: Reservation, *, operator: str, reason: Optional[str]):
        log = self._attendance.get_for_reservation(reservation.reservation_id)
        if log is None or log.voided:
            return log, None

        on_original = reservation.reserved_at == reservation.scheduled_at
        outcome = log.outcome
        if isinstance(outcome, Substituted):
            outcome = Pending() if on_original else Substituted(substitute_at=reservation.reserved_at)
        rescheduled_at = None if on_original else reservation.reserved_at

        at = self._ledger.now()
        updated = self._attendance.update_outcome(
            log_id=log.log_id,
            outcome=outcome,
            memo=log.memo,
            modified_at=at,
            rescheduled_at=rescheduled_at,
            modified_by=operator,
            change_reason=reason,
        )
        if not updated:
            return log, None
        return log, log.with_outcome(
            outcome,
            memo=log.memo,
            at=at,
            rescheduled_at=rescheduled_at,
            modified_by=operator,
            change_reason=reason,
        )

    def purge_contract_attendance(self, contract_id: int, *, operator: str, confirm: bool = False) -> CorrectionResult:
        """Hard-delete every attendance log of a contract (restricted)."""

        operator = require_operator(operator)
        if not confirm:
            raise InvalidTransition("Purging attendance is destructive; pass confirm=True")

        contract = self._contracts.get_by_id(require_positive_id(contract_id, "contract_id"))
        if not contract:
            raise ContractNotFound(f"Contract {contract_id} does not exist")

        logs = self._attendance.list_for_contract(contract.contract_id, include_voided=True)
        if not logs:
            return CorrectionResult(CorrectionAction.PURGE_CONTRACT_ATTENDANCE, contract.contract_id, changed=False)

        logger.warning(
            "Operator %s purges %d attendance log(s) of contract %s (ids=%s)",
            operator,
            len(logs),
            contract.contract_id,
            [log.log_id for log in logs],
        )
        summary = self._attendance.purge_contract(contract.contract_id)
        if summary.skipped:
            logger.warning(
                "Purge of contract %s left reservation(s) %s released: their slots are in use",
                contract.contract_id,
                list(summary.skipped),
            )
        return CorrectionResult(
            CorrectionAction.PURGE_CONTRACT_ATTENDANCE,
            contract.contract_id,
            changed=summary.deleted > 0,
            affected=affected_months(*logs),
            detail=f"deleted={summary.deleted} restored={len(summary.restored)} skipped={len(summary.skipped)}",
        )
