"""Substitution resolver.

Moves a reservation to a new slot while the attendance ledger keeps the
original scheduled instant (occurred_at) and records the new one
(substitute_at). The reservation's reserved_date is mutated only here and by
the operator override in corrections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, time
from typing import Optional

from ..attendance.model import AttendanceLog, Substituted, affected_months
from ..attendance.service import AttendanceLedger
from ..common.datetime_utils import slot_instant
from ..common.validators import require_operator, require_positive_id
from ..core.enums import AttendanceStatus
from ..core.exceptions import DomainError, InvalidTransition, ReservationNotFound, SlotConflict
from ..notifications.events import EventPublisher, LoggingEventPublisher, SubstitutionEvent
from ..reservations.model import Reservation
from ..reservations.repository import ReservationRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubstitutionResult:
    reservation: Reservation
    log: AttendanceLog
    affected: frozenset

    @property
    def contract_id(self) -> int:
        return self.reservation.contract_id


class SubstitutionResolver:
    def __init__(
        self,
        reservations: ReservationRepository,
        ledger: AttendanceLedger,
        *,
        publisher: Optional[EventPublisher] = None,
    ):
        self._reservations = reservations
        self._ledger = ledger
        self._publisher = publisher or LoggingEventPublisher()

    def _get_reservation(self, reservation_id: int) -> Reservation:
        reservation = self._reservations.get_by_id(require_positive_id(reservation_id, "reservation_id"))
        if not reservation:
            raise ReservationNotFound(f"Reservation {reservation_id} does not exist")
        return reservation

    def _move(self, reservation: Reservation, new_date: date, new_time: Optional[time]) -> Reservation:
        clash = self._reservations.find_active_slot(
            contract_id=reservation.contract_id,
            reserved_date=new_date,
            reserved_time=new_time,
            exclude_id=reservation.reservation_id,
        )
        if clash:
            raise SlotConflict(
                f"Contract {reservation.contract_id} already has reservation {clash.reservation_id} "
                f"on {slot_instant(new_date, new_time).isoformat()}"
            )

        # The unique slot index and the version guard serialize concurrent writers.
        moved = self._reservations.update_slot(
            reservation_id=reservation.reservation_id,
            reserved_date=new_date,
            reserved_time=new_time,
            expected_version=reservation.version,
        )
        if not moved:
            raise SlotConflict(f"Reservation {reservation.reservation_id} was changed by a concurrent request")

        return replace(reservation, reserved_date=new_date, reserved_time=new_time, version=reservation.version + 1)

    def _record_or_revert(self, original: Reservation, moved: Reservation, status, **kwargs) -> AttendanceLog:
        """Write the log for a moved reservation, moving it back if the write fails."""

        try:
            return self._ledger.record_outcome(original.reservation_id, status, **kwargs)
        except Exception:
            if moved is not original:
                self._revert(original, moved)
            raise

    def _revert(self, original: Reservation, moved: Reservation) -> None:
        try:
            reverted = self._reservations.update_slot(
                reservation_id=original.reservation_id,
                reserved_date=original.reserved_date,
                reserved_time=original.reserved_time,
                expected_version=moved.version,
            )
        except DomainError:
            logger.exception("Could not move reservation %s back to %s", original.reservation_id, original.reserved_at)
            return
        if reverted:
            logger.warning(
                "Ledger write failed; moved reservation %s back to %s",
                original.reservation_id,
                original.reserved_at.isoformat(),
            )
        else:
            logger.error(
                "Ledger write failed and reservation %s changed concurrently; left on %s",
                original.reservation_id,
                moved.reserved_at.isoformat(),
            )

    def substitute(
        self,
        reservation_id: int,
        new_date: date,
        new_time: Optional[time] = None,
        *,
        reason: Optional[str] = None,
    ) -> SubstitutionResult:
        reservation = self._get_reservation(reservation_id)
        if reservation.released:
            raise InvalidTransition(f"Reservation {reservation.reservation_id} belongs to a voided occurrence")

        new_time = new_time if new_time is not None else reservation.reserved_time
        if (new_date, new_time) == reservation.slot:
            raise InvalidTransition(f"Reservation {reservation.reservation_id} is already on that slot")

        self._ledger.assert_recordable(reservation.reservation_id)
        before = self._ledger.get_for_reservation(reservation.reservation_id)
        if before is not None and before.voided:
            raise InvalidTransition(f"Attendance log {before.log_id} is voided")

        moved = self._move(reservation, new_date, new_time)
        log = self._record_or_revert(
            reservation,
            moved,
            AttendanceStatus.SUBSTITUTE,
            substitute_at=moved.reserved_at,
            memo=reason if reason else (before.memo if before else None),
            change_reason=reason,
        )

        logger.info(
            "Substituted reservation %s (contract %s): %s -> %s",
            reservation.reservation_id,
            reservation.contract_id,
            reservation.reserved_at.isoformat(),
            moved.reserved_at.isoformat(),
        )
        self._publisher.publish(
            SubstitutionEvent(
                contract_id=reservation.contract_id,
                student_id=log.student_id,
                reservation_id=reservation.reservation_id,
                original_at=log.occurred_at,
                previous_at=reservation.reserved_at,
                new_at=moved.reserved_at,
                reason=reason,
            )
        )
        return SubstitutionResult(reservation=moved, log=log, affected=affected_months(before, log))

    def restore_original(
        self,
        reservation_id: int,
        *,
        operator: str,
        reason: Optional[str] = None,
    ) -> SubstitutionResult:
        """Audited undo of a substitution.

        The reservation goes back to the slot the generator produced, never to
        caller input.
        """

        operator = require_operator(operator)
        reservation = self._get_reservation(reservation_id)
        before = self._ledger.get_for_reservation(reservation.reservation_id)
        if before is None or before.voided or not isinstance(before.outcome, Substituted):
            raise InvalidTransition(f"Reservation {reservation.reservation_id} has no active substitution to undo")

        original_date, original_time = reservation.scheduled_slot
        logger.warning(
            "Operator %s restores reservation %s from %s to original %s (reason=%s)",
            operator,
            reservation.reservation_id,
            reservation.reserved_at.isoformat(),
            reservation.scheduled_at.isoformat(),
            reason,
        )

        moved = reservation
        if reservation.slot != reservation.scheduled_slot:
            moved = self._move(reservation, original_date, original_time)

        log = self._record_or_revert(
            reservation,
            moved,
            AttendanceStatus.PENDING,
            memo=before.memo,
            modified_by=operator,
            change_reason=reason,
        )
        self._publisher.publish(
            SubstitutionEvent(
                contract_id=reservation.contract_id,
                student_id=log.student_id,
                reservation_id=reservation.reservation_id,
                original_at=log.occurred_at,
                previous_at=reservation.reserved_at,
                new_at=moved.reserved_at,
                reason=reason,
                restored=True,
            )
        )
        return SubstitutionResult(reservation=moved, log=log, affected=affected_months(before, log))
