from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import ClassVar, Optional, Union

from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class Attended:
    status: ClassVar[AttendanceStatus] = AttendanceStatus.ATTENDED


@dataclass(frozen=True)
class Absent:
    status: ClassVar[AttendanceStatus] = AttendanceStatus.ABSENT


@dataclass(frozen=True)
class Pending:
    status: ClassVar[AttendanceStatus] = AttendanceStatus.PENDING


@dataclass(frozen=True)
class Substituted:
    """Rescheduled occurrence; substitute_at is the new effective instant."""

    substitute_at: datetime
    status: ClassVar[AttendanceStatus] = AttendanceStatus.SUBSTITUTE


Outcome = Union[Attended, Absent, Pending, Substituted]

# Outcomes that count as a delivered (billable) lesson at their effective date.
BILLABLE_STATUSES = frozenset({AttendanceStatus.ATTENDED, AttendanceStatus.SUBSTITUTE})


def make_outcome(status: AttendanceStatus | str, substitute_at: Optional[datetime] = None) -> Outcome:
    try:
        status = AttendanceStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown attendance status: {status!r}")

    if status == AttendanceStatus.SUBSTITUTE:
        if substitute_at is None:
            raise ValidationError("A substitute outcome needs the rescheduled instant (substitute_at)")
        return Substituted(substitute_at=substitute_at)

    if substitute_at is not None:
        raise ValidationError(f"substitute_at is only valid for status '{AttendanceStatus.SUBSTITUTE.value}'")

    return {
        AttendanceStatus.ATTENDED: Attended,
        AttendanceStatus.ABSENT: Absent,
        AttendanceStatus.PENDING: Pending,
    }[status]()


def outcome_from_row(status: str, substitute_at: Optional[datetime]) -> Outcome:
    """Rebuild the outcome from its (status, substitute_at) columns."""

    return make_outcome(status, substitute_at)


@dataclass(frozen=True)
class AttendanceLog:
    """Recorded outcome of one occurrence.

    rescheduled_at is where the reservation sat when the outcome was last
    written, if it had been moved off its original slot. It keeps a lesson that
    was substituted and then attended counted at its new date.
    """

    log_id: int
    contract_id: int
    student_id: int
    reservation_id: int
    occurred_at: datetime
    outcome: Outcome
    voided: bool = False
    void_reason: Optional[str] = None
    memo: Optional[str] = None
    recorded_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    rescheduled_at: Optional[datetime] = None
    modified_by: Optional[str] = None
    change_reason: Optional[str] = None

    @property
    def status(self) -> AttendanceStatus:
        return self.outcome.status

    @property
    def substitute_at(self) -> Optional[datetime]:
        if isinstance(self.outcome, Substituted):
            return self.outcome.substitute_at
        return None

    @property
    def effective_at(self) -> datetime:
        return self.substitute_at or self.rescheduled_at or self.occurred_at

    @property
    def is_billable(self) -> bool:
        return self.status in BILLABLE_STATUSES

    def to_dict(self) -> dict:
        return {
            "log_id": self.log_id,
            "contract_id": self.contract_id,
            "student_id": self.student_id,
            "reservation_id": self.reservation_id,
            "occurred_at": self.occurred_at.isoformat(),
            "status": self.status.value,
            "substitute_at": self.substitute_at.isoformat() if self.substitute_at else None,
            "effective_at": self.effective_at.isoformat(),
            "voided": self.voided,
            "void_reason": self.void_reason,
            "memo": self.memo,
            "rescheduled_at": self.rescheduled_at.isoformat() if self.rescheduled_at else None,
            "modified_by": self.modified_by,
            "change_reason": self.change_reason,
        }

    def with_outcome(
        self,
        outcome: Outcome,
        *,
        memo: Optional[str],
        at: datetime,
        rescheduled_at: Optional[datetime] = None,
        modified_by: Optional[str] = None,
        change_reason: Optional[str] = None,
    ) -> "AttendanceLog":
        return replace(
            self,
            outcome=outcome,
            memo=memo,
            modified_at=at,
            rescheduled_at=rescheduled_at,
            modified_by=modified_by,
            change_reason=change_reason,
        )


ContractMonth = tuple[int, int, int]


def affected_months(*logs: Optional[AttendanceLog]) -> frozenset[ContractMonth]:
    """(contract_id, year, month) keys whose rollups a change to these logs can move."""

    keys: set[ContractMonth] = set()
    for log in logs:
        if log is None:
            continue
        for instant in {log.occurred_at, log.effective_at}:
            keys.add((log.contract_id, instant.year, instant.month))
    return frozenset(keys)


@dataclass(frozen=True)
class PurgeSummary:
    """What an administrative purge removed and which slots it reopened."""

    deleted: int
    restored: tuple[int, ...] = ()
    skipped: tuple[int, ...] = ()
