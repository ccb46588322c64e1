from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import ContractStatus, RateBasis


@dataclass(frozen=True)
class RecurrenceRule:
    """Weekly weekday/time pattern or an explicit list of dates.

    weekdays follow datetime.weekday() (0=Monday). Both forms may be combined.
    """

    weekdays: tuple[int, ...] = ()
    time_of_day: Optional[time] = None
    explicit_dates: tuple[date, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.weekdays and not self.explicit_dates


@dataclass(frozen=True)
class Contract:
    """Read-only view of a tutoring contract, owned by the contract lifecycle service."""

    contract_id: int
    student_id: int
    subject: str
    recurrence: RecurrenceRule
    start_date: date
    end_date: Optional[date]
    status: ContractStatus
    rate: int
    rate_basis: RateBasis = RateBasis.PER_LESSON
    created_at: Optional[datetime] = None
    terminated_at: Optional[date] = None

    @property
    def is_schedulable(self) -> bool:
        return self.status in (ContractStatus.SENT, ContractStatus.ACTIVE)

    def covers(self, day: date) -> bool:
        if day < self.start_date:
            return False
        return self.end_date is None or day <= self.end_date
