from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..common.datetime_utils import slot_instant


@dataclass(frozen=True)
class NewReservation:
    """A generated occurrence that has not been persisted yet."""

    contract_id: int
    reserved_date: date
    reserved_time: Optional[time] = None

    @property
    def slot(self) -> tuple[date, Optional[time]]:
        return self.reserved_date, self.reserved_time


@dataclass(frozen=True)
class Reservation:
    """One concrete scheduled occurrence of a contract.

    scheduled_date and scheduled_time are the slot the generator produced and
    never change.
    reserved_date/reserved_time are the as-rescheduled slot.
    """

    reservation_id: int
    contract_id: int
    scheduled_date: date
    reserved_date: date
    reserved_time: Optional[time] = None
    released: bool = False
    version: int = 1
    scheduled_time: Optional[time] = None

    @property
    def slot(self) -> tuple[date, Optional[time]]:
        return self.reserved_date, self.reserved_time

    @property
    def scheduled_slot(self) -> tuple[date, Optional[time]]:
        return self.scheduled_date, self.scheduled_time

    @property
    def scheduled_at(self) -> datetime:
        return slot_instant(self.scheduled_date, self.scheduled_time)

    @property
    def reserved_at(self) -> datetime:
        return slot_instant(self.reserved_date, self.reserved_time)

    def to_dict(self) -> dict:
        return {
            "reservation_id": self.reservation_id,
            "contract_id": self.contract_id,
            "scheduled_date": self.scheduled_date.isoformat(),
            "reserved_date": self.reserved_date.isoformat(),
            "reserved_time": self.reserved_time.strftime("%H:%M") if self.reserved_time else None,
            "released": self.released,
        }
