from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Rollup:
    """Derived aggregate for one month (month set) or one whole year (month None).

    revenue is in minor currency units.
    """

    year: int
    month: Optional[int]
    lesson_count: int = 0
    contract_count: int = 0
    revenue: int = 0

    def to_dict(self) -> dict:
        out = {
            "year": self.year,
            "lessonCount": self.lesson_count,
            "contractCount": self.contract_count,
            "revenue": self.revenue,
        }
        if self.month is not None:
            out["month"] = self.month
        return out


@dataclass(frozen=True)
class YearlyRollup:
    year: int
    total: Rollup
    months: tuple[Rollup, ...]

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "total": self.total.to_dict(),
            "months": [m.to_dict() for m in self.months],
        }


@dataclass(frozen=True)
class DashboardSummary:
    this_month: Rollup
    active_contracts: int
    ended_contracts: int

    def to_dict(self) -> dict:
        return {
            "thisMonth": self.this_month.to_dict(),
            "activeContracts": self.active_contracts,
            "endedContracts": self.ended_contracts,
        }
