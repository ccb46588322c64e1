"""Reconciliation aggregator.

Rollups are a pure function of the non-voided attendance logs and the
contracts' rate snapshots. Nothing is stored between calls; any caching is the
consumer's business (see statistics.cache).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Mapping, Optional, Sequence

from ..attendance.model import AttendanceLog
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import month_bounds, year_bounds
from ..common.validators import require_month, require_year, require_year_range
from ..contracts.model import Contract
from ..contracts.repository import ContractRepository
from ..core.enums import RateBasis
from .model import DashboardSummary, Rollup, YearlyRollup


def summarize(
    logs: Iterable[AttendanceLog],
    contracts: Mapping[int, Contract],
    *,
    year: int,
    month: Optional[int],
    start: datetime,
    end: datetime,
) -> Rollup:
    """Aggregate logs whose effective instant falls in [start, end)."""

    in_period = [log for log in logs if not log.voided and start <= log.effective_at < end]

    lesson_count = 0
    revenue = 0
    billed_months: set[tuple[int, int, int]] = set()
    for log in in_period:
        if not log.is_billable:
            continue
        lesson_count += 1

        contract = contracts.get(log.contract_id)
        if contract is None:
            continue
        if contract.rate_basis == RateBasis.PER_MONTH:
            key = (contract.contract_id, log.effective_at.year, log.effective_at.month)
            if key in billed_months:
                continue
            billed_months.add(key)
        revenue += int(contract.rate)

    return Rollup(
        year=year,
        month=month,
        lesson_count=lesson_count,
        contract_count=len({log.contract_id for log in in_period}),
        revenue=revenue,
    )


class ReconciliationAggregator:
    def __init__(self, attendance: AttendanceRepository, contracts: ContractRepository):
        self._attendance = attendance
        self._contracts = contracts

    def _load(self, start: datetime, end: datetime) -> tuple[Sequence[AttendanceLog], Mapping[int, Contract]]:
        logs = self._attendance.list_effective_between(start=start, end=end)
        contracts = self._contracts.get_many({log.contract_id for log in logs}) if logs else {}
        return logs, contracts

    def rollup(self, year: int, month: Optional[int] = None) -> Rollup:
        year = require_year(year)
        if month is None:
            start, end = year_bounds(year)
        else:
            month = require_month(month)
            start, end = month_bounds(year, month)

        logs, contracts = self._load(start, end)
        return summarize(logs, contracts, year=year, month=month, start=start, end=end)

    def rollup_range(self, year_from: int, year_to: int) -> list[YearlyRollup]:
        """Per-year totals with their twelve monthly rows, oldest year first."""

        year_from, year_to = require_year_range(year_from, year_to)
        start, _ = year_bounds(year_from)
        _, end = year_bounds(year_to)
        logs, contracts = self._load(start, end)

        out: list[YearlyRollup] = []
        for year in range(year_from, year_to + 1):
            y_start, y_end = year_bounds(year)
            months = []
            for month in range(1, 13):
                m_start, m_end = month_bounds(year, month)
                months.append(summarize(logs, contracts, year=year, month=month, start=m_start, end=m_end))
            total = summarize(logs, contracts, year=year, month=None, start=y_start, end=y_end)
            out.append(YearlyRollup(year=year, total=total, months=tuple(months)))
        return out

    def summary(self, *, today: date) -> DashboardSummary:
        return DashboardSummary(
            this_month=self.rollup(today.year, today.month),
            active_contracts=len(self._contracts.list_schedulable()),
            ended_contracts=self._contracts.count_ended_before(today),
        )
