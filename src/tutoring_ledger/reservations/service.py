from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional, Sequence

from ..common.validators import require_positive_id
from ..contracts.repository import ContractRepository
from ..core.constants import DEFAULT_HORIZON_DAYS
from ..core.exceptions import ContractNotFound, InvalidTransition
from .generator import OccurrenceGenerator
from .model import Reservation
from .repository import ReservationRepository

logger = logging.getLogger(__name__)


class ReservationService:
    def __init__(
        self,
        contracts: ContractRepository,
        reservations: ReservationRepository,
        *,
        generator: Optional[OccurrenceGenerator] = None,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
    ):
        self._contracts = contracts
        self._reservations = reservations
        self._generator = generator or OccurrenceGenerator(reservations)
        self._horizon_days = int(horizon_days)

    def _get_contract(self, contract_id: int):
        contract = self._contracts.get_by_id(require_positive_id(contract_id, "contract_id"))
        if not contract:
            raise ContractNotFound(f"Contract {contract_id} does not exist")
        return contract

    def materialize(self, contract_id: int, horizon_end: date) -> list[Reservation]:
        contract = self._get_contract(contract_id)
        if not contract.is_schedulable:
            raise InvalidTransition(f"Contract {contract_id} is {contract.status.value}; nothing to schedule")
        return self._generator.materialize(contract, horizon_end)

    def extend_horizon(self, *, today: date, days: Optional[int] = None) -> dict[int, int]:
        """Rolling-horizon job: materialize every schedulable contract up to today + days.

        Returns {contract_id: created_count}. Safe to run repeatedly.
        """

        horizon_end = today + timedelta(days=self._horizon_days if days is None else int(days))
        created: dict[int, int] = {}
        for contract in self._contracts.list_schedulable():
            if contract.start_date > horizon_end:
                continue
            created[contract.contract_id] = len(self._generator.materialize(contract, horizon_end))
        logger.info("Horizon job up to %s created %d reservation(s)", horizon_end, sum(created.values()))
        return created

    def list_for_contract(
        self,
        contract_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Reservation]:
        contract = self._get_contract(contract_id)
        return self._reservations.list_for_contract(contract.contract_id, start=start, end=end)
