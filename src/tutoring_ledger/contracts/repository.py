from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Contract


class ContractRepository(Protocol):
    """Read-only port onto the contract lifecycle service."""

    def get_by_id(self, contract_id: int) -> Optional[Contract]:
        raise NotImplementedError

    def get_many(self, contract_ids: Sequence[int]) -> dict[int, Contract]:
        raise NotImplementedError

    def list_schedulable(self) -> Sequence[Contract]:
        """Contracts in `sent` or `active` status."""

        raise NotImplementedError

    def count_ended_before(self, day: date) -> int:
        raise NotImplementedError
