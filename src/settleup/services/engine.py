"""Read path of the settle summary: split rows -> balances -> settlements.

The per-member view is always derived from the group-wide settlement list, so
both views of a group come from a single matching pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from settleup.logging import get_logger
from settleup.services.balances import Balance, SplitRecordSupplier, aggregate_balances
from settleup.services.money import DEFAULT_TOLERANCE, Number, to_decimal
from settleup.services.settlement import Settlement, optimize
from settleup.services.views import PerspectiveEntry, for_user


@dataclass(slots=True)
class GroupSummary:
    group_id: int
    balances: dict[int, Balance] = field(default_factory=dict)
    settlements: List[Settlement] = field(default_factory=list)

    def for_user(self, user_id: int) -> List[PerspectiveEntry]:
        return for_user(self.settlements, user_id)


class SettlementEngine:
    def __init__(self, supplier: SplitRecordSupplier, tolerance: Number = DEFAULT_TOLERANCE) -> None:
        tolerance = to_decimal(tolerance)
        if tolerance < 0:
            raise ValueError("tolerance must be non-negative")
        self._supplier = supplier
        self._tolerance: Decimal = tolerance
        self._log = get_logger(__name__)

    @property
    def tolerance(self) -> Decimal:
        return self._tolerance

    async def balances(self, group_id: int) -> dict[int, Balance]:
        rows = await self._supplier.fetch_split_rows(group_id)
        return aggregate_balances(rows)

    async def summary(self, group_id: int) -> GroupSummary:
        balances = await self.balances(group_id)
        settlements = optimize(balances, self._tolerance)
        self._log.info(
            "settle.computed",
            group_id=group_id,
            users=len(balances),
            transactions=len(settlements),
        )
        return GroupSummary(group_id=group_id, balances=balances, settlements=settlements)

    async def settlements(self, group_id: int) -> List[Settlement]:
        return (await self.summary(group_id)).settlements

    async def settlements_for_user(self, group_id: int, user_id: int) -> List[PerspectiveEntry]:
        return (await self.summary(group_id)).for_user(user_id)
