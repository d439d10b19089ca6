"""Net balances of a group derived from its expense split rows.

Every debtor of an expense owes every payer of that expense a part of their
debt proportional to the payer's share of the total paid. Balances are
accumulated in ``Decimal`` and are never stored: they are recomputed from the
split rows on every request.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from settleup.db.models import SplitRole, SplitRow
from settleup.services.money import ZERO, quantize


class SplitRecordSupplier(Protocol):
    async def fetch_split_rows(self, group_id: int) -> list[SplitRow]: ...


@dataclass(frozen=True, slots=True)
class Balance:
    user_id: int
    net_amount: Decimal

    @property
    def rounded(self) -> Decimal:
        return quantize(self.net_amount)


def _row_key(row: SplitRow) -> tuple[int, Decimal]:
    return row.user_id, row.amount


def _rows_by_expense(rows: Iterable[SplitRow]) -> dict[int, list[SplitRow]]:
    expenses: dict[int, list[SplitRow]] = {}
    for row in rows:
        expenses.setdefault(row.expense_id, []).append(row)
    return expenses


def aggregate_balances(rows: Iterable[SplitRow]) -> dict[int, Balance]:
    """Fold split rows into one :class:`Balance` per user.

    Expenses whose payer rows do not add up to a positive total are skipped.
    A user who is both payer and debtor of the same expense is never charged
    against themself.
    """
    totals: dict[int, Decimal] = {}

    for _, expense_rows in sorted(_rows_by_expense(rows).items()):
        payers = sorted((r for r in expense_rows if r.role == SplitRole.PAYER), key=_row_key)
        debtors = sorted((r for r in expense_rows if r.role == SplitRole.DEBTOR), key=_row_key)

        total_paid = sum((p.amount for p in payers), ZERO)
        if total_paid <= 0:
            continue

        for row in expense_rows:
            totals.setdefault(row.user_id, ZERO)

        for payer in payers:
            for debtor in debtors:
                if payer.user_id == debtor.user_id:
                    continue
                share = debtor.amount * payer.amount / total_paid
                totals[payer.user_id] += share
                totals[debtor.user_id] -= share

    return {user_id: Balance(user_id, amount) for user_id, amount in sorted(totals.items())}


async def compute_balances(supplier: SplitRecordSupplier, group_id: int) -> dict[int, Balance]:
    rows = await supplier.fetch_split_rows(group_id)
    return aggregate_balances(rows)
