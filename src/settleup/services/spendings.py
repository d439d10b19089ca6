from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional

from settleup.db.models import SplitRole, SplitRow
from settleup.services.money import ZERO


@dataclass(slots=True)
class ExpenseSpending:
    expense_id: int
    title: str
    paid: Decimal = ZERO
    owed: Decimal = ZERO


@dataclass(slots=True)
class UserSpendings:
    total_paid: Decimal = ZERO
    total_owed: Decimal = ZERO
    expenses: List[ExpenseSpending] = field(default_factory=list)

    @property
    def net_spending(self) -> Decimal:
        return self.total_paid - self.total_owed


def summarize_spendings(
    rows: Iterable[SplitRow],
    user_id: int,
    titles: Optional[Mapping[int, str]] = None,
) -> UserSpendings:
    titles = titles or {}
    summary = UserSpendings()
    per_expense: dict[int, ExpenseSpending] = {}

    for row in rows:
        if row.user_id != user_id:
            continue
        item = per_expense.get(row.expense_id)
        if item is None:
            item = ExpenseSpending(expense_id=row.expense_id, title=titles.get(row.expense_id, f"#{row.expense_id}"))
            per_expense[row.expense_id] = item
            summary.expenses.append(item)
        if row.role == SplitRole.PAYER:
            item.paid += row.amount
            summary.total_paid += row.amount
        else:
            item.owed += row.amount
            summary.total_owed += row.amount

    return summary
