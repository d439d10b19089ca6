from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Mapping

from settleup.services.balances import Balance
from settleup.services.money import DEFAULT_TOLERANCE, Number, quantize, to_decimal


@dataclass(frozen=True, slots=True)
class Settlement:
    from_user: int
    to_user: int
    amount: Decimal


def _is_settled(amount: Decimal, tolerance: Decimal) -> bool:
    return amount <= 0 or amount < tolerance


def optimize(balances: Mapping[int, Balance], tolerance: Number = DEFAULT_TOLERANCE) -> List[Settlement]:
    """Greedily pair the largest debtor with the largest creditor.

    Balances are rounded to the minor unit first; anything within ``tolerance``
    of zero is treated as settled. Equal amounts are ordered by user id so the
    output is stable for a given ledger.
    """
    tolerance = to_decimal(tolerance)
    if tolerance < 0:
        raise ValueError("tolerance must be non-negative")

    creditors: list[tuple[int, Decimal]] = []
    debtors: list[tuple[int, Decimal]] = []

    for user_id, balance in sorted(balances.items()):
        amount = balance.rounded
        if amount > tolerance:
            creditors.append((user_id, amount))
        elif amount < -tolerance:
            debtors.append((user_id, -amount))

    creditors.sort(key=lambda x: (-x[1], x[0]))
    debtors.sort(key=lambda x: (-x[1], x[0]))

    settlements: list[Settlement] = []
    i, j = 0, 0

    while i < len(creditors) and j < len(debtors):
        cred_id, cred_amount = creditors[i]
        debt_id, debt_amount = debtors[j]

        transfer = quantize(min(cred_amount, debt_amount))
        if transfer > tolerance:
            settlements.append(Settlement(from_user=debt_id, to_user=cred_id, amount=transfer))

        cred_amount -= transfer
        debt_amount -= transfer

        if _is_settled(cred_amount, tolerance):
            i += 1
        else:
            creditors[i] = (cred_id, cred_amount)

        if _is_settled(debt_amount, tolerance):
            j += 1
        else:
            debtors[j] = (debt_id, debt_amount)

    return settlements
