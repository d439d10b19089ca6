from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List

from settleup.services.settlement import Settlement


@dataclass(frozen=True, slots=True)
class PerspectiveEntry:
    """One settlement seen from a single member.

    ``signed_amount > 0``: the counterparty owes the member.
    ``signed_amount < 0``: the member owes the counterparty.
    """

    counterparty: int
    signed_amount: Decimal


def for_user(settlements: Iterable[Settlement], user_id: int) -> List[PerspectiveEntry]:
    entries: list[PerspectiveEntry] = []
    for settlement in settlements:
        if settlement.from_user == user_id:
            entries.append(PerspectiveEntry(counterparty=settlement.to_user, signed_amount=-settlement.amount))
        elif settlement.to_user == user_id:
            entries.append(PerspectiveEntry(counterparty=settlement.from_user, signed_amount=settlement.amount))
    return entries
