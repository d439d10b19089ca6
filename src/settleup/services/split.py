from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN
from typing import Sequence

from settleup.db.models import SplitRole
from settleup.services.money import DEFAULT_TOLERANCE, MINOR_UNIT, ZERO, Number, format_amount, quantize, to_decimal


@dataclass(frozen=True, slots=True)
class SplitShare:
    user_id: int
    amount: Decimal
    role: SplitRole


def split_amount(amount: Number, participants: Sequence[int]) -> dict[int, Decimal]:
    """Split ``amount`` evenly, handing leftover cents out in participant order."""
    amount = quantize(amount)
    if amount < 0:
        raise ValueError("amount must be non-negative")
    if not participants:
        raise ValueError("participants must not be empty")

    unique = list(dict.fromkeys(participants))
    n = len(unique)
    base_share = (amount / n).quantize(MINOR_UNIT, rounding=ROUND_DOWN)

    shares = [base_share for _ in unique]
    remainder = amount - base_share * n

    idx = 0
    while remainder > 0:
        shares[idx] += MINOR_UNIT
        remainder -= MINOR_UNIT
        idx = (idx + 1) % n

    return {participant: share for participant, share in zip(unique, shares)}


def build_expense_rows(payer_id: int, amount: Number, participants: Sequence[int]) -> list[SplitShare]:
    """One payer row for the full amount plus one debtor row per participant."""
    amount = to_decimal(amount)
    shares = split_amount(amount, participants)
    rows = [SplitShare(user_id=payer_id, amount=quantize(amount), role=SplitRole.PAYER)]
    rows.extend(
        SplitShare(user_id=user_id, amount=share, role=SplitRole.DEBTOR)
        for user_id, share in shares.items()
    )
    return rows


class SplitMismatchError(ValueError):
    pass


def build_multi_payer_rows(
    payers: Sequence[tuple[int, Number]],
    amount: Number,
    participants: Sequence[int],
    tolerance: Number = DEFAULT_TOLERANCE,
) -> list[SplitShare]:
    """Payer rows as given plus an even debtor split of ``amount``.

    The paid total has to match ``amount`` within ``tolerance``. A user listed
    twice as payer gets one row with the sum.
    """
    amount = quantize(amount)
    paid: dict[int, Decimal] = {}
    for user_id, value in payers:
        value = quantize(value)
        if value <= 0:
            raise ValueError("payer amount must be positive")
        paid[user_id] = paid.get(user_id, ZERO) + value
    if not paid:
        raise ValueError("payers must not be empty")

    total_paid = sum(paid.values(), ZERO)
    if abs(total_paid - amount) > to_decimal(tolerance):
        raise SplitMismatchError(
            f"Плательщики внесли {format_amount(total_paid)}, а сумма расхода {format_amount(amount)}"
        )

    rows = [SplitShare(user_id=user_id, amount=value, role=SplitRole.PAYER) for user_id, value in paid.items()]
    rows.extend(
        SplitShare(user_id=user_id, amount=share, role=SplitRole.DEBTOR)
        for user_id, share in split_amount(amount, participants).items()
    )
    return rows
