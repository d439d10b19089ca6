from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from settleup.logging import get_logger
from settleup.services.money import Number, quantize

DEFAULT_SETTLEMENT_TITLE = "Settlement"


class SettlementRecorder(Protocol):
    async def record_settlement(
        self,
        group_id: int,
        from_user_id: int,
        to_user_id: int,
        amount: Decimal,
        title: str,
    ) -> int: ...


class SelfSettlementError(ValueError):
    pass


def validate_settle_request(requester_id: int, counterparty_id: int, amount: Number) -> Decimal:
    if requester_id == counterparty_id:
        raise SelfSettlementError("Нельзя рассчитаться с самим собой.")
    value = abs(quantize(amount))
    if value == 0:
        raise ValueError("Сумма расчёта должна быть больше нуля.")
    return value


async def settle_up(
    recorder: SettlementRecorder,
    group_id: int,
    requester_id: int,
    counterparty_id: int,
    amount: Number,
    title: str | None = None,
) -> int:
    """Record that ``requester_id`` paid ``counterparty_id``.

    This is a user decision and does not consult the optimizer.
    """
    value = validate_settle_request(requester_id, counterparty_id, amount)
    expense_id = await recorder.record_settlement(
        group_id,
        requester_id,
        counterparty_id,
        value,
        (title or "").strip() or DEFAULT_SETTLEMENT_TITLE,
    )
    get_logger(__name__).info("settle_up.done", group_id=group_id, expense_id=expense_id)
    return expense_id
