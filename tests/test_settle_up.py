from decimal import Decimal

import pytest

from settleup.services.settle_up import DEFAULT_SETTLEMENT_TITLE, SelfSettlementError, settle_up


class StubRecorder:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    async def record_settlement(self, group_id, from_user_id, to_user_id, amount, title) -> int:
        self.calls.append((group_id, from_user_id, to_user_id, amount, title))
        return 100 + len(self.calls)


@pytest.mark.asyncio
async def test_settle_up_records_payment():
    recorder = StubRecorder()

    expense_id = await settle_up(recorder, 5, 2, 1, Decimal("30"), "за ужин")

    assert expense_id == 101
    assert recorder.calls == [(5, 2, 1, Decimal("30.00"), "за ужин")]


@pytest.mark.asyncio
async def test_settle_up_stores_absolute_rounded_amount():
    recorder = StubRecorder()

    await settle_up(recorder, 5, 2, 1, Decimal("-12.345"))

    assert recorder.calls[0][3] == Decimal("12.35")
    assert recorder.calls[0][4] == DEFAULT_SETTLEMENT_TITLE


@pytest.mark.asyncio
async def test_self_settlement_never_reaches_recorder():
    recorder = StubRecorder()

    with pytest.raises(SelfSettlementError):
        await settle_up(recorder, 5, 3, 3, Decimal("10"))
    assert recorder.calls == []


@pytest.mark.asyncio
async def test_zero_amount_is_rejected():
    recorder = StubRecorder()

    with pytest.raises(ValueError):
        await settle_up(recorder, 5, 2, 1, Decimal("0.004"))
    assert recorder.calls == []
