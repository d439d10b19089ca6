from contextlib import asynccontextmanager
from decimal import Decimal

import pytest

from settleup.db.models import SplitRole, SplitRow
from settleup.db.repo import LedgerRepository
from settleup.services.split import build_expense_rows


class DummyConn:
    def __init__(self) -> None:
        self.fetchval_calls: list[tuple] = []
        self.executemany_calls: list[tuple] = []

    async def fetchval(self, query: str, *args: object) -> int:
        self.fetchval_calls.append((query, args))
        return 77

    async def executemany(self, query: str, args) -> None:
        self.executemany_calls.append((query, list(args)))


class DummyDB:
    def __init__(self, rows: list[dict] | None = None, status: str = "DELETE 1") -> None:
        self.conn = DummyConn()
        self.rows = rows or []
        self.status = status
        self.fetch_args: tuple = ()
        self.execute_args: tuple = ()

    @asynccontextmanager
    async def transaction(self):
        yield self.conn

    async def fetch(self, query: str, *args: object) -> list[dict]:
        self.fetch_args = args
        return self.rows

    async def execute(self, query: str, *args: object) -> str:
        self.execute_args = args
        return self.status


@pytest.mark.asyncio
async def test_record_settlement_writes_payer_and_debtor():
    db = DummyDB()
    repo = LedgerRepository(db)  # type: ignore[arg-type]

    expense_id = await repo.record_settlement(4, 2, 1, Decimal("-30.00"), "Settlement")

    assert expense_id == 77
    _, args = db.conn.fetchval_calls[0]
    assert args == (4, 2, "Settlement", Decimal("30.00"), False, True)
    _, splits = db.conn.executemany_calls[0]
    assert splits == [(77, 2, Decimal("30.00"), True), (77, 1, Decimal("30.00"), False)]


@pytest.mark.asyncio
async def test_fetch_split_rows_maps_records():
    db = DummyDB(
        rows=[
            {"expense_id": 1, "user_id": 1, "amount": Decimal("90.0000"), "is_paid": True},
            {"expense_id": 1, "user_id": 2, "amount": Decimal("45.0000"), "is_paid": False},
        ]
    )
    repo = LedgerRepository(db)  # type: ignore[arg-type]

    rows = await repo.fetch_split_rows(3)

    assert db.fetch_args == (3,)
    assert rows == [
        SplitRow(1, 1, Decimal("90.0000"), SplitRole.PAYER),
        SplitRow(1, 2, Decimal("45.0000"), SplitRole.DEBTOR),
    ]


@pytest.mark.asyncio
async def test_create_expense_stores_rounded_amount():
    db = DummyDB()
    repo = LedgerRepository(db)  # type: ignore[arg-type]
    shares = build_expense_rows(1, Decimal("10.005"), [1, 2])

    expense_id = await repo.create_expense(4, 1, "Кофе", Decimal("10.005"), shares)

    assert expense_id == 77
    _, args = db.conn.fetchval_calls[0]
    assert args == (4, 1, "Кофе", Decimal("10.01"), False, False)
    _, splits = db.conn.executemany_calls[0]
    assert splits[0] == (77, 1, Decimal("10.01"), True)
    assert sum(amount for _, _, amount, is_paid in splits if not is_paid) == Decimal("10.01")


@pytest.mark.asyncio
async def test_remove_group_member():
    repo = LedgerRepository(DummyDB(status="DELETE 1"))  # type: ignore[arg-type]
    assert await repo.remove_group_member(3, 2) is True

    db = DummyDB(status="DELETE 0")
    repo = LedgerRepository(db)  # type: ignore[arg-type]
    assert await repo.remove_group_member(3, 9) is False
    assert db.execute_args == (3, 9)


@pytest.mark.asyncio
async def test_get_expense_splits():
    db = DummyDB(rows=[{"expense_id": 5, "user_id": 2, "amount": Decimal("40.0000"), "is_paid": True}])
    repo = LedgerRepository(db)  # type: ignore[arg-type]

    assert await repo.get_expense_splits(5) == [SplitRow(5, 2, Decimal("40.0000"), SplitRole.PAYER)]
    assert db.fetch_args == (5,)
