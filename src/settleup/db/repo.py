from __future__ import annotations

from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Iterable, Optional, Sequence

import asyncpg

from settleup.db.models import SplitRole, SplitRow
from settleup.logging import get_logger, sql_logger
from settleup.services.money import quantize
from settleup.services.split import SplitShare


class Database:
    def __init__(self, dsn: str) -> None:
        self._dsn = dsn
        self._pool: asyncpg.Pool | None = None
        self._log = get_logger(__name__)

    async def connect(self) -> None:
        if self._pool is None:
            # asyncpg ожидает схему postgresql/postgres, без "+asyncpg"
            dsn = self._dsn.replace("+asyncpg", "")
            self._pool = await asyncpg.create_pool(dsn)
            self._log.info("db.pool.created")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            self._log.info("db.pool.closed")

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetch", query=query, args=args)
        return await self._pool.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetchrow", query=query, args=args)
        return await self._pool.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetchval", query=query, args=args)
        return await self._pool.fetchval(query, *args)

    async def execute(self, query: str, *args: Any) -> str:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.execute", query=query, args=args)
        return await self._pool.execute(query, *args)

    async def executemany(self, command: str, args: Iterable[Iterable[Any]]) -> None:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.executemany", query=command)
        await self._pool.executemany(command, args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        await self._ensure_pool()
        assert self._pool
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                sql_logger.info("sql.transaction")
                yield conn

    async def _ensure_pool(self) -> None:
        if self._pool is None:
            await self.connect()


_INSERT_EXPENSE = """
    INSERT INTO expenses (group_id, added_by, title, amount, is_incomplete_amount, is_settlement)
    VALUES ($1, $2, $3, $4, $5, $6)
    RETURNING id
"""

_INSERT_SPLIT = """
    INSERT INTO expense_splits (expense_id, user_id, amount, is_paid)
    VALUES ($1, $2, $3, $4)
"""


class LedgerRepository:
    def __init__(self, db: Database) -> None:
        self.db = db
        self._log = get_logger(__name__)

    async def ensure_user(self, tg_id: int, username: Optional[str], full_name: Optional[str]) -> int:
        row = await self.db.fetchrow(
            """
            INSERT INTO users (tg_id, username, full_name)
            VALUES ($1, $2, $3)
            ON CONFLICT (tg_id) DO UPDATE
                SET username = EXCLUDED.username,
                    full_name = EXCLUDED.full_name
            RETURNING id
            """,
            tg_id,
            username,
            full_name,
        )
        assert row is not None
        return int(row["id"])

    async def get_user(self, user_id: int) -> asyncpg.Record | None:
        return await self.db.fetchrow("SELECT * FROM users WHERE id = $1", user_id)

    async def get_user_by_username(self, username: str) -> asyncpg.Record | None:
        clean = username.lstrip("@")
        return await self.db.fetchrow("SELECT * FROM users WHERE username = $1", clean)

    async def get_users(self, user_ids: Sequence[int]) -> list[asyncpg.Record]:
        if not user_ids:
            return []
        return await self.db.fetch(
            "SELECT * FROM users WHERE id = ANY($1::bigint[]) ORDER BY id",
            list(user_ids),
        )

    async def create_group(self, owner_id: int, title: str) -> asyncpg.Record:
        async with self.db.transaction() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO groups (owner_id, title)
                VALUES ($1, $2)
                RETURNING *
                """,
                owner_id,
                title,
            )
            assert row is not None
            await conn.execute(
                """
                INSERT INTO group_members (group_id, user_id)
                VALUES ($1, $2)
                ON CONFLICT DO NOTHING
                """,
                row["id"],
                owner_id,
            )
        return row

    async def get_group(self, group_id: int) -> asyncpg.Record | None:
        return await self.db.fetchrow("SELECT * FROM groups WHERE id = $1", group_id)

    async def add_group_member(self, group_id: int, user_id: int) -> None:
        await self.db.execute(
            """
            INSERT INTO group_members (group_id, user_id)
            VALUES ($1, $2)
            ON CONFLICT DO NOTHING
            """,
            group_id,
            user_id,
        )

    async def remove_group_member(self, group_id: int, user_id: int) -> bool:
        # старые расходы и расчёты участника остаются в балансах
        status = await self.db.execute(
            "DELETE FROM group_members WHERE group_id = $1 AND user_id = $2",
            group_id,
            user_id,
        )
        removed = status.endswith(" 1")
        if removed:
            self._log.info("group.member_removed", group_id=group_id, user_id=user_id)
        return removed

    async def list_group_members(self, group_id: int) -> list[asyncpg.Record]:
        return await self.db.fetch(
            """
            SELECT gm.user_id, gm.joined_at, u.tg_id, u.username, u.full_name
            FROM group_members gm
            JOIN users u ON u.id = gm.user_id
            WHERE gm.group_id = $1
            ORDER BY gm.joined_at, gm.user_id
            """,
            group_id,
        )

    async def list_user_groups(self, user_id: int) -> list[asyncpg.Record]:
        return await self.db.fetch(
            """
            SELECT g.*
            FROM groups g
            JOIN group_members gm ON gm.group_id = g.id
            WHERE gm.user_id = $1
            ORDER BY g.created_at, g.id
            """,
            user_id,
        )

    async def list_active_group_ids(self) -> list[int]:
        rows = await self.db.fetch(
            """
            SELECT DISTINCT e.group_id
            FROM expenses e
            ORDER BY e.group_id
            """
        )
        return [int(row["group_id"]) for row in rows]

    async def create_expense(
        self,
        group_id: int,
        added_by: int,
        title: str,
        amount: Decimal,
        shares: Sequence[SplitShare],
        *,
        is_incomplete_amount: bool = False,
    ) -> int:
        amount = quantize(amount)
        async with self.db.transaction() as conn:
            expense_id = await conn.fetchval(
                _INSERT_EXPENSE,
                group_id,
                added_by,
                title,
                amount,
                is_incomplete_amount,
                False,
            )
            await conn.executemany(
                _INSERT_SPLIT,
                [(expense_id, share.user_id, share.amount, share.role.is_paid) for share in shares],
            )
        self._log.info("expense.created", expense_id=expense_id, group_id=group_id, splits=len(shares))
        return int(expense_id)

    async def get_expense(self, expense_id: int) -> asyncpg.Record | None:
        return await self.db.fetchrow("SELECT * FROM expenses WHERE id = $1", expense_id)

    async def list_group_expenses(self, group_id: int) -> list[asyncpg.Record]:
        return await self.db.fetch(
            """
            SELECT *
            FROM expenses
            WHERE group_id = $1
              AND is_settlement = false
            ORDER BY created_at, id
            """,
            group_id,
        )

    async def get_expense_splits(self, expense_id: int) -> list[SplitRow]:
        rows = await self.db.fetch(
            """
            SELECT expense_id, user_id, amount, is_paid
            FROM expense_splits
            WHERE expense_id = $1
            ORDER BY is_paid DESC, user_id
            """,
            expense_id,
        )
        return [SplitRow.from_record(row) for row in rows]

    async def delete_expense(self, expense_id: int) -> None:
        await self.db.execute("DELETE FROM expenses WHERE id = $1", expense_id)
        self._log.info("expense.deleted", expense_id=expense_id)

    async def fetch_split_rows(self, group_id: int) -> list[SplitRow]:
        rows = await self.db.fetch(
            """
            SELECT s.expense_id, s.user_id, s.amount, s.is_paid
            FROM expense_splits s
            JOIN expenses e ON e.id = s.expense_id
            WHERE e.group_id = $1
            ORDER BY s.expense_id, s.is_paid DESC, s.user_id
            """,
            group_id,
        )
        return [SplitRow.from_record(row) for row in rows]

    async def fetch_user_splits(self, group_id: int, user_id: int) -> list[asyncpg.Record]:
        return await self.db.fetch(
            """
            SELECT s.expense_id, s.user_id, s.amount, s.is_paid, e.title
            FROM expense_splits s
            JOIN expenses e ON e.id = s.expense_id
            WHERE e.group_id = $1
              AND s.user_id = $2
              AND e.is_settlement = false
            ORDER BY e.created_at, s.expense_id
            """,
            group_id,
            user_id,
        )

    async def record_settlement(
        self,
        group_id: int,
        from_user_id: int,
        to_user_id: int,
        amount: Decimal,
        title: str,
    ) -> int:
        amount = abs(amount)
        async with self.db.transaction() as conn:
            expense_id = await conn.fetchval(
                _INSERT_EXPENSE,
                group_id,
                from_user_id,
                title,
                amount,
                False,
                True,
            )
            await conn.executemany(
                _INSERT_SPLIT,
                [
                    (expense_id, from_user_id, amount, SplitRole.PAYER.is_paid),
                    (expense_id, to_user_id, amount, SplitRole.DEBTOR.is_paid),
                ],
            )
        self._log.info(
            "settlement.recorded",
            expense_id=expense_id,
            group_id=group_id,
            from_user=from_user_id,
            to_user=to_user_id,
            amount=str(amount),
        )
        return int(expense_id)

    async def list_settlements(self, group_id: int) -> list[asyncpg.Record]:
        return await self.db.fetch(
            """
            SELECT e.id, e.title, e.amount, e.created_at,
                   p.user_id AS from_user_id,
                   d.user_id AS to_user_id
            FROM expenses e
            JOIN expense_splits p ON p.expense_id = e.id AND p.is_paid = true
            JOIN expense_splits d ON d.expense_id = e.id AND d.is_paid = false
            WHERE e.group_id = $1
              AND e.is_settlement = true
            ORDER BY e.created_at DESC, e.id DESC
            """,
            group_id,
        )


_global_repo: LedgerRepository | None = None


def set_global_repository(repo: LedgerRepository) -> None:
    global _global_repo
    _global_repo = repo


def get_global_repository() -> LedgerRepository:
    if _global_repo is None:
        raise RuntimeError("Репозиторий не инициализирован")
    return _global_repo
