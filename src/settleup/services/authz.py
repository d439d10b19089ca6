from __future__ import annotations

from typing import Protocol


class Repository(Protocol):
    async def fetchval(self, query: str, *args: object) -> object: ...


class AuthorizationError(PermissionError):
    pass


async def is_group_member(repo: Repository, user_id: int, group_id: int) -> bool:
    member_id = await repo.fetchval(
        "SELECT user_id FROM group_members WHERE group_id = $1 AND user_id = $2",
        group_id,
        user_id,
    )
    return member_id is not None


async def assert_group_member(repo: Repository, user_id: int, group_id: int) -> None:
    if not await is_group_member(repo, user_id, group_id):
        raise AuthorizationError("Вы не состоите в этой группе.")


async def assert_group_owner(repo: Repository, user_id: int, group_id: int) -> None:
    owner_id = await repo.fetchval(
        "SELECT owner_id FROM groups WHERE id = $1",
        group_id,
    )
    if owner_id != user_id:
        raise AuthorizationError("Только владелец группы может выполнять это действие.")


async def assert_settlement_payer(repo: Repository, user_id: int, expense_id: int) -> None:
    payer_id = await repo.fetchval(
        """
        SELECT s.user_id
        FROM expense_splits s
        JOIN expenses e ON e.id = s.expense_id
        WHERE s.expense_id = $1
          AND s.is_paid = true
          AND e.is_settlement = true
        """,
        expense_id,
    )
    if payer_id is None:
        raise AuthorizationError("Расчёт не найден.")
    if payer_id != user_id:
        raise AuthorizationError("Отменить расчёт может только тот, кто платил.")


async def assert_expense_editor(repo: Repository, user_id: int, expense_id: int) -> None:
    """Author of the expense or owner of its group; settlements are not expenses here."""
    allowed = await repo.fetchval(
        """
        SELECT (e.added_by = $2 OR g.owner_id = $2)
        FROM expenses e
        JOIN groups g ON g.id = e.group_id
        WHERE e.id = $1
          AND e.is_settlement = false
        """,
        expense_id,
        user_id,
    )
    if allowed is None:
        raise AuthorizationError("Расход не найден.")
    if not allowed:
        raise AuthorizationError("Удалить расход может только автор или владелец группы.")
