import pytest

from settleup.services.authz import (
    AuthorizationError,
    assert_expense_editor,
    assert_group_member,
    assert_group_owner,
    assert_settlement_payer,
    is_group_member,
)


class StubRepo:
    def __init__(
        self,
        owner_id: int,
        members: set[int],
        settlement_payers: dict[int, int] | None = None,
        expense_authors: dict[int, int] | None = None,
    ) -> None:
        self.owner_id = owner_id
        self.members = members
        self.settlement_payers = settlement_payers or {}
        self.expense_authors = expense_authors or {}

    async def fetchval(self, query: str, *args: object) -> object:
        if "added_by" in query:
            author = self.expense_authors.get(args[0])
            if author is None:
                return None
            return args[1] in (author, self.owner_id)
        if "owner_id" in query:
            return self.owner_id if args[0] == 1 else None
        if "is_settlement" in query:
            return self.settlement_payers.get(args[0])
        return args[1] if args[1] in self.members else None


@pytest.mark.asyncio
async def test_is_group_member():
    repo = StubRepo(owner_id=42, members={42, 100})
    assert await is_group_member(repo, 100, 1) is True
    assert await is_group_member(repo, 7, 1) is False


@pytest.mark.asyncio
async def test_assert_group_member_denied():
    repo = StubRepo(owner_id=10, members={10})
    with pytest.raises(AuthorizationError):
        await assert_group_member(repo, 99, 1)


@pytest.mark.asyncio
async def test_assert_group_owner():
    repo = StubRepo(owner_id=10, members={10, 11})
    await assert_group_owner(repo, 10, 1)
    with pytest.raises(AuthorizationError):
        await assert_group_owner(repo, 11, 1)


@pytest.mark.asyncio
async def test_assert_settlement_payer():
    repo = StubRepo(owner_id=10, members={10, 20}, settlement_payers={5: 20})
    await assert_settlement_payer(repo, 20, 5)

    with pytest.raises(AuthorizationError, match="только тот, кто платил"):
        await assert_settlement_payer(repo, 10, 5)
    with pytest.raises(AuthorizationError, match="не найден"):
        await assert_settlement_payer(repo, 20, 6)


@pytest.mark.asyncio
async def test_assert_expense_editor():
    repo = StubRepo(owner_id=10, members={10, 20, 30}, expense_authors={7: 20})
    await assert_expense_editor(repo, 20, 7)
    await assert_expense_editor(repo, 10, 7)

    with pytest.raises(AuthorizationError, match="автор или владелец"):
        await assert_expense_editor(repo, 30, 7)
    with pytest.raises(AuthorizationError, match="не найден"):
        await assert_expense_editor(repo, 20, 8)
