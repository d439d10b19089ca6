from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from settleup.config import get_settings
from settleup.db.models import Expense, SplitRole, SplitRow
from settleup.db.repo import LedgerRepository, get_global_repository
from settleup.handlers.groups import load_group_labels
from settleup.services.authz import assert_expense_editor, assert_group_member
from settleup.services.money import format_amount, quantize
from settleup.services.report import format_expense, format_expenses, format_spendings, quote
from settleup.services.spendings import summarize_spendings
from settleup.services.split import build_expense_rows, build_multi_payer_rows
from settleup.utils.parse import (
    is_payers_section,
    parse_amount,
    parse_id,
    parse_payers,
    parse_usernames,
    split_command,
)

expenses_router = Router()

ADD_EXPENSE_USAGE = (
    "Использование: /addexpense [group_id] | [название] | [сумма] | @u1 @u2 (необязательно)"
    " | paid: @a 60 @b 40 (необязательно)"
)


async def _resolve_members(repo: LedgerRepository, usernames: list[str], member_ids: list[int]) -> list[int]:
    user_ids = []
    for username in usernames:
        found = await repo.get_user_by_username(username)
        if found is None or int(found["id"]) not in member_ids:
            raise ValueError(f"@{username} не состоит в группе")
        user_ids.append(int(found["id"]))
    return user_ids


@expenses_router.message(Command("addexpense"))
async def cmd_addexpense(message: Message) -> None:
    repo = get_global_repository()
    user = message.from_user
    if not user or not message.text:
        return

    parts = split_command(message.text)
    if len(parts) < 3:
        await message.answer(ADD_EXPENSE_USAGE)
        return

    participants_raw, payers_raw = "", ""
    for section in parts[3:]:
        if is_payers_section(section):
            payers_raw = section
        elif section:
            participants_raw = section

    try:
        group_id = parse_id(parts[0])
        amount = quantize(parse_amount(parts[2]))
        payers = parse_payers(payers_raw) if payers_raw else []
    except ValueError as exc:
        await message.answer(quote(exc))
        return

    title = parts[1] or "Расход"
    if amount <= 0:
        await message.answer("Сумма должна быть больше нуля")
        return

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_member(repo.db, user_id, group_id)

    member_ids = [int(m["user_id"]) for m in await repo.list_group_members(group_id)]
    try:
        participants = member_ids
        if participants_raw:
            participants = await _resolve_members(repo, parse_usernames(participants_raw), member_ids)
        if payers:
            payer_ids = await _resolve_members(repo, [name for name, _ in payers], member_ids)
            rows = build_multi_payer_rows(
                list(zip(payer_ids, (value for _, value in payers))),
                amount,
                participants,
                get_settings().split_tolerance,
            )
        else:
            rows = build_expense_rows(user_id, amount, participants)
    except ValueError as exc:
        await message.answer(quote(exc))
        return

    expense_id = await repo.create_expense(group_id, user_id, title, amount, rows)
    debtors = sum(1 for row in rows if row.role == SplitRole.DEBTOR)
    await message.answer(
        f"Расход добавлен: #{expense_id} {quote(title)} — {format_amount(amount)}, "
        f"поровну на {debtors} чел."
    )


@expenses_router.message(Command("expenses"))
async def cmd_expenses(message: Message) -> None:
    repo = get_global_repository()
    user = message.from_user
    if not user or not message.text:
        return

    parts = message.text.split()
    if len(parts) != 2:
        await message.answer("Использование: /expenses [group_id]")
        return

    try:
        group_id = parse_id(parts[1])
    except ValueError as exc:
        await message.answer(str(exc))
        return

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_member(repo.db, user_id, group_id)

    expenses = [Expense.from_record(row) for row in await repo.list_group_expenses(group_id)]
    labels = await load_group_labels(repo, group_id, [e.added_by for e in expenses if e.added_by is not None])
    await message.answer(format_expenses(expenses, labels))


@expenses_router.message(Command("expense"))
async def cmd_expense(message: Message) -> None:
    repo = get_global_repository()
    user = message.from_user
    if not user or not message.text:
        return

    parts = message.text.split()
    if len(parts) != 2:
        await message.answer("Использование: /expense [id]")
        return

    try:
        expense_id = parse_id(parts[1])
    except ValueError as exc:
        await message.answer(str(exc))
        return

    record = await repo.get_expense(expense_id)
    if record is None:
        await message.answer("Расход не найден")
        return
    expense = Expense.from_record(record)

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_member(repo.db, user_id, expense.group_id)

    splits = await repo.get_expense_splits(expense.id)
    labels = await load_group_labels(repo, expense.group_id, [s.user_id for s in splits])
    await message.answer(format_expense(expense, splits, labels))


@expenses_router.message(Command("delexpense"))
async def cmd_delexpense(message: Message) -> None:
    repo = get_global_repository()
    user = message.from_user
    if not user or not message.text:
        return

    parts = message.text.split()
    if len(parts) != 2:
        await message.answer("Использование: /delexpense [id]")
        return

    try:
        expense_id = parse_id(parts[1])
    except ValueError as exc:
        await message.answer(str(exc))
        return

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_expense_editor(repo.db, user_id, expense_id)

    record = await repo.get_expense(expense_id)
    if record is None:
        await message.answer("Расход не найден")
        return
    expense = Expense.from_record(record)

    await repo.delete_expense(expense.id)
    await message.answer(f"Расход #{expense.id} «{quote(expense.title)}» на {format_amount(expense.amount)} удалён")


@expenses_router.message(Command("spendings"))
async def cmd_spendings(message: Message) -> None:
    repo = get_global_repository()
    user = message.from_user
    if not user or not message.text:
        return

    parts = message.text.split()
    if len(parts) != 2:
        await message.answer("Использование: /spendings [group_id]")
        return

    try:
        group_id = parse_id(parts[1])
    except ValueError as exc:
        await message.answer(str(exc))
        return

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_member(repo.db, user_id, group_id)

    records = await repo.fetch_user_splits(group_id, user_id)
    titles = {int(r["expense_id"]): r["title"] for r in records}
    spendings = summarize_spendings((SplitRow.from_record(r) for r in records), user_id, titles)
    await message.answer(format_spendings(spendings))
