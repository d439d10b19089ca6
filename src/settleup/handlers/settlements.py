from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from settleup.config import get_settings
from settleup.db.models import Expense
from settleup.db.repo import LedgerRepository, get_global_repository
from settleup.handlers.groups import load_group_labels
from settleup.keyboards import GROUP_VIEW, MY_VIEW, build_settle_keyboard
from settleup.services.authz import assert_group_member, assert_settlement_payer
from settleup.services.engine import GroupSummary, SettlementEngine
from settleup.services.money import format_amount
from settleup.services.report import (
    format_balances,
    format_perspective,
    format_settlement_history,
    format_settlements,
    quote,
)
from settleup.services.settle_up import settle_up
from settleup.utils.parse import parse_amount, parse_id, split_command

settlements_router = Router()

SETTLE_UP_USAGE = "Использование: /settleup [group_id] | @user | [сумма] | [комментарий]"


def get_engine(repo: LedgerRepository) -> SettlementEngine:
    return SettlementEngine(repo, get_settings().split_tolerance)


async def _group_id_from_command(message: Message, usage: str) -> int | None:
    parts = (message.text or "").split()
    if len(parts) != 2:
        await message.answer(usage)
        return None
    try:
        return parse_id(parts[1])
    except ValueError:
        await message.answer("Некорректный ID группы")
        return None


async def render_summary(repo: LedgerRepository, summary: GroupSummary, user_id: int, view: str) -> str:
    labels = await load_group_labels(repo, summary.group_id, summary.balances)

    header = f"Группа #{summary.group_id}"
    if view == MY_VIEW:
        return f"{header}\n\n{format_perspective(summary.for_user(user_id), labels)}"
    return f"{header}\n\n{format_settlements(summary.settlements, labels)}"


@settlements_router.message(Command("balances"))
async def cmd_balances(message: Message) -> None:
    repo = get_global_repository()
    user = message.from_user
    if not user:
        return
    group_id = await _group_id_from_command(message, "Использование: /balances [group_id]")
    if group_id is None:
        return

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_member(repo.db, user_id, group_id)

    balances = await get_engine(repo).balances(group_id)
    labels = await load_group_labels(repo, group_id, balances)
    await message.answer(format_balances(balances, labels))


@settlements_router.message(Command("settle"))
async def cmd_settle(message: Message) -> None:
    repo = get_global_repository()
    user = message.from_user
    if not user:
        return
    group_id = await _group_id_from_command(message, "Использование: /settle [group_id]")
    if group_id is None:
        return

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_member(repo.db, user_id, group_id)

    summary = await get_engine(repo).summary(group_id)
    text = await render_summary(repo, summary, user_id, GROUP_VIEW)
    await message.answer(text, reply_markup=build_settle_keyboard(group_id, GROUP_VIEW))


@settlements_router.callback_query(F.data.startswith("settle_view:"))
async def cb_settle_view(callback: CallbackQuery) -> None:
    repo = get_global_repository()
    _, raw_group_id, view = (callback.data or "").split(":", maxsplit=2)
    group_id = int(raw_group_id)
    user = callback.from_user

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_member(repo.db, user_id, group_id)

    summary = await get_engine(repo).summary(group_id)
    text = await render_summary(repo, summary, user_id, view)
    if callback.message:
        await callback.message.edit_text(text, reply_markup=build_settle_keyboard(group_id, view))
    await callback.answer()


@settlements_router.callback_query(F.data.startswith("balances:"))
async def cb_balances(callback: CallbackQuery) -> None:
    repo = get_global_repository()
    group_id = int((callback.data or "").split(":", maxsplit=1)[1])
    user = callback.from_user

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_member(repo.db, user_id, group_id)

    balances = await get_engine(repo).balances(group_id)
    labels = await load_group_labels(repo, group_id, balances)
    if callback.message:
        await callback.message.answer(format_balances(balances, labels))
    await callback.answer()


@settlements_router.message(Command("settleup"))
async def cmd_settleup(message: Message) -> None:
    repo = get_global_repository()
    user = message.from_user
    if not user or not message.text:
        return

    parts = split_command(message.text)
    if len(parts) < 3:
        await message.answer(SETTLE_UP_USAGE)
        return

    try:
        group_id = parse_id(parts[0])
        amount = parse_amount(parts[2])
    except ValueError as exc:
        await message.answer(str(exc))
        return
    title = parts[3] if len(parts) > 3 else None

    requester_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_member(repo.db, requester_id, group_id)

    counterparty = await repo.get_user_by_username(parts[1])
    if counterparty is None:
        await message.answer("Пользователь не найден, пусть сначала напишет боту.")
        return
    counterparty_id = int(counterparty["id"])
    await assert_group_member(repo.db, counterparty_id, group_id)

    try:
        expense_id = await settle_up(repo, group_id, requester_id, counterparty_id, amount, title)
    except ValueError as exc:
        await message.answer(quote(exc))
        return

    await message.answer(f"Расчёт записан: #{expense_id}, вы → {quote(parts[1])}: {format_amount(abs(amount))}")


@settlements_router.message(Command("settlements"))
async def cmd_settlements(message: Message) -> None:
    repo = get_global_repository()
    user = message.from_user
    if not user:
        return
    group_id = await _group_id_from_command(message, "Использование: /settlements [group_id]")
    if group_id is None:
        return

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_member(repo.db, user_id, group_id)

    rows = await repo.list_settlements(group_id)
    ids = [int(r["from_user_id"]) for r in rows] + [int(r["to_user_id"]) for r in rows]
    labels = await load_group_labels(repo, group_id, ids)
    await message.answer(format_settlement_history(rows, labels))


@settlements_router.message(Command("undosettle"))
async def cmd_undosettle(message: Message) -> None:
    repo = get_global_repository()
    user = message.from_user
    if not user or not message.text:
        return

    parts = message.text.split()
    if len(parts) != 2:
        await message.answer("Использование: /undosettle [id]")
        return
    try:
        expense_id = parse_id(parts[1])
    except ValueError as exc:
        await message.answer(str(exc))
        return

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_settlement_payer(repo.db, user_id, expense_id)

    record = await repo.get_expense(expense_id)
    if record is None:
        await message.answer("Расчёт не найден")
        return
    expense = Expense.from_record(record)
    await assert_group_member(repo.db, user_id, expense.group_id)

    await repo.delete_expense(expense_id)
    await message.answer(f"Расчёт #{expense.id} «{quote(expense.title)}» на {format_amount(expense.amount)} отменён")
