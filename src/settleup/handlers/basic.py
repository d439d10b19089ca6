from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import ErrorEvent, Message

from settleup.db.repo import get_global_repository
from settleup.logging import get_logger

basic_router = Router()

HELP_TEXT = (
    "<b>📖 Справка по командам</b>\n\n"
    "<b>Группы:</b>\n"
    "/newgroup [название] - создать группу\n"
    "/groups - мои группы\n"
    "/addmember [group_id] @user - добавить участника\n"
    "/removemember [group_id] @user - удалить участника\n"
    "/members [group_id] - участники группы\n\n"
    "<b>Расходы:</b>\n"
    "/addexpense [group_id] | [название] | [сумма] | @u1 @u2 - добавить расход\n"
    "   ... | paid: @a 60 @b 40 - если платили несколько человек\n"
    "/expenses [group_id] - расходы группы\n"
    "/expense [id] - подробности расхода\n"
    "/delexpense [id] - удалить расход (автор или владелец)\n"
    "/spendings [group_id] - мои траты\n\n"
    "<b>Расчёты:</b>\n"
    "/balances [group_id] - балансы участников\n"
    "/settle [group_id] - кто кому сколько должен\n"
    "/settleup [group_id] | @user | [сумма] | [комментарий] - отметить перевод\n"
    "/settlements [group_id] - история расчётов\n"
    "/undosettle [id] - отменить свой расчёт\n"
)


@basic_router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    user = message.from_user
    if not user:
        return

    repo = get_global_repository()
    await repo.ensure_user(user.id, user.username, user.full_name)

    await message.answer(
        f"👋 Привет, {user.first_name}!\n\n"
        "Я <b>SettleUp</b> — помогу честно поделить общие расходы и подскажу, кто кому должен.\n\n"
        "Создай группу командой /newgroup или посмотри /help."
    )


@basic_router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(HELP_TEXT)


async def on_authorization_error(event: ErrorEvent) -> bool:
    get_logger(__name__).info("authz.denied", error=str(event.exception))
    update = event.update
    if update.message is not None:
        await update.message.answer(str(event.exception))
    elif update.callback_query is not None:
        await update.callback_query.answer(str(event.exception), show_alert=True)
    return True
