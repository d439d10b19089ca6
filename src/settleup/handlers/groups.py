from __future__ import annotations

from typing import Iterable

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from settleup.db.models import Group, User
from settleup.db.repo import LedgerRepository, get_global_repository
from settleup.services.authz import assert_group_member, assert_group_owner
from settleup.services.report import member_labels, quote
from settleup.utils.parse import parse_id, parse_usernames

groups_router = Router()


def get_repo() -> LedgerRepository:
    return get_global_repository()


async def load_member_labels(repo: LedgerRepository, group_id: int) -> dict[int, str]:
    return member_labels(await repo.list_group_members(group_id))


async def load_user_labels(repo: LedgerRepository, user_ids: list[int]) -> dict[int, str]:
    return {int(row["id"]): User.from_record(row).label for row in await repo.get_users(user_ids)}


async def load_group_labels(repo: LedgerRepository, group_id: int, user_ids: Iterable[int]) -> dict[int, str]:
    labels = await load_member_labels(repo, group_id)
    # бывшие участники остаются в старых расходах
    unknown = sorted({uid for uid in user_ids if uid not in labels})
    if unknown:
        labels.update(await load_user_labels(repo, unknown))
    return labels


@groups_router.message(Command("newgroup"))
async def cmd_newgroup(message: Message) -> None:
    repo = get_repo()
    user = message.from_user
    if not user or not message.text:
        return

    parts = message.text.split(maxsplit=1)
    if len(parts) < 2 or not parts[1].strip():
        await message.answer("Использование: /newgroup [название]")
        return

    owner_id = await repo.ensure_user(user.id, user.username, user.full_name)
    group = Group.from_record(await repo.create_group(owner_id, parts[1].strip()))
    await message.answer(
        f"Группа создана: #{group.id} {quote(group.title)}\n"
        f"Добавьте участников: /addmember {group.id} @username"
    )


@groups_router.message(Command("groups"))
async def cmd_groups(message: Message) -> None:
    repo = get_repo()
    user = message.from_user
    if not user:
        return

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    groups = [Group.from_record(row) for row in await repo.list_user_groups(user_id)]
    if not groups:
        await message.answer("Групп пока нет. Создайте новую командой /newgroup.")
        return

    lines = ["Ваши группы:"]
    for group in groups:
        suffix = " (владелец)" if group.owner_id == user_id else ""
        lines.append(f"• #{group.id} {quote(group.title)}{suffix}")
    await message.answer("\n".join(lines))


@groups_router.message(Command("addmember"))
async def cmd_addmember(message: Message) -> None:
    repo = get_repo()
    user = message.from_user
    if not user or not message.text:
        return

    parts = message.text.split(maxsplit=2)
    if len(parts) != 3:
        await message.answer("Использование: /addmember [group_id] @username")
        return

    try:
        group_id = parse_id(parts[1])
    except ValueError:
        await message.answer("Некорректный ID группы")
        return

    current_user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_owner(repo.db, current_user_id, group_id)

    added, missing = [], []
    for username in parse_usernames(parts[2]):
        invited = await repo.get_user_by_username(username)
        if invited is None:
            missing.append(quote(f"@{username}"))
            continue
        await repo.add_group_member(group_id, invited["id"])
        added.append(quote(f"@{username}"))

    lines = []
    if added:
        lines.append(f"Добавлены: {', '.join(added)}")
    if missing:
        lines.append(f"Не найдены (пусть сначала напишут боту): {', '.join(missing)}")
    await message.answer("\n".join(lines) or "Укажите хотя бы одного пользователя")


@groups_router.message(Command("members"))
async def cmd_members(message: Message) -> None:
    repo = get_repo()
    user = message.from_user
    if not user or not message.text:
        return

    parts = message.text.split()
    if len(parts) != 2:
        await message.answer("Использование: /members [group_id]")
        return

    try:
        group_id = parse_id(parts[1])
    except ValueError:
        await message.answer("Некорректный ID группы")
        return

    user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_member(repo.db, user_id, group_id)

    labels = await load_member_labels(repo, group_id)
    lines = [f"Участники группы #{group_id}:"]
    lines.extend(f"• {quote(label)}" for label in labels.values())
    await message.answer("\n".join(lines))


@groups_router.message(Command("removemember"))
async def cmd_removemember(message: Message) -> None:
    repo = get_repo()
    user = message.from_user
    if not user or not message.text:
        return

    parts = message.text.split(maxsplit=2)
    if len(parts) != 3:
        await message.answer("Использование: /removemember [group_id] @username")
        return

    try:
        group_id = parse_id(parts[1])
    except ValueError:
        await message.answer("Некорректный ID группы")
        return

    current_user_id = await repo.ensure_user(user.id, user.username, user.full_name)
    await assert_group_owner(repo.db, current_user_id, group_id)

    removed, missing = [], []
    for username in parse_usernames(parts[2]):
        member = await repo.get_user_by_username(username)
        if member is not None and int(member["id"]) == current_user_id:
            await message.answer("Владелец не может удалить себя из группы")
            return
        if member is None or not await repo.remove_group_member(group_id, int(member["id"])):
            missing.append(quote(f"@{username}"))
            continue
        removed.append(quote(f"@{username}"))

    lines = []
    if removed:
        lines.append(f"Удалены: {', '.join(removed)}")
    if missing:
        lines.append(f"Не состоят в группе: {', '.join(missing)}")
    await message.answer("\n".join(lines) or "Укажите хотя бы одного пользователя")
