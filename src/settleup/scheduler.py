from __future__ import annotations

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from settleup.config import get_settings
from settleup.db.repo import LedgerRepository
from settleup.logging import get_logger
from settleup.services.engine import SettlementEngine
from settleup.services.report import format_perspective, member_labels


async def setup_scheduler(bot: Bot, repo: LedgerRepository) -> AsyncIOScheduler:
    settings = get_settings()

    scheduler = AsyncIOScheduler(timezone=settings.tz)
    if settings.digest_interval_hours > 0:
        scheduler.add_job(
            _digest_job,
            IntervalTrigger(hours=settings.digest_interval_hours),
            kwargs={"bot": bot, "repo": repo, "engine": SettlementEngine(repo, settings.split_tolerance)},
        )
    scheduler.start()
    return scheduler


async def _digest_job(bot: Bot, repo: LedgerRepository, engine: SettlementEngine) -> None:
    log = get_logger(__name__)

    for group_id in await repo.list_active_group_ids():
        summary = await engine.summary(group_id)
        if not summary.settlements:
            continue

        members = await repo.list_group_members(group_id)
        labels = member_labels(members)
        for member in members:
            entries = summary.for_user(int(member["user_id"]))
            if not entries or not member["tg_id"]:
                continue
            text = f"Группа #{group_id}\n\n{format_perspective(entries, labels)}"
            try:
                await bot.send_message(member["tg_id"], text)
            except TelegramAPIError as exc:
                log.warning("digest.send_failed", group_id=group_id, user_id=member["user_id"], error=str(exc))
                continue
            log.info("digest.sent", group_id=group_id, user_id=member["user_id"])
