from __future__ import annotations

import asyncio

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.filters import ExceptionTypeFilter

from settleup.config import get_settings
from settleup.db.repo import Database, LedgerRepository, set_global_repository
from settleup.handlers import (
    basic_router,
    expenses_router,
    groups_router,
    on_authorization_error,
    settlements_router,
)
from settleup.logging import configure_logging, get_logger
from settleup.scheduler import setup_scheduler
from settleup.services.authz import AuthorizationError


async def main() -> None:
    configure_logging()
    settings = get_settings()
    bot = Bot(token=settings.bot_token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = Dispatcher()
    db = Database(settings.database_url)
    await db.connect()
    repo = LedgerRepository(db)

    dp.include_router(basic_router)
    dp.include_router(groups_router)
    dp.include_router(expenses_router)
    dp.include_router(settlements_router)
    dp.errors.register(on_authorization_error, ExceptionTypeFilter(AuthorizationError))

    set_global_repository(repo)

    scheduler = await setup_scheduler(bot, repo)

    log = get_logger(__name__)
    log.info("bot.start", split_tolerance=str(settings.split_tolerance))
    try:
        await dp.start_polling(bot)
    finally:
        scheduler.shutdown(wait=False)
        await db.close()
        await bot.session.close()
        log.info("bot.stop")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
