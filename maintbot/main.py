import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.enums import ParseMode
from aiogram.client.default import DefaultBotProperties

from maintbot.config import config
from maintbot.handlers import common, manager, provider
from maintbot.middlewares.actor import ActorMiddleware
from maintbot.middlewares.db import DbSessionMiddleware
from maintbot.middlewares.error import GlobalErrorMiddleware
from maintbot.services.notification_service import setup_notifications
from maintbot.services.textgen import textgen_manager
from maintbot.cron import scheduler_loop


async def main():
    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        stream=sys.stdout,
    )
    config.validate()

    bot = Bot(
        token=config.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )
    dp = Dispatcher()

    # Setup Services
    setup_notifications(bot)
    await textgen_manager.initialize()

    # Order matters: Error -> DB -> Actor
    dp.update.outer_middleware(GlobalErrorMiddleware())
    dp.update.middleware(DbSessionMiddleware())
    dp.update.middleware(ActorMiddleware())

    # Manager router before provider: both handle "req_*" flows
    dp.include_router(common.router)
    dp.include_router(manager.router)
    dp.include_router(provider.router)

    # Start Scheduler
    asyncio.create_task(scheduler_loop())

    logging.info("Starting bot...")
    await dp.start_polling(bot)

if __name__ == "__main__":
    try:
        if sys.platform == "win32":
            asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.info("Bot stopped.")
