from __future__ import annotations

import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import asyncio
import logging
from typing import Union

from aiogram import Bot, Dispatcher
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application
from aiohttp import web

from config import (
    BOT_MODE,
    BOT_TOKEN,
    ID_WORKER_ID,
    REDIS_URL,
    WEBHOOK_LISTEN,
    WEBHOOK_PATH,
    WEBHOOK_PORT,
    WEBHOOK_SECRET_TOKEN,
    WEBHOOK_URL,
)
from dicebot.callback_store import SessionCache, TokenStore
from dicebot.chat_registry_middleware import ChatRegistryMiddleware
from dicebot.db import create_pool, init_db
from dicebot.handlers import routers
from dicebot.ids import IdGenerator
from dicebot.kv import MemoryBackend, RedisBackend
from dicebot.logging_setup import setup_logging
from dicebot.menus import MenuAssembler
from dicebot.repo import ChatGroupRepo

logger = logging.getLogger(__name__)


def build_backend() -> Union[RedisBackend, MemoryBackend]:
    if REDIS_URL:
        return RedisBackend.from_url(REDIS_URL)
    logger.warning("REDIS_URL is not set, callback data is kept in process memory")
    return MemoryBackend()


async def run_polling(bot: Bot, dispatcher: Dispatcher) -> None:
    await dispatcher.start_polling(bot, allowed_updates=dispatcher.resolve_used_update_types())


async def run_webhook(bot: Bot, dispatcher: Dispatcher) -> None:
    app = web.Application()
    webhook_path = WEBHOOK_PATH if WEBHOOK_PATH.startswith("/") else f"/{WEBHOOK_PATH}"
    handler = SimpleRequestHandler(dispatcher=dispatcher, bot=bot, secret_token=WEBHOOK_SECRET_TOKEN or None)
    handler.register(app, path=webhook_path)
    setup_application(app, dispatcher, bot=bot)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=WEBHOOK_LISTEN, port=WEBHOOK_PORT)
    await site.start()

    if WEBHOOK_URL:
        await bot.set_webhook(
            url=WEBHOOK_URL + webhook_path,
            secret_token=WEBHOOK_SECRET_TOKEN or None,
            allowed_updates=dispatcher.resolve_used_update_types(),
            drop_pending_updates=True,
        )
    while True:
        await asyncio.sleep(3600)


async def main() -> None:
    setup_logging()
    if not BOT_TOKEN:
        raise SystemExit("BOT_TOKEN is not set")

    ids = IdGenerator(ID_WORKER_ID)
    pool = await create_pool()
    await init_db(pool)
    repo = ChatGroupRepo(pool, ids)

    backend = build_backend()
    assembler = MenuAssembler(
        TokenStore(backend, ids),
        SessionCache(backend),
        repo,
    )

    bot = Bot(token=BOT_TOKEN)
    dispatcher = Dispatcher()
    chat_registry = ChatRegistryMiddleware()
    dispatcher.my_chat_member.outer_middleware(chat_registry)
    dispatcher["repo"] = repo
    dispatcher["assembler"] = assembler
    for router in routers:
        dispatcher.include_router(router)

    try:
        mode = BOT_MODE or "polling"
        if mode == "webhook" or WEBHOOK_URL:
            await run_webhook(bot, dispatcher)
        else:
            await run_polling(bot, dispatcher)
    finally:
        await backend.close()
        await pool.close()
        await bot.session.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
