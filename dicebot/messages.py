from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from aiogram import Bot
from aiogram.exceptions import (
    TelegramBadRequest,
    TelegramForbiddenError,
    TelegramNetworkError,
    TelegramRetryAfter,
)
from aiogram.types import Message

from config import SEND_MAX_RETRIES
from dicebot.enums import CHAT_GROUP_KICKED
from dicebot.keyboards import to_markup
from dicebot.menus import Screen

logger = logging.getLogger(__name__)


async def call_with_retry(call: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
    attempt = 0
    delay = 0.5
    while True:
        try:
            return await call(*args, **kwargs)
        except TelegramRetryAfter as exc:
            if attempt >= SEND_MAX_RETRIES:
                raise
            await asyncio.sleep(max(0.1, float(exc.retry_after)))
        except TelegramNetworkError:
            if attempt >= SEND_MAX_RETRIES:
                raise
            await asyncio.sleep(delay)
            delay = min(delay * 2, 5)
        attempt += 1


async def blocked_or_kicked(exc: Exception, chat_id: int, repo) -> None:
    """Record the bot's removal from a group when Telegram says so."""
    text = str(exc)
    if "bot was blocked" in text:
        logger.info("the bot was blocked, chat %s", chat_id)
    elif "bot was kicked" in text:
        logger.info("the bot was kicked, chat %s", chat_id)
        if repo is None:
            return
        try:
            await repo.update_chat_group_status(chat_id, CHAT_GROUP_KICKED)
        except Exception:
            logger.exception("failed to mark chat %s as kicked", chat_id)


async def edit_screen(
    bot: Bot,
    chat_id: int,
    message_id: int,
    screen: Screen,
    *,
    repo=None,
) -> None:
    try:
        await call_with_retry(
            bot.edit_message_text,
            text=screen.text,
            chat_id=chat_id,
            message_id=message_id,
            reply_markup=to_markup(screen),
            parse_mode=None,
        )
    except TelegramBadRequest as exc:
        if "message is not modified" in str(exc):
            return
        raise
    except TelegramForbiddenError as exc:
        await blocked_or_kicked(exc, chat_id, repo)


async def send_screen(
    message: Message, screen: Screen, *, repo=None
) -> Optional[Message]:
    try:
        return await call_with_retry(
            message.answer,
            screen.text,
            reply_markup=to_markup(screen),
            parse_mode=None,
        )
    except TelegramForbiddenError as exc:
        await blocked_or_kicked(exc, message.chat.id, repo)
        return None


async def send_text(
    bot: Bot, chat_id: int, text: str, *, reply_markup=None, repo=None
) -> Optional[Message]:
    """Send a plain reply into a group; a Forbidden answer marks the group."""
    try:
        return await call_with_retry(
            bot.send_message,
            chat_id,
            text,
            reply_markup=reply_markup,
            parse_mode=None,
        )
    except TelegramForbiddenError as exc:
        await blocked_or_kicked(exc, chat_id, repo)
        return None
