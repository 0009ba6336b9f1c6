from __future__ import annotations

import logging

from aiogram import F, Router
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command
from aiogram.types import ChatMemberUpdated, Message

from dicebot.keyboards import build_open_dm_keyboard
from dicebot.messages import send_text

router = Router()
router.message.filter(F.chat.type.in_({"group", "supergroup"}))

logger = logging.getLogger(__name__)

ADMIN_STATUSES = {"creator", "administrator"}


@router.message(Command("register"))
async def register_command(message: Message, repo) -> None:
    tg_user = message.from_user
    if not tg_user:
        return
    chat = message.chat
    try:
        member = await message.bot.get_chat_member(chat.id, tg_user.id)
    except TelegramAPIError as exc:
        logger.warning("get_chat_member failed for chat %s user %s: %s", chat.id, tg_user.id, exc)
        await send_text(
            message.bot, chat.id, "Could not check your rights in this group, please try again.", repo=repo
        )
        return
    if member.status not in ADMIN_STATUSES:
        await send_text(message.bot, chat.id, "Only group admins can register the group.", repo=repo)
        return
    group = await repo.register_chat_group(chat.id, chat.title or "")
    await repo.add_admin(group["id"], tg_user.id)
    logger.info("user %s registered tg chat %s as %s", tg_user.id, chat.id, group["id"])
    me = await message.bot.me()
    await send_text(
        message.bot,
        chat.id,
        "✅ Group registered. Manage it from a private chat with me.",
        reply_markup=build_open_dm_keyboard(me.username),
        repo=repo,
    )


@router.message(Command("join"))
async def join_command(message: Message, repo) -> None:
    tg_user = message.from_user
    if not tg_user:
        return
    group = await repo.get_chat_group_by_tg_chat_id(message.chat.id)
    if not group:
        await send_text(
            message.bot,
            message.chat.id,
            "This group is not registered yet. An admin can send /register.",
            repo=repo,
        )
        return
    await repo.join_chat_group(group["id"], tg_user.id, tg_user.full_name or "")
    await send_text(
        message.bot,
        message.chat.id,
        f"👋 {tg_user.full_name}, you joined the game in this group.",
        repo=repo,
    )


@router.my_chat_member()
async def bot_membership_changed(event: ChatMemberUpdated) -> None:
    if event.chat.type not in {"group", "supergroup"}:
        return
    if event.new_chat_member.status not in {"member", "administrator"}:
        return
    if event.old_chat_member.status in {"member", "administrator"}:
        return
    try:
        await event.bot.send_message(
            event.chat.id,
            "🎲 Hi! A group admin can send /register to set up the dice game here.",
        )
    except TelegramAPIError as exc:
        logger.warning("greeting to chat %s failed: %s", event.chat.id, exc)
