from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import CommandStart
from aiogram.types import CallbackQuery, Message

from dicebot.keyboards import build_open_dm_keyboard
from dicebot.menus import MAIN_MENU, MenuAssembler, is_menu_route
from dicebot.messages import edit_screen, send_screen
from dicebot.session_input import reset_session_input

router = Router()


@router.message(CommandStart(), F.chat.type == "private")
async def start_command(message: Message, assembler: MenuAssembler, repo) -> None:
    if not message.from_user:
        return
    user_id = message.from_user.id
    await reset_session_input(assembler, user_id)
    screen = await assembler.render(MAIN_MENU, user_id)
    await send_screen(message, screen, repo=repo)


@router.message(CommandStart())
async def start_in_group(message: Message) -> None:
    me = await message.bot.me()
    await message.answer(
        "Group settings live in a private chat with me.",
        reply_markup=build_open_dm_keyboard(me.username),
    )


@router.callback_query(F.data.func(is_menu_route))
async def menu_callback(query: CallbackQuery, assembler: MenuAssembler, repo) -> None:
    message = query.message
    if not message or not query.data:
        await query.answer()
        return
    if message.chat.type != "private":
        await query.answer("Open a private chat with the bot to manage groups.", show_alert=True)
        return
    try:
        screen = await assembler.render(query.data, query.from_user.id)
        await edit_screen(query.bot, message.chat.id, message.message_id, screen, repo=repo)
    finally:
        await query.answer()
