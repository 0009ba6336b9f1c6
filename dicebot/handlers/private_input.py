from __future__ import annotations

from aiogram import F, Router
from aiogram.types import Message

from dicebot.menus import MenuAssembler
from dicebot.messages import send_screen
from dicebot.session_input import apply_session_input

router = Router()


@router.message(F.chat.type == "private", F.text, ~F.text.startswith("/"))
async def private_text(message: Message, assembler: MenuAssembler, repo) -> None:
    tg_user = message.from_user
    if not tg_user:
        return
    screen = await assembler.guarded(
        apply_session_input(assembler, tg_user.id, message.text or ""),
        context=f"private input from {tg_user.id}",
    )
    if screen is None:
        await message.answer("Send /start to open the menu.")
        return
    await send_screen(message, screen, repo=repo)
