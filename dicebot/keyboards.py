from __future__ import annotations

from typing import Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from dicebot.menus import Screen


def to_markup(screen: Screen) -> Optional[InlineKeyboardMarkup]:
    if not screen.rows:
        return None
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=button.label, callback_data=button.route) for button in row]
            for row in screen.rows
            if row
        ]
    )


def build_open_dm_keyboard(bot_username: Optional[str]) -> Optional[InlineKeyboardMarkup]:
    username = (bot_username or "").lstrip("@")
    if not username:
        return None
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="Open settings", url=f"https://t.me/{username}?start=menu")]
        ]
    )
