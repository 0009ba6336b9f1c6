from __future__ import annotations

import logging
import math
from typing import Optional

from config import MAX_GAME_DRAW_CYCLE
from dicebot.callback_store import (
    STATE_GAME_DRAW_CYCLE,
    STATE_IDLE,
    STATE_QUERY_CHAT_GROUP_USER,
    STATE_SIMPLE_ODDS,
    STATE_TRIPLET_ODDS,
    PrivateChatSession,
)
from dicebot.enums import get_gameplay_type
from dicebot.errors import ConfigNotFound, InvalidInput, Unauthorized
from dicebot.menus import (
    CHAT_GROUP_CONFIG,
    MAIN_MENU,
    MenuAssembler,
    MenuContext,
    Screen,
    back_row,
)
from dicebot.params import GroupRef

menu_logger = logging.getLogger("menu")

MAX_ODDS = 1000.0
CANCEL_WORDS = {"cancel", "stop", "отмена"}


def parse_draw_cycle(text: str) -> int:
    try:
        minutes = int(str(text).strip())
    except (TypeError, ValueError):
        raise InvalidInput(
            f"draw cycle {text!r} is not an integer",
            user_message=f"✏️ Send a whole number of minutes (1-{MAX_GAME_DRAW_CYCLE}).",
        )
    if not 1 <= minutes <= MAX_GAME_DRAW_CYCLE:
        raise InvalidInput(
            f"draw cycle {minutes} out of range",
            user_message=f"✏️ The draw cycle must be between 1 and {MAX_GAME_DRAW_CYCLE} minutes.",
        )
    return minutes


def parse_odds(text: str) -> float:
    try:
        odds = float(str(text).strip().replace(",", "."))
    except (TypeError, ValueError):
        raise InvalidInput(f"odds {text!r} is not a number", user_message="✏️ Send a number, e.g. 1.95")
    if not math.isfinite(odds) or odds <= 0 or odds > MAX_ODDS:
        raise InvalidInput(
            f"odds {odds} out of range",
            user_message=f"✏️ Odds must be above 0 and at most {MAX_ODDS:g}.",
        )
    return odds


def parse_tg_user_id(text: str) -> int:
    try:
        user_id = int(str(text).strip())
    except (TypeError, ValueError):
        raise InvalidInput(f"user id {text!r} is not an integer", user_message="✏️ Send a numeric user id.")
    if user_id <= 0:
        raise InvalidInput(f"user id {user_id} is not positive", user_message="✏️ Send a numeric user id.")
    return user_id


async def _saved(assembler: MenuAssembler, user_id: int, chat_group_id: str) -> Screen:
    await assembler.sessions.save(user_id, PrivateChatSession(chat_group_id, STATE_IDLE))
    result = await assembler.group_config(chat_group_id, user_id)
    result.text = f"✅ Saved.\n{result.text}"
    return result


async def reset_session_input(assembler: MenuAssembler, user_id: int) -> bool:
    """Drop any pending edit; True when one was pending."""
    session = await assembler.sessions.load(user_id)
    if session is None or session.state == STATE_IDLE:
        return False
    await assembler.sessions.save(user_id, PrivateChatSession(session.chat_group_id, STATE_IDLE))
    menu_logger.info("user %s left input state %s", user_id, session.state)
    return True


async def apply_session_input(
    assembler: MenuAssembler, user_id: int, text: str
) -> Optional[Screen]:
    """Apply a private-chat reply to the pending edit; None when nothing is pending."""
    session = await assembler.sessions.load(user_id)
    if session is None or session.state == STATE_IDLE:
        return None
    if str(text).strip().lower() in CANCEL_WORDS:
        await reset_session_input(assembler, user_id)
        return Screen("❎ Input cancelled.", [back_row(MAIN_MENU, "🏠 Main menu")])
    try:
        return await _apply(assembler, user_id, session, text)
    except (Unauthorized, ConfigNotFound):
        # the pending edit can never succeed now
        await reset_session_input(assembler, user_id)
        raise


async def _apply(
    assembler: MenuAssembler, user_id: int, session: PrivateChatSession, text: str
) -> Optional[Screen]:
    chat_group_id = session.chat_group_id
    await assembler.require_admin(chat_group_id, user_id)
    repo = assembler.repo

    if session.state == STATE_GAME_DRAW_CYCLE:
        minutes = parse_draw_cycle(text)
        await repo.set_game_draw_cycle(chat_group_id, minutes)
        menu_logger.info("user %s set draw cycle of %s to %s", user_id, chat_group_id, minutes)
        return await _saved(assembler, user_id, chat_group_id)

    if session.state in (STATE_SIMPLE_ODDS, STATE_TRIPLET_ODDS):
        group = await repo.get_chat_group(chat_group_id)
        gameplay = get_gameplay_type(group.get("gameplay_type")) if group else None
        if gameplay is None or not gameplay.has_odds:
            raise ConfigNotFound(f"chat group {chat_group_id} has no odds to edit")
        odds = parse_odds(text)
        await repo.set_odds(chat_group_id, session.state, odds)
        menu_logger.info(
            "user %s set %s of %s to %s", user_id, session.state, chat_group_id, odds
        )
        return await _saved(assembler, user_id, chat_group_id)

    if session.state == STATE_QUERY_CHAT_GROUP_USER:
        tg_user_id = parse_tg_user_id(text)
        member = await repo.get_member(chat_group_id, tg_user_id)
        ctx = MenuContext(assembler, user_id, GroupRef(chat_group_id))
        back = back_row(await ctx.route(CHAT_GROUP_CONFIG, GroupRef(chat_group_id)))
        if not member:
            return Screen(f"🔍 User {tg_user_id} has not joined this group.", [back])
        lines = [
            f"👤 {member.get('username') or tg_user_id} ({tg_user_id})",
            f"💰 Balance: {member.get('balance', 0)}",
            "Send another user id to keep looking, or \"cancel\" to stop.",
        ]
        return Screen("\n".join(lines), [back])

    return None
