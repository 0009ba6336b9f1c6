"""Tests for the private-chat handlers' use of the menu assembler."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiogram.exceptions import TelegramBadRequest

from dicebot.callback_store import STATE_GAME_DRAW_CYCLE, STATE_IDLE, PrivateChatSession
from dicebot.handlers.core import menu_callback, start_command

ADMIN = 100


def make_message(chat_type: str = "private") -> MagicMock:
    message = MagicMock()
    message.chat.type = chat_type
    message.chat.id = ADMIN
    message.message_id = 7
    message.from_user.id = ADMIN
    return message


class TestStartCommand:
    @pytest.mark.asyncio
    async def test_start_clears_pending_input(self, assembler, repo, sessions) -> None:
        await sessions.save(ADMIN, PrivateChatSession("g", STATE_GAME_DRAW_CYCLE))
        with patch("dicebot.handlers.core.send_screen", new=AsyncMock()) as send:
            await start_command(make_message(), assembler, repo)

        assert (await sessions.load(ADMIN)).state == STATE_IDLE
        screen = send.call_args.args[1]
        assert [b.route for row in screen.rows for b in row] == ["joined_group", "admin_group"]


class TestMenuCallback:
    @pytest.mark.asyncio
    async def test_query_answered_when_edit_fails(self, assembler, repo) -> None:
        query = MagicMock()
        query.message = make_message()
        query.data = "main_menu"
        query.from_user.id = ADMIN
        query.answer = AsyncMock()
        failure = TelegramBadRequest(MagicMock(), "Bad Request: message can't be edited")
        with patch("dicebot.handlers.core.edit_screen", new=AsyncMock(side_effect=failure)):
            with pytest.raises(TelegramBadRequest):
                await menu_callback(query, assembler, repo)
        query.answer.assert_awaited_once_with()

    @pytest.mark.asyncio
    async def test_group_chat_gets_alert(self, assembler, repo) -> None:
        query = MagicMock()
        query.message = make_message("supergroup")
        query.data = "main_menu"
        query.answer = AsyncMock()
        await menu_callback(query, assembler, repo)
        query.answer.assert_awaited_once()
        assert query.answer.call_args.kwargs["show_alert"] is True
