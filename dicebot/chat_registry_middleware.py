from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware

from dicebot.enums import CHAT_GROUP_KICKED, CHAT_GROUP_LEFT, CHAT_GROUP_NORMAL

logger = logging.getLogger(__name__)

REMOVED_STATUSES = {"left": CHAT_GROUP_LEFT, "kicked": CHAT_GROUP_KICKED}


class ChatRegistryMiddleware(BaseMiddleware):
    """Keeps chat_group.chat_group_status in step with the bot's membership."""

    async def __call__(
        self,
        handler: Callable[[Any, Dict[str, Any]], Awaitable[Any]],
        event: Any,
        data: Dict[str, Any],
    ) -> Any:
        await self._track_chat(event, data)
        return await handler(event, data)

    async def _track_chat(self, event: Any, data: Dict[str, Any]) -> None:
        chat = getattr(event, "chat", None)
        if not chat:
            return
        chat_type = str(getattr(chat, "type", "") or "")
        if not chat_type or chat_type == "private":
            return
        repo = data.get("repo")
        if repo is None:
            return
        new_member = getattr(event, "new_chat_member", None)
        if new_member is None:
            return
        status = str(getattr(new_member, "status", "") or "")
        group_status = REMOVED_STATUSES.get(status, CHAT_GROUP_NORMAL)
        try:
            updated = await repo.update_chat_group_status(int(chat.id), group_status)
        except Exception:
            logger.exception("failed to update status of chat %s", chat.id)
            return
        if updated:
            logger.info("chat %s status is now %s", chat.id, group_status)
