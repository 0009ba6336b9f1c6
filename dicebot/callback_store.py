from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from config import CALLBACK_DATA_TTL_SEC, PRIVATE_CHAT_CACHE_TTL_SEC
from dicebot.errors import DecodingError, EncodingError, TokenNotFound
from dicebot.ids import IdGenerator
from dicebot.kv import KeyValueBackend

BUTTON_CALLBACK_DATA_KEY = "BUTTON_CALLBACK_DATA:{}"
PRIVATE_CHAT_CACHE_KEY = "BOT_PRIVATE_CHAT_CACHE:TG_USER_ID:{}"

STATE_IDLE = "idle"
STATE_GAME_DRAW_CYCLE = "game_draw_cycle"
STATE_SIMPLE_ODDS = "simple_odds"
STATE_TRIPLET_ODDS = "triplet_odds"
STATE_QUERY_CHAT_GROUP_USER = "query_chat_group_user"

SESSION_STATES = {
    STATE_IDLE,
    STATE_GAME_DRAW_CYCLE,
    STATE_SIMPLE_ODDS,
    STATE_TRIPLET_ODDS,
    STATE_QUERY_CHAT_GROUP_USER,
}

menu_logger = logging.getLogger("menu")


def _encode_bag(bag: Dict[str, str]) -> str:
    if not isinstance(bag, dict):
        raise EncodingError(f"parameter bag must be a dict, got {type(bag).__name__}")
    for key, value in bag.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise EncodingError(f"parameter bag must map str to str: {bag!r}")
    try:
        return json.dumps(bag, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise EncodingError(str(exc)) from exc


def _decode_bag(raw: str) -> Dict[str, str]:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise DecodingError(f"stored callback data is not JSON: {exc}") from exc
    if not isinstance(data, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in data.items()
    ):
        raise DecodingError(f"stored callback data is not a string map: {raw!r}")
    return data


class TokenStore:
    """Write-once map from short callback tokens to parameter bags."""

    def __init__(
        self,
        backend: KeyValueBackend,
        ids: IdGenerator,
        *,
        ttl: int = CALLBACK_DATA_TTL_SEC,
    ) -> None:
        self._backend = backend
        self._ids = ids
        self._ttl = int(ttl)

    async def put(self, bag: Dict[str, str]) -> str:
        payload = _encode_bag(bag)
        token = self._ids.next_id()
        await self._backend.set(BUTTON_CALLBACK_DATA_KEY.format(token), payload, self._ttl)
        return token

    async def resolve(self, token: str) -> Dict[str, str]:
        raw = await self._backend.get(BUTTON_CALLBACK_DATA_KEY.format(token))
        if raw is None:
            menu_logger.info("callback token %s not found or expired", token)
            raise TokenNotFound(f"callback token {token} not found")
        return _decode_bag(raw)


@dataclass(frozen=True)
class PrivateChatSession:
    chat_group_id: str
    state: str

    def to_json(self) -> str:
        return json.dumps({"chatGroupId": self.chat_group_id, "state": self.state})

    @classmethod
    def from_json(cls, raw: str) -> "PrivateChatSession":
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise DecodingError(f"private chat cache is not JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise DecodingError(f"private chat cache is not an object: {raw!r}")
        state = data.get("state")
        if state not in SESSION_STATES:
            raise DecodingError(f"unknown private chat state {state!r}")
        return cls(str(data.get("chatGroupId") or ""), state)


class SessionCache:
    """One overwrite-on-save session per Telegram user."""

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        ttl: int = PRIVATE_CHAT_CACHE_TTL_SEC,
    ) -> None:
        self._backend = backend
        self._ttl = int(ttl)

    async def save(self, user_id: int, session: PrivateChatSession) -> None:
        await self._backend.set(
            PRIVATE_CHAT_CACHE_KEY.format(int(user_id)), session.to_json(), self._ttl
        )

    async def load(self, user_id: int) -> Optional[PrivateChatSession]:
        raw = await self._backend.get(PRIVATE_CHAT_CACHE_KEY.format(int(user_id)))
        if raw is None:
            return None
        return PrivateChatSession.from_json(raw)
