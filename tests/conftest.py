"""Root conftest — sets env vars BEFORE config is imported.

config.py reads the environment (and an optional .env file) at import
time, so test values must be in place before any dicebot module loads.
"""

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="dicebot-test-")
os.environ["ENV_PATH"] = os.path.join(_TMP, "missing.env")
os.environ["BOT_TOKEN"] = "test:0000000000:AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"
os.environ["LOG_DIR"] = _TMP
os.environ["REDIS_URL"] = ""
os.environ["CALLBACK_DATA_TTL_SEC"] = "3600"
os.environ["PRIVATE_CHAT_CACHE_TTL_SEC"] = "86400"
os.environ["MAX_GAME_DRAW_CYCLE"] = "1440"

from typing import Any, Dict, List, Sequence, Tuple  # noqa: E402

import pytest  # noqa: E402

from dicebot.callback_store import SessionCache, TokenStore  # noqa: E402
from dicebot.ids import IdGenerator  # noqa: E402
from dicebot.kv import MemoryBackend  # noqa: E402
from dicebot.menus import MenuAssembler  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRepo:
    """In-memory stand-in for ChatGroupRepo; records every write."""

    def __init__(self) -> None:
        self.groups: Dict[str, Dict[str, Any]] = {}
        self.admins: List[Tuple[str, int]] = []
        self.members: List[Dict[str, Any]] = []
        self.odds: Dict[str, Dict[str, Any]] = {}
        self.writes: List[Tuple[Any, ...]] = []

    def add_group(
        self,
        chat_group_id: str,
        *,
        title: str = "",
        gameplay_type: str = "quick_there",
        gameplay_status: str = "off",
        game_draw_cycle: int = 1,
        admin: int = 0,
        simple_odds: float = 1.95,
        triplet_odds: float = 30.0,
    ) -> Dict[str, Any]:
        group = {
            "id": chat_group_id,
            "tg_chat_group_id": -100 - len(self.groups),
            "tg_chat_group_title": title or f"Group {chat_group_id}",
            "gameplay_type": gameplay_type,
            "gameplay_status": gameplay_status,
            "game_draw_cycle": game_draw_cycle,
            "chat_group_status": "normal",
        }
        self.groups[chat_group_id] = group
        if gameplay_type == "quick_there":
            self.odds[chat_group_id] = {
                "chat_group_id": chat_group_id,
                "simple_odds": simple_odds,
                "triplet_odds": triplet_odds,
            }
        if admin:
            self.admins.append((chat_group_id, admin))
        return group

    async def get_chat_group(self, chat_group_id: str) -> Dict[str, Any]:
        return dict(self.groups.get(chat_group_id, {}))

    async def list_chat_groups(self, chat_group_ids: Sequence[str]) -> List[Dict[str, Any]]:
        # Deliberately not in request order.
        return [dict(self.groups[gid]) for gid in sorted(chat_group_ids) if gid in self.groups]

    async def list_admin_links(self, admin_tg_user_id: int) -> List[Dict[str, Any]]:
        return [
            {"chat_group_id": gid, "admin_tg_user_id": uid}
            for gid, uid in self.admins
            if uid == admin_tg_user_id
        ]

    async def get_admin_link(self, chat_group_id: str, admin_tg_user_id: int) -> Dict[str, Any]:
        if (chat_group_id, admin_tg_user_id) in self.admins:
            return {"chat_group_id": chat_group_id, "admin_tg_user_id": admin_tg_user_id}
        return {}

    async def get_quick_there_config(self, chat_group_id: str) -> Dict[str, Any]:
        return dict(self.odds.get(chat_group_id, {}))

    async def list_memberships(self, tg_user_id: int) -> List[Dict[str, Any]]:
        return [dict(item) for item in self.members if item["tg_user_id"] == tg_user_id]

    async def get_member(self, chat_group_id: str, tg_user_id: int) -> Dict[str, Any]:
        for item in self.members:
            if item["chat_group_id"] == chat_group_id and item["tg_user_id"] == tg_user_id:
                return dict(item)
        return {}

    async def set_gameplay_type(self, chat_group_id: str, gameplay_type: str) -> None:
        self.writes.append(("set_gameplay_type", chat_group_id, gameplay_type))
        self.groups[chat_group_id]["gameplay_type"] = gameplay_type
        if gameplay_type == "quick_there":
            self.odds.setdefault(
                chat_group_id,
                {"chat_group_id": chat_group_id, "simple_odds": 1.95, "triplet_odds": 30.0},
            )

    async def set_gameplay_status(self, chat_group_id: str, gameplay_status: str) -> None:
        self.writes.append(("set_gameplay_status", chat_group_id, gameplay_status))
        self.groups[chat_group_id]["gameplay_status"] = gameplay_status

    async def set_game_draw_cycle(self, chat_group_id: str, minutes: int) -> None:
        self.writes.append(("set_game_draw_cycle", chat_group_id, minutes))
        self.groups[chat_group_id]["game_draw_cycle"] = minutes

    async def set_odds(self, chat_group_id: str, field: str, odds: float) -> None:
        self.writes.append(("set_odds", chat_group_id, field, odds))
        self.odds[chat_group_id][field] = odds

    async def update_chat_group_status(self, tg_chat_id: int, status: str) -> bool:
        self.writes.append(("update_chat_group_status", tg_chat_id, status))
        return True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend(clock: FakeClock) -> MemoryBackend:
    return MemoryBackend(clock=clock)


@pytest.fixture
def ids() -> IdGenerator:
    return IdGenerator(1)


@pytest.fixture
def tokens(backend: MemoryBackend, ids: IdGenerator) -> TokenStore:
    return TokenStore(backend, ids, ttl=3600)


@pytest.fixture
def sessions(backend: MemoryBackend) -> SessionCache:
    return SessionCache(backend, ttl=86400)


@pytest.fixture
def repo() -> FakeRepo:
    return FakeRepo()


@pytest.fixture
def assembler(tokens: TokenStore, sessions: SessionCache, repo: FakeRepo) -> MenuAssembler:
    return MenuAssembler(tokens, sessions, repo)


def token_keys(backend: MemoryBackend) -> List[str]:
    return [key for key in backend._items if key.startswith("BUTTON_CALLBACK_DATA:")]
