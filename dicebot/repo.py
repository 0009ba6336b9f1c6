from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import asyncpg

from config import (
    DEFAULT_GAME_DRAW_CYCLE,
    DEFAULT_GAMEPLAY_TYPE,
    DEFAULT_SIMPLE_ODDS,
    DEFAULT_TRIPLET_ODDS,
)
from dicebot.enums import CHAT_GROUP_NORMAL, GAMEPLAY_OFF, QUICK_THERE
from dicebot.ids import IdGenerator

logger = logging.getLogger(__name__)


def _row_to_dict(row: Optional[asyncpg.Record]) -> Dict[str, Any]:
    return dict(row) if row else {}


class ChatGroupRepo:
    """Postgres access for groups, their admins, members and game config."""

    def __init__(self, pool: asyncpg.Pool, ids: IdGenerator) -> None:
        self._pool = pool
        self._ids = ids

    async def get_chat_group(self, chat_group_id: str) -> Dict[str, Any]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM chat_group WHERE id = $1", chat_group_id)
        return _row_to_dict(row)

    async def get_chat_group_by_tg_chat_id(self, tg_chat_id: int) -> Dict[str, Any]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM chat_group WHERE tg_chat_group_id = $1", int(tg_chat_id)
            )
        return _row_to_dict(row)

    async def list_chat_groups(self, chat_group_ids: Sequence[str]) -> List[Dict[str, Any]]:
        if not chat_group_ids:
            return []
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT * FROM chat_group WHERE id = ANY($1::text[])",
                list(chat_group_ids),
            )
        return [dict(row) for row in rows]

    async def list_admin_links(self, admin_tg_user_id: int) -> List[Dict[str, Any]]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM chat_group_admin
                WHERE admin_tg_user_id = $1
                ORDER BY created_at, id
                """,
                int(admin_tg_user_id),
            )
        return [dict(row) for row in rows]

    async def get_admin_link(self, chat_group_id: str, admin_tg_user_id: int) -> Dict[str, Any]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT * FROM chat_group_admin
                WHERE chat_group_id = $1 AND admin_tg_user_id = $2
                """,
                chat_group_id,
                int(admin_tg_user_id),
            )
        return _row_to_dict(row)

    async def get_quick_there_config(self, chat_group_id: str) -> Dict[str, Any]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM quick_there_config WHERE chat_group_id = $1", chat_group_id
            )
        return _row_to_dict(row)

    async def list_memberships(self, tg_user_id: int) -> List[Dict[str, Any]]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM chat_group_user
                WHERE tg_user_id = $1
                ORDER BY created_at, id
                """,
                int(tg_user_id),
            )
        return [dict(row) for row in rows]

    async def get_member(self, chat_group_id: str, tg_user_id: int) -> Dict[str, Any]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT * FROM chat_group_user
                WHERE chat_group_id = $1 AND tg_user_id = $2
                """,
                chat_group_id,
                int(tg_user_id),
            )
        return _row_to_dict(row)

    async def register_chat_group(self, tg_chat_id: int, title: str) -> Dict[str, Any]:
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    INSERT INTO chat_group (
                        id, tg_chat_group_id, tg_chat_group_title,
                        gameplay_type, gameplay_status, game_draw_cycle, chat_group_status
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7)
                    ON CONFLICT (tg_chat_group_id)
                    DO UPDATE SET tg_chat_group_title = EXCLUDED.tg_chat_group_title,
                                  chat_group_status = EXCLUDED.chat_group_status,
                                  updated_at = now()
                    RETURNING *
                    """,
                    self._ids.next_id(),
                    int(tg_chat_id),
                    title or "",
                    DEFAULT_GAMEPLAY_TYPE,
                    GAMEPLAY_OFF.value,
                    int(DEFAULT_GAME_DRAW_CYCLE),
                    CHAT_GROUP_NORMAL,
                )
                if row["gameplay_type"] == QUICK_THERE.value:
                    await self._ensure_quick_there_config(conn, row["id"])
        logger.info("chat group %s registered for tg chat %s", row["id"], tg_chat_id)
        return dict(row)

    async def add_admin(self, chat_group_id: str, admin_tg_user_id: int) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO chat_group_admin (id, chat_group_id, admin_tg_user_id)
                VALUES ($1, $2, $3)
                ON CONFLICT (chat_group_id, admin_tg_user_id) DO NOTHING
                """,
                self._ids.next_id(),
                chat_group_id,
                int(admin_tg_user_id),
            )

    async def join_chat_group(
        self, chat_group_id: str, tg_user_id: int, username: str
    ) -> Dict[str, Any]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO chat_group_user (id, chat_group_id, tg_user_id, username)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (chat_group_id, tg_user_id)
                DO UPDATE SET username = EXCLUDED.username
                RETURNING *
                """,
                self._ids.next_id(),
                chat_group_id,
                int(tg_user_id),
                username or "",
            )
        return dict(row)

    async def _ensure_quick_there_config(self, conn: asyncpg.Connection, chat_group_id: str) -> None:
        await conn.execute(
            """
            INSERT INTO quick_there_config (chat_group_id, simple_odds, triplet_odds)
            VALUES ($1, $2, $3)
            ON CONFLICT (chat_group_id) DO NOTHING
            """,
            chat_group_id,
            float(DEFAULT_SIMPLE_ODDS),
            float(DEFAULT_TRIPLET_ODDS),
        )

    async def set_gameplay_type(self, chat_group_id: str, gameplay_type: str) -> None:
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    """
                    UPDATE chat_group SET gameplay_type = $2, updated_at = now()
                    WHERE id = $1
                    """,
                    chat_group_id,
                    gameplay_type,
                )
                if gameplay_type == QUICK_THERE.value:
                    await self._ensure_quick_there_config(conn, chat_group_id)

    async def set_gameplay_status(self, chat_group_id: str, gameplay_status: str) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE chat_group SET gameplay_status = $2, updated_at = now()
                WHERE id = $1
                """,
                chat_group_id,
                gameplay_status,
            )

    async def set_game_draw_cycle(self, chat_group_id: str, minutes: int) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE chat_group SET game_draw_cycle = $2, updated_at = now()
                WHERE id = $1
                """,
                chat_group_id,
                int(minutes),
            )

    async def set_odds(self, chat_group_id: str, field: str, odds: float) -> None:
        if field not in {"simple_odds", "triplet_odds"}:
            raise ValueError(f"unknown odds field {field!r}")
        async with self._pool.acquire() as conn:
            await conn.execute(
                f"""
                UPDATE quick_there_config SET {field} = $2, updated_at = now()
                WHERE chat_group_id = $1
                """,
                chat_group_id,
                float(odds),
            )

    async def update_chat_group_status(self, tg_chat_id: int, status: str) -> bool:
        async with self._pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE chat_group SET chat_group_status = $2, updated_at = now()
                WHERE tg_chat_group_id = $1
                """,
                int(tg_chat_id),
                status,
            )
        return result.endswith(" 1")
