from __future__ import annotations

import asyncpg

from config import DATABASE_URL


async def create_pool() -> asyncpg.Pool:
    if not DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not set")
    return await asyncpg.create_pool(dsn=DATABASE_URL, min_size=1, max_size=10)


async def init_db(pool: asyncpg.Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS chat_group (
                id TEXT PRIMARY KEY,
                tg_chat_group_id BIGINT NOT NULL UNIQUE,
                tg_chat_group_title TEXT NOT NULL DEFAULT '',
                gameplay_type TEXT NOT NULL,
                gameplay_status TEXT NOT NULL DEFAULT 'off',
                game_draw_cycle INT NOT NULL DEFAULT 1,
                chat_group_status TEXT NOT NULL DEFAULT 'normal',
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS chat_group_admin (
                id TEXT PRIMARY KEY,
                chat_group_id TEXT NOT NULL REFERENCES chat_group(id) ON DELETE CASCADE,
                admin_tg_user_id BIGINT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                UNIQUE (chat_group_id, admin_tg_user_id)
            );
            """
        )
        await conn.execute(
            """
            CREATE INDEX IF NOT EXISTS chat_group_admin_user_idx
            ON chat_group_admin(admin_tg_user_id);
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS chat_group_user (
                id TEXT PRIMARY KEY,
                chat_group_id TEXT NOT NULL REFERENCES chat_group(id) ON DELETE CASCADE,
                tg_user_id BIGINT NOT NULL,
                username TEXT NOT NULL DEFAULT '',
                balance BIGINT NOT NULL DEFAULT 0,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                UNIQUE (chat_group_id, tg_user_id)
            );
            """
        )
        await conn.execute(
            """
            CREATE INDEX IF NOT EXISTS chat_group_user_user_idx
            ON chat_group_user(tg_user_id);
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS quick_there_config (
                chat_group_id TEXT PRIMARY KEY REFERENCES chat_group(id) ON DELETE CASCADE,
                simple_odds DOUBLE PRECISION NOT NULL,
                triplet_odds DOUBLE PRECISION NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            """
        )
