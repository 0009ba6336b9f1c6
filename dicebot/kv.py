from __future__ import annotations

import time
from typing import Callable, Dict, Optional, Protocol, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError

from dicebot.errors import CollaboratorUnavailable


class KeyValueBackend(Protocol):
    async def set(self, key: str, value: str, ttl: int) -> None: ...

    async def get(self, key: str) -> Optional[str]: ...


class RedisBackend:
    """SET key value EX ttl / GET key over a shared redis instance."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisBackend":
        return cls(Redis.from_url(url, decode_responses=True))

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._client.set(key, value, ex=int(ttl))
        except RedisError as exc:
            raise CollaboratorUnavailable(f"redis SET {key} failed: {exc}") from exc

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._client.get(key)
        except RedisError as exc:
            raise CollaboratorUnavailable(f"redis GET {key} failed: {exc}") from exc
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        return value

    async def close(self) -> None:
        await self._client.aclose()


class MemoryBackend:
    """Process-local fallback used when REDIS_URL is not configured."""

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.monotonic
        self._items: Dict[str, Tuple[str, float]] = {}

    def _purge(self, now: float) -> None:
        expired = [key for key, (_, deadline) in self._items.items() if deadline <= now]
        for key in expired:
            self._items.pop(key, None)

    async def set(self, key: str, value: str, ttl: int) -> None:
        now = self._clock()
        self._purge(now)
        self._items[key] = (value, now + int(ttl))

    async def get(self, key: str) -> Optional[str]:
        now = self._clock()
        item = self._items.get(key)
        if item is None:
            return None
        value, deadline = item
        if deadline <= now:
            self._items.pop(key, None)
            return None
        return value

    async def close(self) -> None:
        self._items.clear()
