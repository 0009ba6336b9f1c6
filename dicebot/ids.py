from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from dicebot.errors import IDGenerationError

# 2023-01-01T00:00:00Z in milliseconds.
EPOCH_MS = 1672531200000

WORKER_BITS = 10
SEQUENCE_BITS = 12
MAX_WORKER_ID = (1 << WORKER_BITS) - 1
SEQUENCE_MASK = (1 << SEQUENCE_BITS) - 1


def _now_ms() -> int:
    return int(time.time() * 1000)


class IdGenerator:
    """Snowflake-style ids: timestamp | worker | sequence, monotonic per process."""

    def __init__(self, worker_id: int, clock: Optional[Callable[[], int]] = None) -> None:
        if not 0 <= int(worker_id) <= MAX_WORKER_ID:
            raise ValueError(f"worker_id must be in [0, {MAX_WORKER_ID}]")
        self._worker_id = int(worker_id)
        self._clock = clock or _now_ms
        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    def next_int(self) -> int:
        with self._lock:
            now = self._clock()
            if now < self._last_ms:
                raise IDGenerationError(
                    f"clock moved backwards by {self._last_ms - now} ms"
                )
            if now == self._last_ms:
                self._sequence = (self._sequence + 1) & SEQUENCE_MASK
                if self._sequence == 0:
                    while now <= self._last_ms:
                        now = self._clock()
            else:
                self._sequence = 0
            self._last_ms = now
            elapsed = now - EPOCH_MS
            if elapsed < 0:
                raise IDGenerationError("clock is before id epoch")
            return (
                (elapsed << (WORKER_BITS + SEQUENCE_BITS))
                | (self._worker_id << SEQUENCE_BITS)
                | self._sequence
            )

    def next_id(self) -> str:
        return str(self.next_int())
