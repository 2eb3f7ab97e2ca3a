from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: int


class FixedWindowRateLimiter:
    """
    In-process fixed-window counter.

    Windows are aligned to multiples of ``window_seconds``; a key gets
    ``limit`` hits per window.
    """

    def __init__(self, limit: int, window_seconds: int):
        self.limit = limit
        self.window_seconds = max(1, int(window_seconds))
        self._counts: Dict[Tuple[str, int], int] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, now: Optional[float] = None) -> RateLimitResult:
        now = time.time() if now is None else now
        slot = int(math.floor(now / self.window_seconds))
        retry_after = max(1, int((slot + 1) * self.window_seconds - now))

        if self.limit <= 0:
            return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)

        with self._lock:
            self._evict(slot)
            count = self._counts.get((key, slot), 0) + 1
            self._counts[(key, slot)] = count

        return RateLimitResult(
            allowed=count <= self.limit,
            remaining=max(0, self.limit - count),
            retry_after=retry_after,
        )

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()

    def _evict(self, current_slot: int) -> None:
        stale = [k for k in self._counts if k[1] < current_slot]
        for k in stale:
            del self._counts[k]
