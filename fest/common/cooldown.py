"""Process-local cooldown map for soft per-user rate limits.

Entries live in memory only: they reset on restart and are not shared
between instances, which is acceptable for convenience features such as the
registration summary email.
"""

import time
from typing import Dict, Hashable, Optional


class Cooldown:
    def __init__(self, seconds: float):
        self.seconds = seconds
        self._last_hit: Dict[Hashable, float] = {}

    def remaining(self, key: Hashable, now: Optional[float] = None) -> float:
        """Seconds left before ``key`` may act again (0 when allowed)."""
        now = time.monotonic() if now is None else now
        last = self._last_hit.get(key)
        if last is None:
            return 0.0
        left = self.seconds - (now - last)
        if left <= 0:
            # Expired, drop it so the map does not grow forever
            del self._last_hit[key]
            return 0.0
        return left

    def hit(self, key: Hashable, now: Optional[float] = None) -> None:
        self._last_hit[key] = time.monotonic() if now is None else now

    def clear(self, key: Optional[Hashable] = None) -> None:
        if key is None:
            self._last_hit.clear()
        else:
            self._last_hit.pop(key, None)
