# app/infra/rate_limit.py
import asyncio
import time


class RateLimiter:
    """Enforce a minimum gap between consecutive calls (shared across coroutines)."""

    def __init__(self, min_interval: float):
        self.interval = max(float(min_interval), 0.0)
        self._last = 0.0
        self._lock = asyncio.Lock()

    async def wait(self):
        if self.interval <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            sleep = self._last + self.interval - now
            if sleep > 0:
                await asyncio.sleep(sleep)
            self._last = time.monotonic()
