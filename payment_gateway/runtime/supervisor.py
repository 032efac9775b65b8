from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable


class LoopSupervisor:
    """Restarts a crashed long-lived loop with bounded backoff; a clean return ends supervision."""

    def __init__(
        self,
        *,
        base_delay: float = 2.0,
        max_delay: float = 20.0,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.sleep = sleep or asyncio.sleep
        self.restarts = 0

    async def run_forever(self, name: str, fn: Callable[[], Awaitable[None]], log) -> None:
        delay = self.base_delay
        while True:
            try:
                await fn()
                log.info("loop %s exited cleanly", name)
                return
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.restarts += 1
                log.exception("loop %s crashed (restart %s in %.1fs): %s", name, self.restarts, delay, exc)
            await self.sleep(delay)
            delay = min(self.max_delay, max(self.base_delay, delay * 1.5))
