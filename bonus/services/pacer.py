"""Jittered delay inserted before each remote call."""
import asyncio
import random

_JITTER_MS = 500
_MAX_DELAY_MS = 2000


class Pacer:
    """
    wait(base_ms) sleeps min(base_ms + U(0, 500), 2000) ms when enabled.
    `sleep` is injectable so tests can record delays instead of waiting.
    """

    def __init__(self, enabled: bool = True, sleep=asyncio.sleep, rng: random.Random | None = None):
        self.enabled = enabled
        self._sleep = sleep
        self._rng = rng or random.Random()

    def delay_ms(self, base_ms: int) -> int:
        return min(base_ms + self._rng.randint(0, _JITTER_MS), _MAX_DELAY_MS)

    async def wait(self, base_ms: int = 500) -> None:
        if not self.enabled:
            return
        await self._sleep(self.delay_ms(base_ms) / 1000.0)
