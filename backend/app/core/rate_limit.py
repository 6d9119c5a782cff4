import asyncio
from typing import Awaitable, Callable, Optional

class RequestPacer:
    """Fixed politeness delay between sequential requests to the source site."""
    def __init__(self, delay_seconds: float, sleep: Optional[Callable[[float], Awaitable[None]]] = None):
        self.delay = max(0.0, delay_seconds)
        self._sleep = sleep or asyncio.sleep
        self.waits = 0

    async def wait(self):
        self.waits += 1
        if self.delay:
            await self._sleep(self.delay)
