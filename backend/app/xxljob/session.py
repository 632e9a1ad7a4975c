from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class SchedulerSession:
    """Process-wide holder of the scheduler login cookie.

    Every client request reads the current cookie; ``refresh`` replaces it
    under a lock. Each refresh bumps ``generation`` so a caller that saw a
    rejected cookie can tell whether another task already replaced it and
    skip a second login.
    """

    def __init__(self) -> None:
        self._cookie: str | None = None
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def cookie(self) -> str | None:
        return self._cookie

    @property
    def generation(self) -> int:
        return self._generation

    async def refresh(
        self,
        login: Callable[[], Awaitable[str]],
        *,
        stale_generation: int | None = None,
    ) -> str:
        async with self._lock:
            if (
                stale_generation is not None
                and self._cookie is not None
                and self._generation != stale_generation
            ):
                return self._cookie
            cookie = await login()
            self._cookie = cookie
            self._generation += 1
            logger.debug("Scheduler session refreshed generation=%s", self._generation)
            return cookie

    async def ensure(self, login: Callable[[], Awaitable[str]]) -> str:
        if self._cookie is not None:
            return self._cookie
        return await self.refresh(login, stale_generation=self._generation)

    def invalidate(self) -> None:
        self._cookie = None
