"""Bound on concurrent provider calls.

Example:
    limiter = Limiter(max_concurrent=16)

    async with limiter:
        host = await provider.create_host(request)
"""

import asyncio
from types import TracebackType

from loguru import logger

log = logger.bind(component="throttle")


class Limiter:
    """Caps how many provider calls are in flight at once.

    One Limiter is shared by every caller of a provider, so the number of
    concurrent calls stays bounded whatever the fan-out width.

    Args:
        max_concurrent: Maximum simultaneous calls. None = unlimited.
    """

    def __init__(self, max_concurrent: int | None = None) -> None:
        if max_concurrent is not None and max_concurrent < 1:
            raise ValueError(f"max_concurrent must be positive, got {max_concurrent}")
        self._max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def __aenter__(self) -> "Limiter":
        if self._semaphore is not None:
            if self._semaphore.locked():
                log.trace("{n} calls in flight, waiting for a slot", n=self._in_flight)
            await self._semaphore.acquire()
        self._in_flight += 1
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._in_flight -= 1
        if self._semaphore is not None:
            self._semaphore.release()

    def __repr__(self) -> str:
        return f"Limiter(max_concurrent={self._max_concurrent}, in_flight={self._in_flight})"
