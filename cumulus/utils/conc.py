"""Concurrent utilities - fan-out/join primitives for orchestration tasks."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable

from cumulus.core.exceptions import AggregateError


async def gather_all[T](aws: Iterable[Awaitable[T]]) -> list[T | Exception]:
    """Run awaitables concurrently and wait for every one of them.

    Failures never cancel the siblings: each result slot holds either the
    value or the exception raised by that awaitable.

    Example:
        >>> await gather_all([create(1), create(2)])
        [host1, ProviderError('quota exceeded')]
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for r in results:
        # Cancellation of the caller must still propagate
        if isinstance(r, BaseException) and not isinstance(r, Exception):
            raise r
    return list(results)  # type: ignore[arg-type]


def raise_for_errors(results: Iterable[object]) -> None:
    """Raise an AggregateError built from every exception in results."""
    errors = [r for r in results if isinstance(r, Exception)]
    if errors:
        raise AggregateError(errors)


async def fan_out(
    count: int,
    fn: Callable[[int], Awaitable[object]],
) -> None:
    """Launch fn(1) .. fn(count) concurrently and collect all outcomes.

    Every task runs to completion even after the first failure, so partial
    results stay visible to whoever cleans up afterwards.

    Raises:
        AggregateError: If any task failed; its message is every failure
            message joined by newlines.

    Example:
        >>> await fan_out(3, create_master)
    """
    if count <= 0:
        return
    raise_for_errors(await gather_all(fn(i) for i in range(1, count + 1)))


async def status_of(aw: Awaitable[object]) -> Exception | None:
    """Await a one-shot task and turn its outcome into an error status."""
    try:
        await aw
    except Exception as e:
        return e
    return None
