"""Polling utilities for provider resources."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_delay,
    wait_fixed,
)

from cumulus.core.exceptions import ProviderError


class ResourcePendingError(Exception):
    """Resource not yet in target state - retry."""


async def wait_for_ready[T](
    poll_fn: Callable[[], Awaitable[T]],
    ready_check: Callable[[T], bool],
    *,
    terminal_check: Callable[[T], bool] | None = None,
    timeout: float = 300.0,
    interval: float = 5.0,
    description: str = "resource",
) -> T:
    """Poll until poll_fn returns something that passes ready_check.

    Args:
        poll_fn: Async function returning the current resource state.
        ready_check: Returns True when the resource is ready.
        terminal_check: Returns True if the resource reached a terminal
            failure state; polling stops immediately.
        timeout: Maximum time to wait in seconds.
        interval: Time between polls in seconds.
        description: Description for error messages.

    Raises:
        ProviderError: On timeout or terminal state.
    """

    async def poll() -> T:
        result = await poll_fn()
        if ready_check(result):
            return result
        if terminal_check is not None and terminal_check(result):
            raise ProviderError(f"{description} reached terminal state: {result}")
        raise ResourcePendingError(f"{description} not ready: {result}")

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_delay(timeout),
            wait=wait_fixed(interval),
            retry=retry_if_exception_type(ResourcePendingError),
        ):
            with attempt:
                return await poll()
    except RetryError as e:
        raise ProviderError(f"timeout waiting for {description} after {timeout:.1f}s") from e
    raise AssertionError("unreachable")
