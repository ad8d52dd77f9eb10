"""Deadline-bounded polling."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from .errors import WaitTimeoutError


async def wait_for_ready[T](
    poll_fn: Callable[[], Awaitable[T | None]],
    ready_check: Callable[[T], bool],
    *,
    timeout: float,
    interval: float,
    on_pending: Callable[[T | None], None] | None = None,
    description: str = "resource",
) -> T:
    """Poll until ``poll_fn`` returns something that passes ``ready_check``.

    Errors raised by ``poll_fn`` propagate immediately and end the wait.

    Args:
        poll_fn: Async function that fetches the current state, or None if
            the resource does not exist yet.
        ready_check: Returns True once the resource is ready.
        timeout: Polling budget in seconds, measured from the first poll.
        interval: Seconds between polls.
        on_pending: Called with the polled value after each not-ready poll.
        description: Used in the timeout message.

    Raises:
        WaitTimeoutError: If the resource is not ready after ``timeout``.
    """
    loop = asyncio.get_running_loop()
    start = loop.time()

    while True:
        result = await poll_fn()

        if result is not None and ready_check(result):
            return result

        if on_pending is not None:
            on_pending(result)

        if loop.time() - start > timeout:
            raise WaitTimeoutError(
                f"Timed out waiting for {description} after {timeout:.0f}s"
            )

        await asyncio.sleep(interval)
