"""Fixed-interval retry for EC2 throttling errors."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from botocore.exceptions import BotoCoreError, ClientError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from ec2_runner.constants import (
    THROTTLE_MAX_ATTEMPTS,
    THROTTLE_RETRY_INTERVAL,
    THROTTLING_ERROR_CODES,
)
from ec2_runner.errors import ProviderError
from ec2_runner.observability.logger import BoundLogger, logger


def error_code(exc: BaseException) -> str:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "")
    return ""


def is_throttling_error(exc: BaseException) -> bool:
    """Check if exception is a transient EC2 request-rate rejection."""
    return error_code(exc) in THROTTLING_ERROR_CODES


async def throttled[T](
    call: Callable[[], Awaitable[T]],
    *,
    operation: str,
    max_attempts: int = THROTTLE_MAX_ATTEMPTS,
    interval: float = THROTTLE_RETRY_INTERVAL,
    log: BoundLogger | None = None,
) -> T:
    """Run ``call``, retrying throttling errors at a fixed interval.

    Up to ``max_attempts`` calls are made in total. Any non-throttling
    error, or the last throttling error once attempts run out, is raised as
    :class:`ProviderError` with the botocore error chained.
    """
    log = log or logger

    def before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        log.warning(
            "{operation} throttled ({code}), attempt {n}/{max}; retrying in {delay:.0f}s",
            operation=operation,
            code=error_code(exc) if exc else "?",
            n=state.attempt_number,
            max=max_attempts,
            delay=interval,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(interval),
        retry=retry_if_exception(is_throttling_error),
        before_sleep=before_sleep,
        reraise=True,
    )
    try:
        return await retrying(call)
    except (ClientError, BotoCoreError) as e:
        raise ProviderError(f"{operation} failed: {e}") from e
