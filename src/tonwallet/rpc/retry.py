"""Generic async retry with exponential backoff.

Only failures the predicate classifies as transient are retried; anything else
propagates on the first attempt.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tonwallet.errors import RpcExhausted, RpcTransient

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUS_CODES = frozenset({429, 502, 503, 504})


def is_transient(error: Exception) -> bool:
    """Default classifier: rate-limited or server-unavailable failures."""
    return isinstance(error, RpcTransient)


def backoff_delay(attempt: int, base: float) -> float:
    """Delay after the given failed attempt (1-indexed): base * 2^(attempt-1)."""
    return base * (2 ** (attempt - 1))


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    is_transient: Callable[[Exception], bool] = is_transient,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    operation_name: Optional[str] = None,
) -> T:
    """Call fn until it succeeds, retrying transient failures.

    Args:
        fn: Zero-argument coroutine factory; called once per attempt
        max_attempts: Total attempts including the first
        base_delay: Backoff base in seconds
        is_transient: Predicate deciding whether a failure may be retried
        sleep: Awaitable sleep, injectable for tests
        operation_name: Label for log messages

    Returns:
        The first successful result

    Raises:
        RpcExhausted: If every attempt failed transiently
        Exception: Any non-transient failure, unchanged
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    name = operation_name or getattr(fn, "__name__", "rpc")
    last_error: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        try:
            result = await fn()
        except Exception as e:
            if not is_transient(e):
                raise
            last_error = e
            if attempt == max_attempts:
                break
            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                f"[{name}] [{attempt}/{max_attempts}] Transient error: {e}; retrying in {delay:.1f}s"
            )
            await sleep(delay)
            continue

        if attempt > 1:
            logger.info(f"[{name}] Succeeded after {attempt} attempts")
        return result

    logger.error(f"[{name}] Max attempts ({max_attempts}) exceeded. Last error: {last_error}")
    raise RpcExhausted(max_attempts, last_error) from last_error
