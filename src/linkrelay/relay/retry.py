"""
Generic retry with exponential backoff and jitter.

Nothing here knows about messages or channels: callers pass a zero-argument
coroutine factory and an operation name used for logging and for annotating
the final error.

Delay before retry *i* (1-based) is::

    min(base_delay * 2 ** (i - 1) + uniform(0, jitter), max_delay)
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from linkrelay.util.logger import get_logger

logger = get_logger("retry")

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Attempt limit and delay schedule, all delays in seconds."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    jitter: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_milliseconds(
        cls,
        max_attempts: int = 3,
        base_delay_ms: float = 1000,
        max_delay_ms: float = 10000,
        jitter_ms: float = 1000,
    ) -> "RetryPolicy":
        return cls(
            max_attempts=int(max_attempts),
            base_delay=base_delay_ms / 1000.0,
            max_delay=max_delay_ms / 1000.0,
            jitter=jitter_ms / 1000.0,
        )


DEFAULT_RETRY_POLICY = RetryPolicy()


def compute_delay(
    attempt: int,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    rand: Callable[[], float] = random.random,
) -> float:
    """Delay in seconds to wait after failed attempt number ``attempt``."""
    backoff = policy.base_delay * (2 ** (attempt - 1)) + rand() * policy.jitter
    return min(backoff, policy.max_delay)


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    operation: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    *,
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Await ``fn()`` until it succeeds or ``policy.max_attempts`` is reached.

    Parameters
    ----------
    fn:
        Zero-argument callable returning a fresh awaitable per attempt.
    operation:
        Human-readable name of the operation, used in logs and attached to
        the surfaced exception as a note.
    policy:
        Attempt limit and delay schedule.
    should_retry:
        Optional predicate; when it returns False for an exception, that
        exception is raised immediately without further attempts.
    sleep:
        Awaitable sleep function (tests replace it to skip real delays).

    Raises
    ------
    Exception
        The exception from the last attempt, unchanged apart from a note
        naming ``operation``.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await fn()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            final = attempt == policy.max_attempts
            if not final and should_retry is not None and not should_retry(exc):
                exc.add_note(f"{operation} failed on attempt {attempt} (not retriable)")
                logger.error("%s failed with a non-retriable error: %s", operation, exc)
                raise

            if final:
                exc.add_note(f"{operation} failed after {policy.max_attempts} attempts")
                logger.error("%s failed after %d attempts: %s", operation, policy.max_attempts, exc)
                raise

            delay = compute_delay(attempt, policy)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %dms: %s",
                operation,
                attempt,
                policy.max_attempts,
                round(delay * 1000),
                exc,
            )
            await sleep(delay)

    raise AssertionError("unreachable: retry loop exited without returning or raising")
