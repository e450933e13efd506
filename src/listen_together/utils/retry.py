"""Bounded retry with exponential backoff for flaky async operations.

One policy object describes how hard to try; :func:`retry_async` applies it.
Both the queue's stream resolution and the client's trackEnded reporting go
through here.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import BaseModel, ConfigDict

from listen_together.domain.shared.messages import LogTemplates
from listen_together.domain.shared.types import NonNegativeFloat, PositiveFloat, PositiveInt

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryCallback = Callable[[int, BaseException], Awaitable[None] | None]


class RetryPolicy(BaseModel):
    """How many times to try, how long to wait in between, and per-attempt timeout."""

    model_config = ConfigDict(frozen=True)

    max_attempts: PositiveInt = 3
    base_delay: NonNegativeFloat = 2.0
    max_delay: NonNegativeFloat = 30.0
    timeout: PositiveFloat | None = None
    jitter: NonNegativeFloat = 0.0

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt following ``attempt`` (1-based)."""
        delay = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        if self.jitter:
            delay += random.random() * self.jitter
        return delay


def _always(_: BaseException) -> bool:
    return True


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    is_retryable: Callable[[BaseException], bool] = _always,
    on_retry: RetryCallback | None = None,
    description: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or the policy is exhausted.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt.
        policy: Attempts, backoff and per-attempt timeout.
        is_retryable: Errors for which this returns False are raised at once.
        on_retry: Called with the upcoming attempt number and the last error
            before every retry. May be sync or async.
        description: Name used in log messages.
        sleep: Backoff sleeper, replaceable in tests.

    Returns:
        The operation's result.

    Raises:
        The last error raised by ``operation`` (``TimeoutError`` when an
        attempt exceeded ``policy.timeout``).
    """
    attempt = 1
    while True:
        try:
            async with asyncio.timeout(policy.timeout):
                return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as error:
            if not is_retryable(error):
                raise
            logger.warning(
                LogTemplates.RETRY_ATTEMPT_FAILED, description, attempt, policy.max_attempts, error
            )
            if attempt >= policy.max_attempts:
                logger.error(LogTemplates.RETRY_EXHAUSTED, description, attempt)
                raise

            await sleep(policy.delay_for(attempt))
            attempt += 1
            if on_retry is not None:
                result = on_retry(attempt, error)
                if inspect.isawaitable(result):
                    await result
