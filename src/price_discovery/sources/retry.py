"""Retry policy for calls to the market data provider.

The policy owns three decisions: how many attempts to make, how long to wait
between them, and which errors are worth retrying. Transports hand it an
awaitable factory and get back either the result or the last error.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from price_discovery.observability.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


logger = get_logger(__name__)


def is_transient_http_error(error: BaseException) -> bool:
    """Retry transport failures and 5xx responses; never retry 4xx."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(error, httpx.TransportError)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff retry policy.

    With the defaults, a failing call is attempted 3 times with 1s and then
    2s pauses in between. ``backoff(n)`` gives the pause after attempt ``n``.

    Attributes:
        max_attempts: Total attempts including the first one.
        backoff_base: Pause after the first failed attempt, in seconds.
        backoff_max: Optional cap on any single pause.
        retryable: Predicate deciding whether an error may be retried.
        sleep: Awaitable sleep, replaceable in tests.
    """

    max_attempts: int = 3
    backoff_base: float = 1.0
    backoff_max: float | None = None
    retryable: Callable[[BaseException], bool] = is_transient_http_error
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)

    def backoff(self, attempt: int) -> float:
        """Pause after failed ``attempt`` (1-based): base x 2^(attempt-1)."""
        delay = self.backoff_base * (2 ** (attempt - 1))
        if self.backoff_max is not None:
            delay = min(delay, self.backoff_max)
        return delay

    @property
    def schedule(self) -> list[float]:
        """Every pause the policy would take before giving up."""
        return [self.backoff(n) for n in range(1, self.max_attempts)]

    async def run[R](
        self,
        operation: Callable[[], Awaitable[R]],
        *,
        description: str = "operation",
    ) -> R:
        """Run ``operation`` until it succeeds, fails terminally or attempts run out.

        Args:
            operation: Zero-argument callable returning a fresh awaitable.
            description: Label used in log entries.

        Returns:
            The result of the first successful attempt.

        Raises:
            Exception: The last error, when it is not retryable or no attempts
                remain.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except Exception as e:
                will_retry = attempt < self.max_attempts and self.retryable(e)
                logger.warning(
                    "Attempt failed",
                    operation=description,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    retrying=will_retry,
                    error=str(e),
                )
                if not will_retry:
                    raise
                await self.sleep(self.backoff(attempt))

        msg = "unreachable: retry loop exited without result"
        raise AssertionError(msg)
