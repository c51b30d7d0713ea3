"""Coalescing of concurrent identical reads."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


class SingleFlight:
    """Share one in-flight call among concurrent callers using the same key.

    The first caller for a key starts the call; callers arriving before it
    finishes await the same task and receive the same result or exception.
    The task is shielded, so a caller that gives up does not cancel it for
    the others.
    """

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Task[Any]] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    async def do[T](self, key: str, call: Callable[[], Awaitable[T]]) -> T:
        """Run ``call`` under ``key`` unless an identical call is already running."""
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(call())
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
