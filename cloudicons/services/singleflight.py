"""Collapse concurrent calls for the same key into one shared task."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class SingleFlight:
    """Per-key de-duplication of in-progress coroutines.

    The first caller for a key starts the work; later callers await the same
    task until it finishes. Results and errors are not remembered after
    completion. Waiters are shielded, so a cancelled caller does not cancel
    the work the others are waiting on.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._inflight: dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        if not self.enabled:
            return await factory()

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            logger.debug("Single-flight join | key=%s", key)

        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved even when every waiter went away.
            task.exception()
