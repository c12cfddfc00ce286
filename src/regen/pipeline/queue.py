"""
Stage Queue

Single-worker batch queue. Each pipeline stage owns one queue; a new batch
is refused while the previous one is still being worked off.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Generic, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")

# (item, handler result or the exception it raised)
Outcome = tuple[T, Any]


class StageQueue(Generic[T]):
    """
    Runs the items of one batch sequentially, in submission order.

    A handler exception is recorded as that item's outcome and does not
    stop the remaining items.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._worker: asyncio.Task[list[Outcome[T]]] | None = None

    @property
    def is_busy(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def submit_batch(
        self,
        items: Sequence[T],
        handler: Callable[[T], Awaitable[Any]],
    ) -> asyncio.Task[list[Outcome[T]]] | None:
        """
        Start working off a batch.

        Returns:
            The worker task, or None if a batch is already active.
        """
        if self.is_busy:
            logger.warning("Batch rejected, stage already running", stage=self.name)
            return None

        self._worker = asyncio.create_task(
            self._drain(list(items), handler),
            name=f"regen-{self.name}-batch",
        )
        return self._worker

    async def join(self) -> None:
        """Wait for the active batch, if any."""
        if self._worker is not None:
            await asyncio.shield(self._worker)

    async def _drain(
        self,
        items: list[T],
        handler: Callable[[T], Awaitable[Any]],
    ) -> list[Outcome[T]]:
        outcomes: list[Outcome[T]] = []
        for item in items:
            try:
                outcome = await handler(item)
            except Exception as e:
                logger.error("Batch item failed", stage=self.name, item=str(item), error=str(e))
                outcome = e
            outcomes.append((item, outcome))
        return outcomes
