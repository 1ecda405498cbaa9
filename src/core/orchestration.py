#!/usr/bin/env python3
"""
Batch orchestrator.

Drives an async handler over a backlog in order-preserving batches. Items of
a batch run concurrently and are all awaited before the next batch starts;
a fixed pacing delay separates batches. Each item's failure is recorded on
its own and never affects its siblings.
"""

import time
import asyncio
import logging
import threading
from typing import List, Any, Callable, Awaitable, Optional, Sequence

from .models.metrics import BatchTally, ItemOutcome

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY = 1.0


def partition(items: Sequence[Any], batch_size: int) -> List[List[Any]]:
    """Split items into consecutive batches of at most batch_size."""
    return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]


class BatchOrchestrator:
    """Runs a handler over items in paced, concurrently dispatched batches."""

    def __init__(self,
                 batch_size: int = DEFAULT_BATCH_SIZE,
                 batch_delay: float = DEFAULT_BATCH_DELAY,
                 item_timeout: Optional[float] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """
        Args:
            batch_size: Items dispatched together
            batch_delay: Seconds to wait between batches
            item_timeout: Optional limit on a single item's handler
            sleep: Awaitable used for pacing
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if batch_delay < 0:
            raise ValueError(f"batch_delay must not be negative, got {batch_delay}")

        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.item_timeout = item_timeout
        self._sleep = sleep
        self._stop = threading.Event()

    def request_stop(self) -> None:
        """Stop after the batch currently in flight."""
        logger.info("Stop requested, finishing current batch")
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    async def _run_item(self, handler: Callable[[Any], Awaitable[Any]], item: Any) -> Any:
        if self.item_timeout:
            return await asyncio.wait_for(handler(item), self.item_timeout)
        return await handler(item)

    async def run(self,
                  items: Sequence[Any],
                  handler: Callable[[Any], Awaitable[Any]],
                  key: Callable[[Any], Any] = lambda item: item) -> BatchTally:
        """
        Process all items and return the per-item tally in original order.

        Args:
            items: Backlog to process
            handler: Coroutine function called once per item
            key: Extracts the identifier recorded for each item
        """
        tally = BatchTally()
        batches = partition(items, self.batch_size)
        start_time = time.time()

        logger.info(f"Processing {len(items)} items in {len(batches)} batch(es) of up to {self.batch_size}")

        for index, batch in enumerate(batches):
            if self._stop.is_set():
                tally.stopped_early = True
                tally.not_dispatched = sum(len(b) for b in batches[index:])
                logger.warning(f"Stopped before batch {index + 1}; {tally.not_dispatched} item(s) not dispatched")
                break

            tally.batch_sizes.append(len(batch))
            results = await asyncio.gather(
                *(self._run_item(handler, item) for item in batch),
                return_exceptions=True
            )

            for item, result in zip(batch, results):
                item_key = key(item)
                if isinstance(result, BaseException):
                    if isinstance(result, asyncio.TimeoutError):
                        message = f"timed out after {self.item_timeout}s"
                    else:
                        message = str(result) or result.__class__.__name__
                    logger.error(f"Item {item_key} failed: {message}")
                    tally.outcomes.append(ItemOutcome(key=item_key, success=False, error=message))
                else:
                    tally.outcomes.append(ItemOutcome(key=item_key, success=True, value=result))

            logger.info(
                f"Batch {index + 1}/{len(batches)} done: "
                f"{sum(1 for r in results if not isinstance(r, BaseException))}/{len(batch)} succeeded"
            )

            if index < len(batches) - 1 and self.batch_delay > 0:
                await self._sleep(self.batch_delay)

        duration = time.time() - start_time
        logger.info(f"Processed {tally.total}/{len(items)} items in {duration:.2f}s ({tally.failed} failed)")
        return tally
