# src/services/poll_scheduler.py

"""Periodic and on-demand polling of tracked items."""

import asyncio
import logging
from dataclasses import dataclass

from src.config.settings import Settings
from src.services.price_tracker import CheckOutcome, PriceTracker
from src.storage.item_store import ItemNotFoundError, ItemStore

logger = logging.getLogger("price_watch.scheduler")


@dataclass
class SweepSummary:
    """Counters for one pass over the active items."""

    total: int = 0
    checked: int = 0
    updated: int = 0
    failed: int = 0
    notifications: int = 0
    cancelled: bool = False


class PollScheduler:
    """Sweeps every active item on a fixed period, one item at a time.

    Items are processed sequentially with ``item_delay`` seconds between
    them to keep the outbound request rate polite.  ``stop()`` takes
    effect after the item currently being checked: it interrupts the
    inter-item delay and the wait between sweeps immediately.

    On-demand checks (``check_now``) may run concurrently with a sweep;
    no per-item locking is applied.
    """

    def __init__(
        self,
        tracker: PriceTracker,
        store: ItemStore,
        interval: float | None = None,
        item_delay: float | None = None,
    ) -> None:
        self.tracker = tracker
        self.store = store
        self.interval = (
            interval if interval is not None else Settings.POLL_INTERVAL
        )
        self.item_delay = (
            item_delay if item_delay is not None else Settings.ITEM_DELAY
        )
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if the periodic loop is currently running."""
        return self._running

    def start(self) -> None:
        """Start the periodic sweep as a background task."""
        if self._running:
            logger.warning("Scheduler is already running")
            return
        self._running = True
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "Scheduler started (interval=%.0fs, item delay=%.1fs)",
            self.interval,
            self.item_delay,
        )

    async def stop(self) -> None:
        """Stop the loop after the item in progress and wait for it."""
        self._running = False
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("Scheduler stopped")

    async def _sleep(self, seconds: float) -> bool:
        """Cancellable wait; returns True if a stop was requested."""
        if seconds <= 0:
            return self._stop_event.is_set()
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def _run_loop(self) -> None:
        """Sweep, wait, repeat until stopped; never dies on errors."""
        while self._running:
            try:
                await self.run_sweep()
            except Exception as exc:
                logger.error("Sweep error: %s", exc, exc_info=True)
            if await self._sleep(self.interval):
                break

    async def _check_one(self, item_id: int) -> CheckOutcome | None:
        """Reload and check one item; None if it vanished or was disabled."""
        try:
            item = await asyncio.to_thread(self.store.get_item, item_id)
        except ItemNotFoundError:
            logger.info("Item %d deleted before its check, skipping", item_id)
            return None
        if not item.active:
            logger.info("Item %d disabled before its check, skipping", item_id)
            return None
        return await asyncio.to_thread(self.tracker.check_item, item)

    async def run_sweep(self) -> SweepSummary:
        """Check every active item once, in id order."""
        items = await asyncio.to_thread(self.store.list_active_items)
        summary = SweepSummary(total=len(items))
        logger.info("Starting sweep over %d active items", len(items))

        for index, item in enumerate(items):
            if self._stop_event.is_set():
                summary.cancelled = True
                break

            if item.id is None:
                continue
            try:
                outcome = await self._check_one(item.id)
            except Exception as exc:
                summary.checked += 1
                summary.failed += 1
                logger.error(
                    "Error checking item %d (%s): %s",
                    item.id,
                    item.label,
                    exc,
                    exc_info=True,
                )
            else:
                if outcome is not None:
                    summary.checked += 1
                    if outcome.ok:
                        summary.updated += 1
                        summary.notifications += len(outcome.notifications)
                    else:
                        summary.failed += 1

            is_last = index == len(items) - 1
            if not is_last and await self._sleep(self.item_delay):
                summary.cancelled = True
                break

        if summary.cancelled:
            logger.warning(
                "Sweep cancelled after %d of %d items",
                summary.checked,
                summary.total,
            )
        else:
            logger.info(
                "Completed sweep: %d checked, %d updated, %d failed",
                summary.checked,
                summary.updated,
                summary.failed,
            )
        return summary

    async def check_now(self, item_id: int) -> CheckOutcome:
        """Check one item immediately, outside the periodic sweep.

        Raises:
            ItemNotFoundError: If no such item exists.
        """
        item = await asyncio.to_thread(self.store.get_item, item_id)
        logger.info("On-demand check for item %d", item_id)
        return await asyncio.to_thread(self.tracker.check_item, item)
