# tests/test_poll_scheduler.py

"""Tests for periodic and on-demand polling."""

import asyncio
import tempfile
import unittest
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.models.tracked_item import TrackedItem
from src.services.poll_scheduler import PollScheduler, SweepSummary
from src.services.price_tracker import CheckOutcome, CheckStatus
from src.storage.item_store import ItemNotFoundError, ItemStore


def _outcome(item: TrackedItem, ok: bool = True) -> CheckOutcome:
    """Canned result for a mocked tracker."""
    return CheckOutcome(
        item=item,
        status=CheckStatus.UPDATED if ok else CheckStatus.FETCH_FAILED,
        price=100.0 if ok else None,
    )


async def _wait_for(predicate: Any, timeout: float = 2.0) -> None:
    """Poll *predicate* until true or fail the test on timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


class TestPollScheduler(unittest.IsolatedAsyncioTestCase):
    """Sweep ordering, isolation, cancellation and lifecycle."""

    def setUp(self) -> None:
        """Temp store with three active items and one inactive item."""
        self.tmp_dir = tempfile.mkdtemp()
        self.store = ItemStore(db_path=Path(self.tmp_dir) / "test.db")
        self.items = [
            self.store.add_item(
                TrackedItem(
                    name=f"Item {n}",
                    url=f"https://shop.example.com/{n}",
                    target_price=100.0,
                    active=(n != 3),
                )
            )
            for n in range(1, 5)
        ]
        self.tracker = MagicMock()
        self.tracker.check_item.side_effect = lambda item: _outcome(item)

    def tearDown(self) -> None:
        """Close the database."""
        self.store.close()

    def _scheduler(self, **kwargs: Any) -> PollScheduler:
        kwargs.setdefault("interval", 3600)
        kwargs.setdefault("item_delay", 0)
        return PollScheduler(self.tracker, self.store, **kwargs)

    def _checked_ids(self) -> list[int | None]:
        return [c.args[0].id for c in self.tracker.check_item.call_args_list]

    async def test_sweep_checks_active_items_in_order(self) -> None:
        """Only active items are checked, sequentially by id."""
        summary = await self._scheduler().run_sweep()

        expected = [self.items[i].id for i in (0, 1, 3)]
        self.assertEqual(self._checked_ids(), expected)
        self.assertEqual(summary.total, 3)
        self.assertEqual(summary.updated, 3)
        self.assertFalse(summary.cancelled)

    async def test_failure_does_not_abort_sweep(self) -> None:
        """A raising check is counted and the sweep goes on."""
        boom_id = self.items[1].id

        def check(item: TrackedItem) -> CheckOutcome:
            if item.id == boom_id:
                raise RuntimeError("parser exploded")
            return _outcome(item, ok=item.id != self.items[3].id)

        self.tracker.check_item.side_effect = check
        summary = await self._scheduler().run_sweep()

        self.assertEqual(summary.checked, 3)
        self.assertEqual(summary.updated, 1)
        self.assertEqual(summary.failed, 2)

    async def test_item_deleted_mid_sweep_is_skipped(self) -> None:
        """Items removed after listing are not checked."""
        doomed = self.items[1].id
        assert doomed is not None

        def check(item: TrackedItem) -> CheckOutcome:
            if item.id == self.items[0].id:
                self.store.delete_item(doomed)
            return _outcome(item)

        self.tracker.check_item.side_effect = check
        summary = await self._scheduler().run_sweep()

        self.assertNotIn(doomed, self._checked_ids())
        self.assertEqual(summary.checked, 2)

    async def test_stop_aborts_between_items(self) -> None:
        """Stopping during the inter-item delay ends the sweep."""
        scheduler = self._scheduler(item_delay=30)
        sweep = asyncio.create_task(scheduler.run_sweep())

        await _wait_for(lambda: self.tracker.check_item.call_count == 1)
        await scheduler.stop()
        summary = await asyncio.wait_for(sweep, timeout=2)

        self.assertTrue(summary.cancelled)
        self.assertEqual(summary.checked, 1)
        self.assertEqual(self.tracker.check_item.call_count, 1)

    async def test_start_and_stop_lifecycle(self) -> None:
        """The background loop runs a sweep and stops cleanly."""
        scheduler = self._scheduler()
        scheduler.start()
        self.assertTrue(scheduler.is_running)

        await _wait_for(lambda: self.tracker.check_item.call_count >= 3)
        await asyncio.wait_for(scheduler.stop(), timeout=2)

        self.assertFalse(scheduler.is_running)
        self.assertEqual(self.tracker.check_item.call_count, 3)

    async def test_loop_survives_sweep_errors(self) -> None:
        """An exception escaping a sweep does not kill the loop."""
        scheduler = self._scheduler(interval=0.01)
        run_sweep = AsyncMock(
            side_effect=[RuntimeError("db locked"), SweepSummary()] * 5,
        )
        scheduler.run_sweep = run_sweep  # type: ignore[method-assign]

        scheduler.start()
        await _wait_for(lambda: run_sweep.await_count >= 3)
        await asyncio.wait_for(scheduler.stop(), timeout=2)

    async def test_double_start_is_ignored(self) -> None:
        """A second start() does not spawn a second loop."""
        scheduler = self._scheduler()
        scheduler.start()
        first_task = scheduler._task
        scheduler.start()
        self.assertIs(scheduler._task, first_task)
        await asyncio.wait_for(scheduler.stop(), timeout=2)

    async def test_check_now(self) -> None:
        """On-demand checks run even for inactive items."""
        inactive_id = self.items[2].id
        assert inactive_id is not None
        outcome = await self._scheduler().check_now(inactive_id)
        self.assertTrue(outcome.ok)
        self.assertEqual(self._checked_ids(), [inactive_id])

    async def test_check_now_missing_item(self) -> None:
        """Unknown ids raise ItemNotFoundError."""
        with self.assertRaises(ItemNotFoundError):
            await self._scheduler().check_now(999)

    async def test_check_now_concurrent_with_sweep(self) -> None:
        """A manual check may run while a sweep is in progress."""
        scheduler = self._scheduler(item_delay=0.05)
        target_id = self.items[0].id
        assert target_id is not None

        sweep = asyncio.create_task(scheduler.run_sweep())
        outcome = await scheduler.check_now(target_id)
        summary = await asyncio.wait_for(sweep, timeout=2)

        self.assertTrue(outcome.ok)
        self.assertEqual(summary.checked, 3)
        self.assertEqual(self._checked_ids().count(target_id), 2)


if __name__ == "__main__":
    unittest.main()
