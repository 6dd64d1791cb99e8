# src/services/price_tracker.py

"""Single-item pipeline: fetch, extract, update state, persist, notify."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from src.extraction.price_extractor import PriceExtractor
from src.fetching.page_fetcher import PageFetcher
from src.models.notification import Notification
from src.models.tracked_item import TrackedItem
from src.notifications.dispatcher import NotificationDispatcher
from src.storage.item_store import ItemStore
from src.tracking.state_machine import apply_price

logger = logging.getLogger("price_watch.tracker")


class CheckStatus(Enum):
    """How a single price check ended."""

    UPDATED = "updated"
    FETCH_FAILED = "fetch_failed"
    EXTRACTION_FAILED = "extraction_failed"


@dataclass
class CheckOutcome:
    """Result of checking one tracked item."""

    item: TrackedItem
    status: CheckStatus
    price: float | None = None
    notifications: list[Notification] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is CheckStatus.UPDATED


class PriceTracker:
    """Wires the fetcher, extractor, state machine, store and notifier."""

    def __init__(
        self,
        store: ItemStore,
        fetcher: PageFetcher | None = None,
        extractor: PriceExtractor | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self.store = store
        self.fetcher = fetcher or PageFetcher()
        self.extractor = extractor or PriceExtractor()
        self.dispatcher = dispatcher or NotificationDispatcher()

    def _record_attempt(
        self, item: TrackedItem, now: datetime, status: CheckStatus,
    ) -> CheckOutcome:
        """Persist only the attempt timestamp after a failed check."""
        item.last_checked_at = now
        if item.id is not None:
            self.store.touch_checked(item.id, now)
        return CheckOutcome(item=item, status=status)

    def check_item(
        self, item: TrackedItem, now: datetime | None = None,
    ) -> CheckOutcome:
        """Run the full pipeline for *item*.

        Fetch and extraction failures are logged and reported through
        the returned outcome rather than raised.
        """
        now = now or datetime.now()
        logger.info("Checking price for %s (%s)", item.label, item.url)

        document = self.fetcher.fetch(item.url)
        if document is None:
            logger.warning("Fetch failed for %s", item.label)
            return self._record_attempt(item, now, CheckStatus.FETCH_FAILED)

        price = self.extractor.extract(document, item)
        if price is None:
            logger.warning("Could not extract a valid price for %s", item.label)
            return self._record_attempt(
                item, now, CheckStatus.EXTRACTION_FAILED,
            )

        result = apply_price(item, price, now)
        self.store.save_observation(result.item, result.record)
        logger.info(
            "Price updated for %s: %.2f (old: %s, target: %.2f)",
            item.label,
            price,
            item.current_price,
            item.target_price,
        )

        # Price tracking is committed before any delivery attempt
        self.dispatcher.dispatch_all(result.notifications)

        return CheckOutcome(
            item=result.item,
            status=CheckStatus.UPDATED,
            price=price,
            notifications=result.notifications,
        )

    def check_by_id(self, item_id: int) -> CheckOutcome:
        """Load an item and check it.

        Raises:
            ItemNotFoundError: If no such item exists.
        """
        return self.check_item(self.store.get_item(item_id))
