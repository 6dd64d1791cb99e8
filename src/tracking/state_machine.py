# src/tracking/state_machine.py

"""Pure price/notification state transitions for a tracked item.

Given the item's prior state and a freshly extracted price, compute the
updated item, the history record to append, and the notifications to
dispatch.  Nothing here touches storage, the network, or the clock.

Target latch transitions (``target`` is ``item.target_price``):

    ARMED                  --price <  target--> BELOW_TARGET_NOTIFIED  (notify)
    ARMED                  --price >= target--> ARMED
    BELOW_TARGET_NOTIFIED  --price <  target--> BELOW_TARGET_NOTIFIED
    BELOW_TARGET_NOTIFIED  --price >= target--> ARMED

A price-drop notification is evaluated independently and fires whenever
the new price is strictly below the previous one.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime

from src.models.history_record import HistoryRecord
from src.models.notification import (
    Notification,
    PriceDropNotification,
    TargetReachedNotification,
)
from src.models.tracked_item import TargetLatch, TrackedItem

logger = logging.getLogger("price_watch.tracker")


@dataclass
class TrackingResult:
    """Outcome of applying one observed price to an item."""

    item: TrackedItem
    record: HistoryRecord
    notifications: list[Notification] = field(default_factory=list)


def _should_notify_target(
    item: TrackedItem, old_price: float | None, new_price: float,
) -> bool:
    if new_price >= item.target_price:
        return False
    if item.latch is TargetLatch.ARMED:
        return True
    # A stored latch that disagrees with the last observed price
    # (target lowered below it by an edit) must not suppress the alert.
    return old_price is not None and old_price >= item.target_price


def apply_price(
    item: TrackedItem, new_price: float, now: datetime,
) -> TrackingResult:
    """Apply *new_price* observed at *now* to *item*.

    The input item is left untouched; the returned result carries an
    updated copy.

    Raises:
        ValueError: If *new_price* is not a positive number.
    """
    if new_price <= 0:
        raise ValueError(f"Observed price must be positive, got {new_price}")

    old_price = item.current_price
    updated = replace(item, current_price=new_price, last_checked_at=now)
    record = HistoryRecord(
        item_id=item.id, price=new_price, recorded_at=now,
    )
    notifications: list[Notification] = []

    if _should_notify_target(item, old_price, new_price):
        updated.latch = TargetLatch.BELOW_TARGET_NOTIFIED
        notifications.append(TargetReachedNotification(item=updated))
        logger.info(
            "Price %.2f below target %.2f for %s",
            new_price,
            item.target_price,
            item.label,
        )
    elif (
        new_price >= item.target_price
        and item.latch is TargetLatch.BELOW_TARGET_NOTIFIED
    ):
        updated.latch = TargetLatch.ARMED
        logger.info(
            "Price %.2f back at/above target %.2f for %s, latch re-armed",
            new_price,
            item.target_price,
            item.label,
        )

    if old_price is not None and old_price > 0 and new_price < old_price:
        notifications.append(
            PriceDropNotification(
                item=updated, old_price=old_price, new_price=new_price,
            )
        )
        logger.info(
            "Price dropped for %s: %.2f -> %.2f",
            item.label,
            old_price,
            new_price,
        )

    return TrackingResult(
        item=updated, record=record, notifications=notifications,
    )
