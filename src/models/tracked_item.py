# src/models/tracked_item.py

"""Tracked item model: one monitored product page."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class TargetLatch(Enum):
    """Two-state latch guarding the target-reached notification.

    ``ARMED`` covers every state in which a below-target observation
    must notify: the price has never been below target, or it has been
    observed at/above target since the last notification.
    ``BELOW_TARGET_NOTIFIED`` holds while the price stays under target
    after a notification was emitted.
    """

    ARMED = "armed"
    BELOW_TARGET_NOTIFIED = "below_target_notified"


@dataclass
class TrackedItem:
    """A product page whose price is polled and compared to a target."""

    url: str
    target_price: float
    name: str = ""
    selector: str = ""
    current_price: float | None = None
    last_checked_at: datetime | None = None
    active: bool = True
    latch: TargetLatch = TargetLatch.ARMED
    notification_target: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    id: int | None = None

    def __post_init__(self) -> None:
        if not self.url.strip():
            raise ValueError("Tracked item URL must not be empty")
        if self.target_price <= 0:
            raise ValueError(
                f"Target price must be positive, got {self.target_price}"
            )

    @property
    def target_notified(self) -> bool:
        """True while a below-target alert has fired for this streak."""
        return self.latch is TargetLatch.BELOW_TARGET_NOTIFIED

    @property
    def label(self) -> str:
        """Human-readable name, falling back to the URL."""
        return self.name or self.url
