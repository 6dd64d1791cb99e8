# src/notifications/dispatcher.py

"""Fan notification commands out to every delivery channel."""

import logging
from typing import Protocol

from src.models.notification import (
    Notification,
    TargetReachedNotification,
)
from src.models.tracked_item import TrackedItem
from src.notifications.console_notifier import ConsoleNotifier
from src.notifications.email_notifier import EmailNotifier

logger = logging.getLogger("price_watch.notify")


class Channel(Protocol):
    """A delivery channel: email, console, ..."""

    name: str

    def send(self, notification: Notification) -> bool: ...


class NotificationDispatcher:
    """Deliver alerts best-effort across independent channels.

    A failing channel is logged and skipped; it never affects the other
    channels nor the price update that produced the alert.
    """

    def __init__(self, channels: list[Channel] | None = None) -> None:
        self.channels: list[Channel] = (
            channels
            if channels is not None
            else [ConsoleNotifier(), EmailNotifier()]
        )

    def dispatch(self, notification: Notification) -> int:
        """Send one alert; returns the number of channels that delivered."""
        delivered = 0
        for channel in self.channels:
            try:
                if channel.send(notification):
                    delivered += 1
            except Exception as exc:
                logger.error(
                    "%s channel failed for %s alert on %s: %s",
                    channel.name,
                    notification.kind,
                    notification.item.label,
                    exc,
                    exc_info=True,
                )
        return delivered

    def dispatch_all(self, notifications: list[Notification]) -> int:
        """Send alerts in order; returns total successful deliveries."""
        return sum(self.dispatch(n) for n in notifications)

    def send_test(self, item: TrackedItem) -> int:
        """Push a sample target-reached alert for *item* to every channel."""
        logger.info("Sending test notification for %s", item.label)
        return self.dispatch(TargetReachedNotification(item=item))
