# src/notifications/console_notifier.py

"""Terminal pop-up for price alerts."""

import logging

from rich.console import Console
from rich.panel import Panel

from src.config.settings import Settings
from src.models.notification import Notification

logger = logging.getLogger("price_watch.notify.console")

_STYLES: dict[str, str] = {
    "price-drop": "green",
    "target-reached": "bold magenta",
}


class ConsoleNotifier:
    """Print each alert as a rich panel on stderr."""

    name = "console"

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)

    @property
    def enabled(self) -> bool:
        return Settings.CONSOLE_ALERTS

    def send(self, notification: Notification) -> bool:
        if not self.enabled:
            return False
        self.console.print(
            Panel(
                notification.render(),
                title=notification.subject,
                border_style=_STYLES.get(notification.kind, "cyan"),
            )
        )
        logger.debug(
            "Console alert shown for %s", notification.item.label,
        )
        return True
