# src/models/notification.py

"""Notification commands emitted by the tracking state machine."""

from dataclasses import dataclass

from src.config.settings import Settings
from src.models.tracked_item import TrackedItem


def _money(amount: float) -> str:
    """Format an amount with the configured currency symbol."""
    return f"{Settings.CURRENCY_SYMBOL}{amount:,.2f}"


@dataclass(frozen=True)
class PriceDropNotification:
    """The price fell below the previously observed price."""

    item: TrackedItem
    old_price: float
    new_price: float

    kind = "price-drop"

    @property
    def savings(self) -> float:
        return self.old_price - self.new_price

    @property
    def savings_percent(self) -> float:
        return self.savings / self.old_price * 100

    @property
    def subject(self) -> str:
        return f"Price Drop Alert: {self.item.label}"

    def render(self) -> str:
        """Plain-text body shared by all delivery channels."""
        if self.new_price <= self.item.target_price:
            status = "Price is at or below your target!"
        else:
            status = "Getting closer to your target."
        return (
            f"The price of '{self.item.label}' has dropped.\n\n"
            f"Previous price: {_money(self.old_price)}\n"
            f"Current price:  {_money(self.new_price)}\n"
            f"You save:       {_money(self.savings)} "
            f"({self.savings_percent:.1f}%)\n"
            f"Target price:   {_money(self.item.target_price)}\n\n"
            f"Status: {status}\n"
            f"URL: {self.item.url}"
        )


@dataclass(frozen=True)
class TargetReachedNotification:
    """The price crossed below the user's target price."""

    item: TrackedItem

    kind = "target-reached"

    @property
    def price(self) -> float:
        return self.item.current_price or 0.0

    @property
    def savings(self) -> float:
        return self.item.target_price - self.price

    @property
    def savings_percent(self) -> float:
        return self.savings / self.item.target_price * 100

    @property
    def subject(self) -> str:
        return f"Target Price Reached: {self.item.label}"

    def render(self) -> str:
        """Plain-text body shared by all delivery channels."""
        return (
            f"The price of '{self.item.label}' is below your target!\n\n"
            f"Current price: {_money(self.price)}\n"
            f"Your target:   {_money(self.item.target_price)}\n"
            f"You save:      {_money(self.savings)} "
            f"({self.savings_percent:.1f}%)\n\n"
            f"URL: {self.item.url}"
        )


Notification = PriceDropNotification | TargetReachedNotification
