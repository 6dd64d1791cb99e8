# src/cli/runner.py

"""Headless command implementations behind ``main.py``."""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime

from rich.console import Console
from rich.table import Table

from src.config.settings import Settings
from src.models.tracked_item import TrackedItem
from src.notifications.dispatcher import NotificationDispatcher
from src.services.poll_scheduler import PollScheduler
from src.services.price_tracker import (
    CheckOutcome,
    CheckStatus,
    PriceTracker,
)
from src.storage.history_exporter import HistoryExporter
from src.storage.item_store import ItemNotFoundError, ItemStore

logger = logging.getLogger("price_watch.cli")

# Stderr console for status messages so stdout stays clean for tables
_err = Console(stderr=True)


def _money(amount: float | None) -> str:
    if amount is None:
        return "—"
    return f"{Settings.CURRENCY_SYMBOL}{amount:,.2f}"


def _when(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "never"


def _not_found(exc: ItemNotFoundError) -> int:
    _err.print(f"[red]{exc}[/red]")
    return 1


def _report_outcome(outcome: CheckOutcome) -> int:
    """Print a single check result and map it to an exit code."""
    if outcome.status is CheckStatus.FETCH_FAILED:
        _err.print(f"[red]Could not fetch {outcome.item.url}[/red]")
        return 1
    if outcome.status is CheckStatus.EXTRACTION_FAILED:
        _err.print(
            "[red]No price found on the page.[/red] "
            "[dim]Try setting a custom selector.[/dim]"
        )
        return 1

    _err.print(
        f"[green]✓ {outcome.item.label}: {_money(outcome.price)}[/green]"
        f" [dim]({len(outcome.notifications)} notification(s))[/dim]"
    )
    return 0


def run_add(
    store: ItemStore,
    url: str,
    target_price: float,
    name: str = "",
    selector: str = "",
    notify: str = "",
    tracker: PriceTracker | None = None,
) -> int:
    """Register a new tracked item.

    When *tracker* is given the first price is fetched straight away;
    the item stays registered even if that check fails.
    """
    try:
        item = TrackedItem(
            url=url,
            target_price=target_price,
            name=name,
            selector=selector,
            notification_target=notify,
        )
    except ValueError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    store.add_item(item)
    _err.print(
        f"[green]✓ Tracking item {item.id}:[/green] {item.label} "
        f"[dim](target {_money(item.target_price)})[/dim]"
    )
    if tracker is None or item.id is None:
        return 0
    return _report_outcome(tracker.check_by_id(item.id))


def run_edit(
    store: ItemStore,
    item_id: int,
    url: str | None = None,
    target_price: float | None = None,
    name: str | None = None,
    selector: str | None = None,
    notify: str | None = None,
) -> int:
    """Change the given fields of an item; ``None`` leaves a field as is.

    Price history and the target latch are kept.  An empty *selector*
    clears a custom selector.
    """
    try:
        item = store.get_item(item_id)
    except ItemNotFoundError as exc:
        return _not_found(exc)

    changes: dict[str, object] = {
        key: value
        for key, value in (
            ("url", url),
            ("target_price", target_price),
            ("name", name),
            ("selector", selector),
            ("notification_target", notify),
        )
        if value is not None
    }
    if not changes:
        _err.print("[yellow]Nothing to change.[/yellow]")
        return 1

    try:
        updated = replace(item, **changes)
    except ValueError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1

    try:
        store.save_item(updated)
    except ItemNotFoundError as exc:
        return _not_found(exc)
    logger.info("Edited item %d: %s", item_id, ", ".join(sorted(changes)))
    _err.print(
        f"[green]✓ Updated item {item_id}:[/green] "
        f"{', '.join(sorted(changes))}"
    )
    return 0


def run_list(store: ItemStore) -> int:
    """Render every tracked item as a Rich table."""
    items = store.list_items()
    if not items:
        _err.print("[yellow]No tracked items.[/yellow]")
        return 0

    table = Table(
        title="Tracked Items",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("ID", style="dim", width=4)
    table.add_column("Name", max_width=40)
    table.add_column("Current", justify="right", style="green")
    table.add_column("Target", justify="right")
    table.add_column("Below", justify="center")
    table.add_column("Active", justify="center")
    table.add_column("Last Checked", style="dim")
    table.add_column("URL", overflow="fold", style="dim")

    for item in items:
        below = (
            item.current_price is not None
            and item.current_price < item.target_price
        )
        table.add_row(
            str(item.id),
            item.name[:40] or "—",
            _money(item.current_price),
            _money(item.target_price),
            "🎯" if below else "",
            "✅" if item.active else "⏸",
            _when(item.last_checked_at),
            item.url,
        )

    Console().print(table)
    return 0


def run_remove(store: ItemStore, item_id: int) -> int:
    """Delete an item and its history."""
    try:
        store.delete_item(item_id)
    except ItemNotFoundError as exc:
        return _not_found(exc)
    _err.print(f"[green]✓ Removed item {item_id}[/green]")
    return 0


def run_set_active(store: ItemStore, item_id: int, active: bool) -> int:
    """Enable or disable scheduled polling for an item."""
    try:
        store.set_active(item_id, active)
    except ItemNotFoundError as exc:
        return _not_found(exc)
    state = "enabled" if active else "disabled"
    _err.print(f"[green]✓ Item {item_id} {state}[/green]")
    return 0


async def run_check(tracker: PriceTracker, item_id: int) -> int:
    """Check one item right now and report the outcome."""
    scheduler = PollScheduler(tracker, tracker.store)
    try:
        outcome = await scheduler.check_now(item_id)
    except ItemNotFoundError as exc:
        return _not_found(exc)
    return _report_outcome(outcome)


async def run_sweep(tracker: PriceTracker) -> int:
    """Check every active item once."""
    scheduler = PollScheduler(tracker, tracker.store)
    summary = await scheduler.run_sweep()
    _err.print(
        f"[bold]Sweep:[/bold] {summary.checked}/{summary.total} checked, "
        f"[green]{summary.updated} updated[/green], "
        f"[red]{summary.failed} failed[/red], "
        f"{summary.notifications} notification(s)"
    )
    return 1 if summary.failed else 0


async def run_scheduler(
    tracker: PriceTracker,
    interval: float | None = None,
    item_delay: float | None = None,
) -> int:
    """Poll on a fixed period until interrupted."""
    scheduler = PollScheduler(
        tracker, tracker.store, interval=interval, item_delay=item_delay,
    )
    scheduler.start()
    _err.print(
        f"[bold]Polling every {scheduler.interval:.0f}s[/bold] "
        "[dim](Ctrl-C to stop)[/dim]"
    )
    try:
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        logger.info("Interrupted, stopping scheduler")
    finally:
        await scheduler.stop()
    return 0


def run_history(
    store: ItemStore, item_id: int, export: str | None = None,
) -> int:
    """Show (and optionally export) an item's price history."""
    try:
        item = store.get_item(item_id)
    except ItemNotFoundError as exc:
        return _not_found(exc)

    records = store.get_history(item_id)
    if not records:
        _err.print("[yellow]No price history yet.[/yellow]")
        return 0

    table = Table(
        title=f"Price History — {item.label[:60]}",
        title_style="bold cyan",
    )
    table.add_column("Recorded At")
    table.add_column("Price", justify="right", style="green")
    for r in records:
        table.add_row(
            r.recorded_at.strftime("%Y-%m-%d %H:%M:%S"), _money(r.price),
        )
    Console().print(table)

    summary = store.get_trend_summary(item_id)
    if summary:
        _err.print(
            f"[dim]min {summary['min']}  max {summary['max']}  "
            f"avg {summary['avg']}  n={summary['count']}[/dim]"
        )

    if export:
        exporter = HistoryExporter()
        if export == "csv":
            path = exporter.export_csv(item, records)
        else:
            path = exporter.export_json(item, records)
        _err.print(f"[dim]Exported → {path}[/dim]")
    return 0


def run_test_notify(
    store: ItemStore,
    item_id: int,
    dispatcher: NotificationDispatcher | None = None,
) -> int:
    """Send a sample alert for an item through every channel."""
    try:
        item = store.get_item(item_id)
    except ItemNotFoundError as exc:
        return _not_found(exc)

    delivered = (dispatcher or NotificationDispatcher()).send_test(item)
    if not delivered:
        _err.print(
            "[yellow]No channel delivered the test alert; "
            "check CONSOLE_ALERTS / EMAIL_ENABLED.[/yellow]"
        )
        return 1
    _err.print(f"[green]✓ Test alert delivered via {delivered} channel(s)[/green]")
    return 0
