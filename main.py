# main.py

"""Entry point for the price_watch tracker CLI."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from src.config.logging_config import setup_logging
from src.config.settings import Settings

logger = logging.getLogger("price_watch.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="price_watch",
        description="Track product prices and alert on drops and targets.",
    )
    parser.add_argument(
        "--db",
        default=None,
        help=f"SQLite database path (default: {Settings.PRICE_DB_PATH}).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Echo INFO logs to the console.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Track a new product page.")
    add.add_argument("url", help="Product page URL.")
    add.add_argument(
        "target", type=float, help="Alert when the price drops below this.",
    )
    add.add_argument("-n", "--name", default="", help="Display name.")
    add.add_argument(
        "-s",
        "--selector",
        default="",
        help="CSS selector for the price element (optional).",
    )
    add.add_argument(
        "--notify",
        default="",
        help="Email address for alerts (default: EMAIL_FROM).",
    )
    add.add_argument(
        "--check",
        action="store_true",
        default=False,
        help="Fetch the first price right after adding.",
    )

    edit = sub.add_parser("edit", help="Change an item's settings.")
    edit.add_argument("item_id", type=int)
    edit.add_argument("--url", default=None, help="New product page URL.")
    edit.add_argument(
        "-t", "--target", type=float, default=None, help="New target price.",
    )
    edit.add_argument("-n", "--name", default=None, help="New display name.")
    edit.add_argument(
        "-s",
        "--selector",
        default=None,
        help='New CSS selector ("" clears it).',
    )
    edit.add_argument(
        "--notify", default=None, help="New alert email address.",
    )

    sub.add_parser("list", help="List tracked items.")

    for name, help_text in (
        ("remove", "Delete an item and its price history."),
        ("enable", "Include an item in scheduled polling."),
        ("disable", "Exclude an item from scheduled polling."),
        ("check", "Check one item's price now."),
        ("test-notify", "Send a test alert for an item."),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("item_id", type=int)

    history = sub.add_parser("history", help="Show an item's price history.")
    history.add_argument("item_id", type=int)
    history.add_argument(
        "--export",
        choices=["json", "csv"],
        default=None,
        help="Also write the history to exports/.",
    )

    sub.add_parser("sweep", help="Check every active item once.")

    run = sub.add_parser("run", help="Poll all active items periodically.")
    run.add_argument(
        "--interval",
        type=float,
        default=None,
        help=f"Seconds between sweeps (default: {Settings.POLL_INTERVAL:.0f}).",
    )
    run.add_argument(
        "--item-delay",
        type=float,
        default=None,
        dest="item_delay",
        help=f"Seconds between items (default: {Settings.ITEM_DELAY}).",
    )
    return parser


def _dispatch(args: argparse.Namespace) -> int:
    """Route the parsed command to its runner."""
    from src.cli import runner
    from src.services.price_tracker import PriceTracker
    from src.storage.item_store import ItemStore

    store = ItemStore(Path(args.db) if args.db else None)
    try:
        if args.command == "add":
            return runner.run_add(
                store,
                args.url,
                args.target,
                name=args.name,
                selector=args.selector,
                notify=args.notify,
                tracker=PriceTracker(store) if args.check else None,
            )
        if args.command == "edit":
            return runner.run_edit(
                store,
                args.item_id,
                url=args.url,
                target_price=args.target,
                name=args.name,
                selector=args.selector,
                notify=args.notify,
            )
        if args.command == "list":
            return runner.run_list(store)
        if args.command == "remove":
            return runner.run_remove(store, args.item_id)
        if args.command in ("enable", "disable"):
            return runner.run_set_active(
                store, args.item_id, args.command == "enable",
            )
        if args.command == "history":
            return runner.run_history(store, args.item_id, args.export)
        if args.command == "test-notify":
            return runner.run_test_notify(store, args.item_id)

        tracker = PriceTracker(store)
        if args.command == "check":
            return asyncio.run(runner.run_check(tracker, args.item_id))
        if args.command == "sweep":
            return asyncio.run(runner.run_sweep(tracker))
        return asyncio.run(
            runner.run_scheduler(tracker, args.interval, args.item_delay)
        )
    finally:
        store.close()


def main() -> None:
    """Parse arguments, configure logging and run the command."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging(verbose=args.verbose)
    logger.info("price_watch starting, log file: %s", log_file)

    try:
        exit_code = _dispatch(args)
    except KeyboardInterrupt:
        exit_code = 130
    except Exception:
        logger.critical("Fatal error", exc_info=True)
        raise
    finally:
        logger.info("price_watch shutting down")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
