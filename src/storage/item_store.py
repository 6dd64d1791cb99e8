# src/storage/item_store.py

"""SQLite-backed store for tracked items and their price history."""

import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings
from src.models.history_record import HistoryRecord
from src.models.tracked_item import TargetLatch, TrackedItem

logger = logging.getLogger("price_watch.store")


class ItemNotFoundError(LookupError):
    """No tracked item exists with the requested id."""

    def __init__(self, item_id: int) -> None:
        super().__init__(f"Tracked item {item_id} not found")
        self.item_id = item_id


_SCHEMA = """\
CREATE TABLE IF NOT EXISTS items (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    name                TEXT    NOT NULL DEFAULT '',
    url                 TEXT    NOT NULL,
    selector            TEXT    NOT NULL DEFAULT '',
    target_price        REAL    NOT NULL,
    current_price       REAL,
    last_checked_at     TEXT,
    active              INTEGER NOT NULL DEFAULT 1,
    latch               TEXT    NOT NULL DEFAULT 'armed',
    notification_target TEXT    NOT NULL DEFAULT '',
    created_at          TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS price_history (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id     INTEGER NOT NULL
                REFERENCES items(id) ON DELETE CASCADE,
    price       REAL    NOT NULL,
    recorded_at TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_history_item_date
    ON price_history(item_id, recorded_at);
"""

_ITEM_COLUMNS = (
    "id, name, url, selector, target_price, current_price, "
    "last_checked_at, active, latch, notification_target, created_at"
)


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _row_to_item(row: tuple[object, ...]) -> TrackedItem:
    """Build a TrackedItem from an ``_ITEM_COLUMNS`` row."""
    return TrackedItem(
        id=int(str(row[0])),
        name=str(row[1]),
        url=str(row[2]),
        selector=str(row[3]),
        target_price=float(str(row[4])),
        current_price=(
            float(str(row[5])) if row[5] is not None else None
        ),
        last_checked_at=(
            datetime.fromisoformat(str(row[6])) if row[6] else None
        ),
        active=bool(row[7]),
        latch=TargetLatch(str(row[8])),
        notification_target=str(row[9]),
        created_at=datetime.fromisoformat(str(row[10])),
    )


class ItemStore:
    """Persist tracked items and append-only price history.

    A single connection is shared between the scheduler thread and
    on-demand checks, so every statement runs under one lock.
    """

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.PRICE_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("ItemStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Items ────────────────────────────────────────────

    def add_item(self, item: TrackedItem) -> TrackedItem:
        """Insert a new item and return it with its assigned id."""
        with self._lock:
            cur = self._conn.execute(
                "INSERT INTO items (name, url, selector, target_price, "
                "current_price, last_checked_at, active, latch, "
                "notification_target, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    item.name,
                    item.url,
                    item.selector,
                    item.target_price,
                    item.current_price,
                    _ts(item.last_checked_at),
                    int(item.active),
                    item.latch.value,
                    item.notification_target,
                    _ts(item.created_at),
                ),
            )
            self._conn.commit()
        item.id = cur.lastrowid
        logger.info("Added item %d (%s)", item.id, item.label)
        return item

    def get_item(self, item_id: int) -> TrackedItem:
        """Return the item with *item_id*.

        Raises:
            ItemNotFoundError: If no such item exists.
        """
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM items WHERE id = ?",
                (item_id,),
            ).fetchone()
        if row is None:
            raise ItemNotFoundError(item_id)
        return _row_to_item(row)

    def list_items(self) -> list[TrackedItem]:
        """Return every item ordered by id."""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM items ORDER BY id",
            ).fetchall()
        return [_row_to_item(r) for r in rows]

    def list_active_items(self) -> list[TrackedItem]:
        """Return items taking part in scheduled polling, ordered by id."""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM items "
                "WHERE active = 1 ORDER BY id",
            ).fetchall()
        return [_row_to_item(r) for r in rows]

    def save_item(self, item: TrackedItem) -> None:
        """Write every mutable field of an existing item.

        Raises:
            ItemNotFoundError: If the item was deleted in the meantime.
        """
        if item.id is None:
            raise ValueError("Cannot save an item without an id")
        with self._lock:
            cur = self._conn.execute(
                "UPDATE items SET name = ?, url = ?, selector = ?, "
                "target_price = ?, current_price = ?, "
                "last_checked_at = ?, active = ?, latch = ?, "
                "notification_target = ? WHERE id = ?",
                (
                    item.name,
                    item.url,
                    item.selector,
                    item.target_price,
                    item.current_price,
                    _ts(item.last_checked_at),
                    int(item.active),
                    item.latch.value,
                    item.notification_target,
                    item.id,
                ),
            )
            self._conn.commit()
        if cur.rowcount == 0:
            raise ItemNotFoundError(item.id)

    def touch_checked(self, item_id: int, checked_at: datetime) -> None:
        """Record a fetch attempt without changing any price state."""
        with self._lock:
            self._conn.execute(
                "UPDATE items SET last_checked_at = ? WHERE id = ?",
                (_ts(checked_at), item_id),
            )
            self._conn.commit()

    def set_active(self, item_id: int, active: bool) -> TrackedItem:
        """Enable or disable scheduled polling for an item."""
        item = self.get_item(item_id)
        item.active = active
        self.save_item(item)
        logger.info(
            "Item %d %s", item_id, "enabled" if active else "disabled",
        )
        return item

    def delete_item(self, item_id: int) -> None:
        """Delete an item together with its whole price history.

        Raises:
            ItemNotFoundError: If no such item exists.
        """
        with self._lock:
            cur = self._conn.execute(
                "DELETE FROM items WHERE id = ?", (item_id,),
            )
            self._conn.commit()
        if cur.rowcount == 0:
            raise ItemNotFoundError(item_id)
        logger.info("Deleted item %d and its history", item_id)

    # ── History ──────────────────────────────────────────

    def append_history(self, record: HistoryRecord) -> None:
        """Append one immutable price observation."""
        if record.item_id is None:
            raise ValueError("History record has no item id")
        with self._lock:
            self._conn.execute(
                "INSERT INTO price_history (item_id, price, recorded_at) "
                "VALUES (?, ?, ?)",
                (record.item_id, record.price, _ts(record.recorded_at)),
            )
            self._conn.commit()

    def save_observation(
        self, item: TrackedItem, record: HistoryRecord,
    ) -> None:
        """Persist an updated item and its new history record atomically."""
        if item.id is None or record.item_id != item.id:
            raise ValueError("History record does not belong to item")
        with self._lock:
            with self._conn:
                cur = self._conn.execute(
                    "UPDATE items SET current_price = ?, "
                    "last_checked_at = ?, latch = ? WHERE id = ?",
                    (
                        item.current_price,
                        _ts(item.last_checked_at),
                        item.latch.value,
                        item.id,
                    ),
                )
                if cur.rowcount == 0:
                    raise ItemNotFoundError(item.id)
                self._conn.execute(
                    "INSERT INTO price_history "
                    "(item_id, price, recorded_at) VALUES (?, ?, ?)",
                    (item.id, record.price, _ts(record.recorded_at)),
                )

    def get_history(self, item_id: int) -> list[HistoryRecord]:
        """Return all price observations for an item, oldest first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT item_id, price, recorded_at FROM price_history "
                "WHERE item_id = ? ORDER BY recorded_at ASC, id ASC",
                (item_id,),
            ).fetchall()
        return [
            HistoryRecord(
                item_id=r[0],
                price=r[1],
                recorded_at=datetime.fromisoformat(r[2]),
            )
            for r in rows
        ]

    def get_trend_summary(
        self, item_id: int,
    ) -> dict[str, object] | None:
        """Compute min / max / avg / count / latest price for an item."""
        with self._lock:
            row = self._conn.execute(
                "SELECT MIN(price), MAX(price), AVG(price), COUNT(id) "
                "FROM price_history WHERE item_id = ?",
                (item_id,),
            ).fetchone()
            if row is None or row[3] == 0:
                return None
            latest_row = self._conn.execute(
                "SELECT price FROM price_history WHERE item_id = ? "
                "ORDER BY recorded_at DESC, id DESC LIMIT 1",
                (item_id,),
            ).fetchone()
        return {
            "min": row[0],
            "max": row[1],
            "avg": round(row[2], 2),
            "count": row[3],
            "latest": latest_row[0] if latest_row else 0.0,
        }
