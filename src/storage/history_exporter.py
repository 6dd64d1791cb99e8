# src/storage/history_exporter.py

"""Write an item's price history to JSON or CSV files."""

import csv
import json
import logging
import re
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings
from src.models.history_record import HistoryRecord
from src.models.tracked_item import TrackedItem

logger = logging.getLogger("price_watch.export")

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_-]+")


def _slug(item: TrackedItem) -> str:
    """Filesystem-safe stem derived from the item's id and name."""
    name = _UNSAFE_CHARS_RE.sub("_", item.name).strip("_")[:40]
    return f"item{item.id}_{name}" if name else f"item{item.id}"


class HistoryExporter:
    """Saves price history snapshots to ``EXPORTS_DIR``."""

    def __init__(self, exports_dir: Path | None = None) -> None:
        self.exports_dir: Path = exports_dir or Settings.EXPORTS_DIR
        self.exports_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(
            "HistoryExporter initialised, exports_dir=%s", self.exports_dir,
        )

    def _target(self, item: TrackedItem, suffix: str) -> Path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.exports_dir / f"{_slug(item)}_{timestamp}.{suffix}"

    def export_json(
        self, item: TrackedItem, records: list[HistoryRecord],
    ) -> Path:
        """Write item metadata plus every observation to a JSON file."""
        filepath = self._target(item, "json")
        data = {
            "id": item.id,
            "name": item.name,
            "url": item.url,
            "target_price": item.target_price,
            "current_price": item.current_price,
            "history": [
                {
                    "price": r.price,
                    "recorded_at": r.recorded_at.isoformat(),
                }
                for r in records
            ],
        }
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

        logger.info(
            "Exported %d history records for item %s to %s",
            len(records),
            item.id,
            filepath,
        )
        return filepath

    def export_csv(
        self, item: TrackedItem, records: list[HistoryRecord],
    ) -> Path:
        """Write observations as ``Recorded At,Price`` rows, oldest first."""
        filepath = self._target(item, "csv")
        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(["Recorded At", "Price"])
            for r in records:
                writer.writerow([r.recorded_at.isoformat(), r.price])

        logger.info(
            "Exported %d history records for item %s to %s",
            len(records),
            item.id,
            filepath,
        )
        return filepath
