# src/models/history_record.py

"""Immutable price observation for a tracked item."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class HistoryRecord:
    """A single successful price extraction at a point in time."""

    item_id: int | None
    price: float
    recorded_at: datetime
