"""Per-instrument price history: retention, persistence and backfill."""

from arzlive.history.backfill import BackfillGenerator, RandomBackfill
from arzlive.history.store import HISTORY_KEY, HistoryStore, parse_history_payload

__all__ = [
    "HISTORY_KEY",
    "BackfillGenerator",
    "HistoryStore",
    "RandomBackfill",
    "parse_history_payload",
]
