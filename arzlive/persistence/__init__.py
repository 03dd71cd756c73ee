"""Durable local storage (aiosqlite key/value)."""

from arzlive.persistence.database import Database
from arzlive.persistence.state_store import StateStore, namespaced

__all__ = ["Database", "StateStore", "namespaced"]
