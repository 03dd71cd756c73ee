"""SQL DDL constant — SQLite schema.

One key/value table; every persisted value is a JSON document stored
under a namespaced key. Created idempotently with IF NOT EXISTS.
"""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS app_state (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""
