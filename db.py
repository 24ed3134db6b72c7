"""
db.py
SQLite helpers + initialization (creates DB/tables, seeds the default supervisor, etc.)
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime

import config

logger = logging.getLogger(__name__)

DB_FILE = config.DB_FILE


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def executemany(sql: str, seq_of_params: list[tuple]) -> None:
    with get_conn() as conn:
        conn.executemany(sql, seq_of_params)


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def upsert_many(table: str, rows: list[dict]) -> None:
    """
    Insert-or-update by primary key `id`, all rows in one commit.
    Columns not present in the rows are left untouched on update.
    """
    if not rows:
        return
    cols = list(rows[0].keys())
    updates = ", ".join(f"{c}=excluded.{c}" for c in cols if c != "id")
    sql = (
        f"INSERT INTO {table}({', '.join(cols)}) VALUES({', '.join('?' for _ in cols)}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates}"
    )
    executemany(sql, [tuple(r[c] for c in cols) for r in rows])


def _create_tables() -> None:
    execute(
        """
        CREATE TABLE IF NOT EXISTS officers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            role TEXT NOT NULL CHECK(role IN ('OFFICER','SUPERVISOR')),
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS members (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            phone TEXT NOT NULL,
            fellowship TEXT NOT NULL,
            status TEXT NOT NULL CHECK(status IN ('ACTIVE','PROVISIONAL')),
            ytd_total REAL NOT NULL DEFAULT 0,
            last_gift_date TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    # member_id/batch_id are plain columns: member deletion cascades in store.py
    execute(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            id TEXT PRIMARY KEY,
            batch_id TEXT NOT NULL,
            member_id TEXT NOT NULL,
            member_name TEXT NOT NULL,
            fellowship TEXT NOT NULL,
            amount REAL NOT NULL CHECK(amount > 0),
            method TEXT NOT NULL CHECK(method IN ('CASH','MOMO','CHECK')),
            timestamp TEXT NOT NULL,
            officer_id TEXT NOT NULL,
            officer_name TEXT
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS batches (
            id TEXT PRIMARY KEY,
            date TEXT NOT NULL,
            status TEXT NOT NULL CHECK(status IN ('OPEN','COUNTING','FINALIZED','SYNCED')),
            total_system REAL NOT NULL DEFAULT 0,
            total_cash REAL NOT NULL DEFAULT 0,
            variance REAL NOT NULL DEFAULT 0,
            finalized_by TEXT
        )
        """
    )

    execute("CREATE INDEX IF NOT EXISTS idx_transactions_member ON transactions(member_id)")
    execute("CREATE INDEX IF NOT EXISTS idx_transactions_batch ON transactions(batch_id)")

    # Small settings table (used to force password change on first login)
    execute(
        """
        CREATE TABLE IF NOT EXISTS app_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )


def _get_setting(key: str, default: str | None = None) -> str | None:
    row = fetch_one("SELECT value FROM app_settings WHERE key = ?", (key,))
    if row:
        return str(row["value"])
    return default


def _set_setting(key: str, value: str) -> None:
    execute(
        """
        INSERT INTO app_settings(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def init_db(default_admin_hash: str) -> None:
    """
    Initialize the database.
    - Create tables
    - Insert default supervisor (admin) if no officer exists
    - Force password change on first login
    """
    _create_tables()

    officer = fetch_one("SELECT id FROM officers LIMIT 1")
    if not officer:
        now = datetime.utcnow().isoformat(timespec="seconds")
        execute(
            "INSERT INTO officers(username, name, role, password_hash, created_at) VALUES(?,?,?,?,?)",
            ("admin", "Administrator", "SUPERVISOR", default_admin_hash, now),
        )
        _set_setting("force_password_change", "1")
        logger.info("Seeded default supervisor account in %s", DB_FILE)
    else:
        if _get_setting("force_password_change") is None:
            _set_setting("force_password_change", "0")


def is_force_password_change() -> bool:
    return _get_setting("force_password_change") == "1"


def clear_force_password_change() -> None:
    _set_setting("force_password_change", "0")
