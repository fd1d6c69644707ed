# Benefit Vault - SQLite Connection Helper
#
# Every vault SQLite database uses `connect()` from this module instead of
# raw `sqlite3.connect()`, so each connection gets:
#
#   - WAL journal mode (readers never block the single writer)
#   - busy_timeout to avoid SQLITE_BUSY while a write is in flight
#   - foreign_keys enforcement
#
# Vault operations hop between worker threads (asyncio.to_thread), so
# connections are opened per call and never shared across threads.

import sqlite3
from pathlib import Path
from typing import Union


def connect(
    db_path: Union[str, Path],
    *,
    row_factory: bool = False,
) -> sqlite3.Connection:
    """Open a SQLite connection with WAL mode and safe PRAGMAs.

    Args:
        db_path: Path to the database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.

    Returns:
        sqlite3.Connection with WAL mode, busy_timeout, and foreign_keys.
    """
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    conn.execute("PRAGMA foreign_keys=ON")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn
