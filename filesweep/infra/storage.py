"""SQLite connection management and harvested-file table schema."""

from __future__ import annotations

import re
import sqlite3
from pathlib import Path
from threading import Lock
from typing import Dict

_UNSAFE_CHARS = re.compile(r"[^0-9A-Za-z_]+")


class ContentPolicyError(RuntimeError):
    """Stored rows conflict with the requested content-hash uniqueness policy."""


def table_name_for(filename: str) -> str:
    """Derive a SQL-safe table name from a target filename.

    ``package.json`` becomes ``package_json``; names starting with a digit are
    prefixed with ``t_``.
    """

    slug = _UNSAFE_CHARS.sub("_", filename.strip().lower()).strip("_")
    if not slug:
        raise ValueError(f"Cannot derive a table name from {filename!r}")
    if slug[0].isdigit():
        slug = f"t_{slug}"
    return slug


class SQLiteManager:
    """Manage SQLite connections with basic schema guarantees."""

    def __init__(self) -> None:
        self._connections: Dict[Path, sqlite3.Connection] = {}
        self._lock = Lock()

    def connect(self, path: Path) -> sqlite3.Connection:
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            if path not in self._connections:
                conn = sqlite3.connect(path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                self._connections[path] = conn
            return self._connections[path]

    def ensure_file_table(
        self, conn: sqlite3.Connection, table: str, unique_content_hash: bool = True
    ) -> None:
        """Create the harvested-file table and its uniqueness constraints."""

        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source_url TEXT NOT NULL,
                content BLOB NOT NULL,
                content_hash TEXT NOT NULL,
                blob_identity TEXT NOT NULL,
                fetched_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            f"CREATE UNIQUE INDEX IF NOT EXISTS {table}_blob_identity_uq ON {table}(blob_identity)"
        )
        if unique_content_hash:
            try:
                conn.execute(
                    f"CREATE UNIQUE INDEX IF NOT EXISTS {table}_content_hash_uq ON {table}(content_hash)"
                )
            except sqlite3.IntegrityError as exc:
                conn.rollback()
                raise ContentPolicyError(
                    f"Table {table} already holds duplicate content; "
                    "keep unique_content_hash disabled or remove the duplicate rows first"
                ) from exc
        else:
            conn.execute(f"DROP INDEX IF EXISTS {table}_content_hash_uq")
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS {table}_content_hash_ix ON {table}(content_hash)"
            )
        conn.commit()

    def close(self, path: Path) -> None:
        with self._lock:
            conn = self._connections.pop(path, None)
        if conn is not None:
            conn.close()

    def close_all(self) -> None:
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()


__all__ = ["ContentPolicyError", "SQLiteManager", "table_name_for"]
