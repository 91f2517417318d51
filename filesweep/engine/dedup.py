"""Content-addressed persistence of harvested files."""

from __future__ import annotations

import hashlib
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Callable

import structlog

from ..infra.storage import SQLiteManager, table_name_for


@dataclass(frozen=True, slots=True)
class OfferResult:
    inserted: bool
    reason: str | None = None


class DedupStore:
    """Store each distinct blob (and, by policy, each distinct body) once.

    The blob lookup before downloading is only an optimisation. Two offers
    racing for the same blob or the same content both get past it; the unique
    indexes decide which one lands.
    """

    def __init__(
        self,
        manager: SQLiteManager,
        db_path: Path,
        target_filename: str,
        unique_content_hash: bool = True,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.manager = manager
        self.db_path = db_path
        self.target_filename = target_filename
        self.table = table_name_for(target_filename)
        self.unique_content_hash = unique_content_hash
        self.logger = logger or structlog.get_logger("filesweep.dedup")
        # Serialises use of the shared connection object only.
        self._conn_lock = Lock()
        self._conn = self.manager.connect(db_path)
        try:
            self.manager.ensure_file_table(self._conn, self.table, unique_content_hash)
        except Exception:
            self.manager.close(db_path)
            raise

    def offer(
        self, url: str, blob_identity: str, content_provider: Callable[[], bytes]
    ) -> OfferResult:
        if self.has_blob(blob_identity):
            return OfferResult(False, "known_blob")
        content = content_provider()
        rejected = self._insert(url, blob_identity, content)
        if rejected:
            self.logger.debug("insert_rejected", url=url, blob=blob_identity, reason=rejected)
            return OfferResult(False, rejected)
        return OfferResult(True)

    def _insert(self, url: str, blob_identity: str, content: bytes) -> str | None:
        """Insert one row; return the rejection reason on a uniqueness clash."""

        with self._conn_lock:
            try:
                self._conn.execute(
                    f"INSERT INTO {self.table}(source_url, content, content_hash, blob_identity, fetched_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (
                        url,
                        sqlite3.Binary(content),
                        self.content_hash(content),
                        blob_identity,
                        datetime.now(timezone.utc).isoformat(),
                    ),
                )
                self._conn.commit()
            except sqlite3.IntegrityError as exc:
                self._conn.rollback()
                message = str(exc)
                if not message.startswith("UNIQUE constraint failed"):
                    raise
                return "duplicate_content" if "content_hash" in message else "duplicate_blob"
        return None

    def has_blob(self, blob_identity: str) -> bool:
        with self._conn_lock:
            cur = self._conn.execute(
                f"SELECT 1 FROM {self.table} WHERE blob_identity = ?", (blob_identity,)
            )
            return cur.fetchone() is not None

    def count(self) -> int:
        with self._conn_lock:
            return self._conn.execute(f"SELECT count(*) FROM {self.table}").fetchone()[0]

    def close(self) -> None:
        self.manager.close(self.db_path)

    @staticmethod
    def content_hash(content: bytes) -> str:
        return hashlib.sha256(content).hexdigest()


__all__ = ["DedupStore", "OfferResult"]
