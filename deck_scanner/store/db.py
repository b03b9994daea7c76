"""SQLite store for the deck catalog, pricing, scan history and sync queue."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Union

from ..core.types import (
    CatalogEntry,
    PricingRecord,
    PricingSnapshot,
    ScanRecord,
    SyncTask,
    SyncTaskKind,
    SyncTaskStatus,
    parse_timestamp,
    utc_now,
)
from ..utils.config import ensure_store_dir, settings
from ..utils.error_handler import ConstraintViolation, InitializationFailure
from ..utils.log import get_logger

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS decks (
        deck_id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        manufacturer TEXT NOT NULL,
        casino TEXT,
        visual_fingerprint TEXT NOT NULL UNIQUE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_decks_manufacturer ON decks(manufacturer)",
    "CREATE INDEX IF NOT EXISTS idx_decks_casino ON decks(casino)",
    """
    CREATE TABLE IF NOT EXISTS pricing (
        id TEXT PRIMARY KEY,
        deck_id TEXT NOT NULL UNIQUE REFERENCES decks(deck_id),
        buy_price REAL NOT NULL CHECK (buy_price >= 0),
        sell_price REAL NOT NULL CHECK (sell_price >= 0),
        last_updated TEXT NOT NULL,
        confidence_score REAL NOT NULL DEFAULT 0,
        data_source TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_pricing_last_updated ON pricing(last_updated)",
    """
    CREATE TABLE IF NOT EXISTS scan_history (
        id TEXT PRIMARY KEY,
        session_id TEXT NOT NULL,
        deck_id TEXT NOT NULL REFERENCES decks(deck_id),
        observed_at TEXT NOT NULL,
        confidence REAL NOT NULL,
        buy_price REAL NOT NULL,
        sell_price REAL NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_scan_history_session ON scan_history(session_id)",
    "CREATE INDEX IF NOT EXISTS idx_scan_history_observed ON scan_history(observed_at)",
    "CREATE INDEX IF NOT EXISTS idx_scan_history_deck ON scan_history(deck_id)",
    """
    CREATE TABLE IF NOT EXISTS sync_queue (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        kind TEXT NOT NULL,
        payload_key TEXT NOT NULL,
        enqueued_at TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'Pending'
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_sync_queue_status ON sync_queue(status, id)",
)


class DeckStore:
    """Durable keyed storage for the four deck scanner collections.

    Every public write commits before it returns. Writes to different
    collections are separate transactions: callers that need a scan record
    and its sync task issue two calls and own the gap between them.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        self.logger = get_logger(__name__)
        self.db_path = ensure_store_dir(str(db_path or settings.STORE_DB_PATH))
        self._init_database()

    def _init_database(self):
        """Create tables and indexes."""
        try:
            with self._connect() as conn:
                for statement in SCHEMA:
                    conn.execute(statement)
            self.logger.info("Store initialized", db_path=str(self.db_path))
        except sqlite3.Error as e:
            self.logger.error("Error initializing store", error=str(e))
            raise InitializationFailure(
                "Could not open deck store", details={"db_path": str(self.db_path), "error": str(e)}
            ) from e

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _write(self, sql: str, params: tuple, operation: str, **log_context) -> sqlite3.Cursor:
        """Run a single write, translating integrity errors."""
        try:
            with self._connect() as conn:
                return conn.execute(sql, params)
        except sqlite3.IntegrityError as e:
            self.logger.warning("Constraint violation", operation=operation, error=str(e), **log_context)
            raise ConstraintViolation(
                f"{operation} rejected: {e}", details={"operation": operation, **log_context}
            ) from e
        except sqlite3.Error as e:
            self.logger.error("Store write failed", operation=operation, error=str(e), **log_context)
            raise

    # Catalog

    def upsert_catalog_entry(self, entry: CatalogEntry) -> None:
        """Insert or update a deck; a fingerprint owned by another deck is rejected."""
        self._write(
            """
            INSERT INTO decks (deck_id, name, manufacturer, casino, visual_fingerprint)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(deck_id) DO UPDATE SET
                name = excluded.name,
                manufacturer = excluded.manufacturer,
                casino = excluded.casino,
                visual_fingerprint = excluded.visual_fingerprint
            """,
            (entry.id, entry.name, entry.manufacturer, entry.casino, entry.visual_fingerprint),
            "upsert_catalog_entry",
            deck_id=entry.id,
        )
        self.logger.debug("Catalog entry upserted", deck_id=entry.id, name=entry.name)

    def get_catalog_entry(self, deck_id: str) -> Optional[CatalogEntry]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM decks WHERE deck_id = ?", (deck_id,)).fetchone()
        return self._row_to_catalog(row) if row else None

    def get_catalog_entry_by_fingerprint(self, fingerprint: str) -> Optional[CatalogEntry]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM decks WHERE visual_fingerprint = ?", (fingerprint,)
            ).fetchone()
        return self._row_to_catalog(row) if row else None

    def list_catalog_entries(self) -> List[CatalogEntry]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM decks ORDER BY deck_id").fetchall()
        return [self._row_to_catalog(row) for row in rows]

    @staticmethod
    def _row_to_catalog(row: sqlite3.Row) -> CatalogEntry:
        return CatalogEntry(
            id=row["deck_id"],
            name=row["name"],
            manufacturer=row["manufacturer"],
            casino=row["casino"],
            visual_fingerprint=row["visual_fingerprint"],
        )

    # Pricing

    def upsert_pricing(self, record: PricingRecord) -> None:
        """Insert or update a pricing record; a second record for the same deck is rejected."""
        cursor = self._write(
            """
            INSERT INTO pricing
            (id, deck_id, buy_price, sell_price, last_updated, confidence_score, data_source)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                buy_price = excluded.buy_price,
                sell_price = excluded.sell_price,
                last_updated = excluded.last_updated,
                confidence_score = excluded.confidence_score,
                data_source = excluded.data_source
            WHERE pricing.deck_id = excluded.deck_id
            """,
            (
                record.id,
                record.catalog_id,
                record.buy_price,
                record.sell_price,
                record.last_updated.isoformat(),
                record.confidence_score,
                record.data_source,
            ),
            "upsert_pricing",
            pricing_id=record.id,
            deck_id=record.catalog_id,
        )
        if cursor.rowcount == 0:
            # The id is already held by another deck
            self.logger.warning(
                "Constraint violation", operation="upsert_pricing",
                error="pricing id owned by another deck", pricing_id=record.id, deck_id=record.catalog_id,
            )
            raise ConstraintViolation(
                "upsert_pricing rejected: pricing id belongs to another deck",
                details={"operation": "upsert_pricing", "pricing_id": record.id, "deck_id": record.catalog_id},
            )
        self.logger.debug("Pricing upserted", pricing_id=record.id, deck_id=record.catalog_id)

    def get_pricing(self, pricing_id: str) -> Optional[PricingRecord]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM pricing WHERE id = ?", (pricing_id,)).fetchone()
        return self._row_to_pricing(row) if row else None

    def get_pricing_by_catalog_id(self, deck_id: str) -> Optional[PricingRecord]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM pricing WHERE deck_id = ?", (deck_id,)).fetchone()
        return self._row_to_pricing(row) if row else None

    @staticmethod
    def _row_to_pricing(row: sqlite3.Row) -> PricingRecord:
        return PricingRecord(
            id=row["id"],
            catalog_id=row["deck_id"],
            buy_price=row["buy_price"],
            sell_price=row["sell_price"],
            last_updated=parse_timestamp(row["last_updated"]),
            confidence_score=row["confidence_score"],
            data_source=row["data_source"],
        )

    # Scan history

    def add_scan_record(self, record: ScanRecord) -> None:
        """Insert a scan record. Records are never updated."""
        self._write(
            """
            INSERT INTO scan_history
            (id, session_id, deck_id, observed_at, confidence, buy_price, sell_price)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.session_id,
                record.catalog_id,
                record.observed_at.isoformat(),
                record.classification_confidence,
                record.pricing.buy_price,
                record.pricing.sell_price,
            ),
            "add_scan_record",
            scan_id=record.id,
            deck_id=record.catalog_id,
        )
        self.logger.debug("Scan record inserted", scan_id=record.id, session_id=record.session_id)

    def get_scan_record(self, scan_id: str) -> Optional[ScanRecord]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM scan_history WHERE id = ?", (scan_id,)).fetchone()
        return self._row_to_scan(row) if row else None

    def get_scan_records_by_session(self, session_id: str) -> List[ScanRecord]:
        """Scan records of a session in the order they were observed."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM scan_history WHERE session_id = ? ORDER BY observed_at, rowid",
                (session_id,),
            ).fetchall()
        return [self._row_to_scan(row) for row in rows]

    def find_orphaned_scan_records(self) -> List[ScanRecord]:
        """Scan records whose HistoryUpload task was never enqueued."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT s.* FROM scan_history s
                LEFT JOIN sync_queue q
                    ON q.kind = ? AND q.payload_key = s.id
                WHERE q.id IS NULL
                ORDER BY s.observed_at, s.rowid
                """,
                (SyncTaskKind.HISTORY_UPLOAD.value,),
            ).fetchall()
        return [self._row_to_scan(row) for row in rows]

    @staticmethod
    def _row_to_scan(row: sqlite3.Row) -> ScanRecord:
        return ScanRecord(
            id=row["id"],
            session_id=row["session_id"],
            catalog_id=row["deck_id"],
            observed_at=parse_timestamp(row["observed_at"]),
            classification_confidence=row["confidence"],
            pricing=PricingSnapshot(buy_price=row["buy_price"], sell_price=row["sell_price"]),
        )

    # Sync queue

    def enqueue_sync_task(
        self, kind: SyncTaskKind, payload_key: str, enqueued_at: Optional[datetime] = None
    ) -> int:
        """Append a pending task and return its monotonic id."""
        cursor = self._write(
            "INSERT INTO sync_queue (kind, payload_key, enqueued_at, status) VALUES (?, ?, ?, ?)",
            (
                SyncTaskKind(kind).value,
                payload_key,
                (enqueued_at or utc_now()).isoformat(),
                SyncTaskStatus.PENDING.value,
            ),
            "enqueue_sync_task",
            kind=SyncTaskKind(kind).value,
            payload_key=payload_key,
        )
        task_id = cursor.lastrowid
        self.logger.debug("Sync task enqueued", task_id=task_id, kind=SyncTaskKind(kind).value)
        return task_id

    def get_sync_task(self, task_id: int) -> Optional[SyncTask]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM sync_queue WHERE id = ?", (task_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def list_pending_sync_tasks(self, limit: Optional[int] = None) -> List[SyncTask]:
        """Pending tasks in enqueue order."""
        sql = "SELECT * FROM sync_queue WHERE status = ? ORDER BY id"
        params: tuple = (SyncTaskStatus.PENDING.value,)
        if limit is not None:
            sql += " LIMIT ?"
            params += (limit,)
        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_task(row) for row in rows]

    def mark_sync_task_done(self, task_id: int) -> bool:
        """Mark a task Done. Returns False if it was already Done or does not exist."""
        cursor = self._write(
            "UPDATE sync_queue SET status = ? WHERE id = ? AND status = ?",
            (SyncTaskStatus.DONE.value, task_id, SyncTaskStatus.PENDING.value),
            "mark_sync_task_done",
            task_id=task_id,
        )
        return cursor.rowcount > 0

    def delete_done_sync_tasks(self) -> int:
        cursor = self._write(
            "DELETE FROM sync_queue WHERE status = ?",
            (SyncTaskStatus.DONE.value,),
            "delete_done_sync_tasks",
        )
        self.logger.info("Done sync tasks removed", count=cursor.rowcount)
        return cursor.rowcount

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> SyncTask:
        return SyncTask(
            id=row["id"],
            kind=SyncTaskKind(row["kind"]),
            payload_key=row["payload_key"],
            enqueued_at=parse_timestamp(row["enqueued_at"]),
            status=SyncTaskStatus(row["status"]),
        )
