"""Storage for drawings."""
from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    # Fixed width keeps lexical order equal to time order.
    return _as_utc(value).isoformat(timespec="microseconds")


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value)


@dataclass
class DrawingRecord:
    id: str
    title: str
    drawing_data: bytes
    created_date: datetime
    modified_date: datetime
    thumbnail: Optional[bytes] = None


def _row_to_record(row: sqlite3.Row) -> DrawingRecord:
    thumbnail = row["thumbnail"]
    return DrawingRecord(
        id=row["id"],
        title=row["title"],
        drawing_data=bytes(row["drawing_data"]),
        created_date=_parse_timestamp(row["created_date"]),
        modified_date=_parse_timestamp(row["modified_date"]),
        thumbnail=bytes(thumbnail) if thumbnail is not None else None,
    )


class DrawingRepository:
    """CRUD over drawing records kept in a local SQLite file.

    Every call opens its own connection and returns plain values. Database
    errors are logged and reported as ``None``/``False``/``[]`` so a broken
    store never takes the UI down with it.
    """

    def __init__(self, db_path: Path, now: Optional[Clock] = None) -> None:
        self.db_path = Path(db_path)
        self._now = now or _utc_now

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def init_schema(self) -> bool:
        try:
            with self._session() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS drawings (
                        id TEXT PRIMARY KEY,
                        title TEXT NOT NULL,
                        drawing_data BLOB NOT NULL,
                        created_date TEXT NOT NULL,
                        modified_date TEXT NOT NULL,
                        thumbnail BLOB
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_drawings_modified
                    ON drawings(modified_date)
                    """
                )
        except sqlite3.Error as exc:
            logger.error("Failed to initialise drawing store %s: %s", self.db_path, exc)
            return False
        return True

    def is_available(self) -> bool:
        """Report whether the store is reachable and has the drawings table."""
        try:
            with self._session() as conn:
                columns = {row["name"] for row in conn.execute("PRAGMA table_info(drawings)")}
        except sqlite3.Error as exc:
            logger.error("Drawing store %s is unavailable: %s", self.db_path, exc)
            return False
        required = {"id", "title", "drawing_data", "created_date", "modified_date", "thumbnail"}
        missing = required - columns
        if missing:
            logger.error("Drawing store %s is missing columns: %s", self.db_path, ", ".join(sorted(missing)))
            return False
        return True

    def create(self, title: str, drawing_data: bytes, thumbnail: Optional[bytes] = None) -> Optional[str]:
        drawing_id = str(uuid.uuid4())
        stamp = _format_timestamp(self._now())
        try:
            with self._session() as conn:
                conn.execute(
                    """
                    INSERT INTO drawings
                    (id, title, drawing_data, created_date, modified_date, thumbnail)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (drawing_id, title, drawing_data, stamp, stamp, thumbnail),
                )
        except sqlite3.Error as exc:
            logger.error("Failed to save drawing %r: %s", title, exc)
            return None
        logger.info("Drawing %s saved as %r", drawing_id, title)
        return drawing_id

    def update(
        self,
        drawing_id: str,
        drawing_data: bytes,
        thumbnail: Optional[bytes] = None,
        title: Optional[str] = None,
    ) -> bool:
        existing = self.get(drawing_id)
        if existing is None:
            logger.warning("Cannot update drawing %s: not found", drawing_id)
            return False
        modified = max(_as_utc(self._now()), existing.created_date)
        # None keeps the stored thumbnail and title.
        columns = ["drawing_data = ?", "modified_date = ?"]
        values: List[Any] = [drawing_data, _format_timestamp(modified)]
        if thumbnail is not None:
            columns.append("thumbnail = ?")
            values.append(thumbnail)
        if title is not None:
            columns.append("title = ?")
            values.append(title)
        values.append(drawing_id)
        try:
            with self._session() as conn:
                conn.execute(f"UPDATE drawings SET {', '.join(columns)} WHERE id = ?", values)
        except sqlite3.Error as exc:
            logger.error("Failed to update drawing %s: %s", drawing_id, exc)
            return False
        logger.info("Drawing %s updated", drawing_id)
        return True

    def get(self, drawing_id: str) -> Optional[DrawingRecord]:
        try:
            with self._session() as conn:
                row = conn.execute("SELECT * FROM drawings WHERE id = ?", (drawing_id,)).fetchone()
        except sqlite3.Error as exc:
            logger.error("Failed to load drawing %s: %s", drawing_id, exc)
            return None
        if row is None:
            return None
        return _row_to_record(row)

    def fetch_all(self) -> List[DrawingRecord]:
        try:
            with self._session() as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM drawings
                    ORDER BY modified_date DESC, created_date DESC
                    """
                ).fetchall()
        except sqlite3.Error as exc:
            logger.error("Failed to fetch drawings: %s", exc)
            return []
        return [_row_to_record(row) for row in rows]

    def delete(self, drawing_id: str) -> bool:
        try:
            with self._session() as conn:
                cursor = conn.execute("DELETE FROM drawings WHERE id = ?", (drawing_id,))
                affected = cursor.rowcount
        except sqlite3.Error as exc:
            logger.error("Failed to delete drawing %s: %s", drawing_id, exc)
            return False
        if affected == 0:
            logger.debug("Drawing %s already absent", drawing_id)
            return False
        logger.info("Drawing %s deleted", drawing_id)
        return True
