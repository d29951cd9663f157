"""
Read-only access to the flat SQLite export.
"""

import os
import pathlib
import sqlite3
from typing import Any, Dict, Iterator, List, Optional

import structlog

from .config.constants import DEFAULT_SOURCE_TABLE, SOURCE_COLUMNS
from .exceptions import SourceError
from .models import SourceRow

logger = structlog.get_logger(__name__)


class SqliteSource:
    """Pages rows out of the denormalized source table, ordered by id."""

    def __init__(self, db_path: str, table: str = DEFAULT_SOURCE_TABLE):
        self.db_path = db_path
        self.table = table
        self._conn: Optional[sqlite3.Connection] = None
        self._columns: List[str] = []

    def open(self) -> "SqliteSource":
        if self._conn is not None:
            return self
        if not os.path.isfile(self.db_path):
            raise SourceError(f"SQLite database not found: {self.db_path}")
        try:
            # as_uri percent-encodes characters such as # and ? that end a URI path
            uri = pathlib.Path(self.db_path).resolve().as_uri() + "?mode=ro"
            self._conn = sqlite3.connect(uri, uri=True)
            self._conn.row_factory = sqlite3.Row
            info = self._conn.execute(f"PRAGMA table_info({self.table})").fetchall()
        except sqlite3.Error as e:
            self.close()
            raise SourceError(f"Cannot read SQLite database {self.db_path}: {e}") from e

        if not info:
            self.close()
            raise SourceError(f"Table '{self.table}' not found in {self.db_path}")

        present = {row["name"] for row in info}
        if "id" not in present:
            self.close()
            raise SourceError(f"Table '{self.table}' has no id column")
        missing = [c for c in SOURCE_COLUMNS if c not in present]
        if missing:
            logger.warning("Source table is missing columns, they will read as NULL",
                           table=self.table, missing=missing)
        self._columns = [c for c in SOURCE_COLUMNS if c in present]
        logger.info("Opened SQLite source", path=self.db_path, table=self.table)
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SqliteSource":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise SourceError("Source is not open")
        return self._conn

    def _select(self) -> str:
        return f"SELECT {', '.join(self._columns)} FROM {self.table}"

    def _to_model(self, row: sqlite3.Row) -> SourceRow:
        data: Dict[str, Any] = {key: row[key] for key in row.keys()}
        # Text columns sometimes hold numbers in scraped exports
        for key in ("title", "speaker", "content_type", "language", "category", "tags",
                    "description", "date_recorded", "source_page", "scraped_date", "created_at"):
            if data.get(key) is not None and not isinstance(data[key], str):
                data[key] = str(data[key])
        for key in ("file_size_estimate", "duration_estimate"):
            value = data.get(key)
            if value is not None and not isinstance(value, int):
                try:
                    data[key] = int(float(value))
                except (TypeError, ValueError):
                    data[key] = None
        return SourceRow(**data)

    def count(self) -> int:
        return self.conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0]

    def fetch_batch(self, offset: int, limit: int) -> List[SourceRow]:
        try:
            rows = self.conn.execute(
                f"{self._select()} ORDER BY id LIMIT ? OFFSET ?", (limit, offset)
            ).fetchall()
        except sqlite3.Error as e:
            raise SourceError(f"Failed to read rows at offset {offset}: {e}") from e
        return [self._to_model(r) for r in rows]

    def iter_rows(self, page_size: int = 1000) -> Iterator[SourceRow]:
        offset = 0
        while True:
            batch = self.fetch_batch(offset, page_size)
            if not batch:
                return
            yield from batch
            offset += len(batch)

    def distinct_values(self, column: str) -> List[str]:
        if column not in self._columns:
            return []
        rows = self.conn.execute(
            f"SELECT DISTINCT {column} FROM {self.table} "
            f"WHERE {column} IS NOT NULL AND {column} != '' ORDER BY {column}"
        ).fetchall()
        return [str(r[0]) for r in rows]

    def count_by(self, column: str) -> Dict[str, int]:
        """Row counts grouped by a column (used by the status command)."""
        if column not in self._columns:
            return {}
        rows = self.conn.execute(
            f"SELECT {column}, COUNT(*) FROM {self.table} GROUP BY {column} ORDER BY {column}"
        ).fetchall()
        return {str(r[0]) if r[0] is not None else "(null)": r[1] for r in rows}
