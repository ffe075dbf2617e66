"""SQLite adapter for storing and querying run history."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from ...core.domain import RunPage, RunRecord
from ...core.domain.exceptions import PersistenceError, RunNotFoundError
from ...core.ports.run_store_port import RunStorePort

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

SUMMARY_COLUMNS = (
    "id, question, answer, topk, threshold, matched_count, duration_ms, created_at"
)


class SQLiteRunStore(RunStorePort):
    """Run history kept in a ``run_history`` table.

    ``steps`` and ``sources`` are stored as JSON text so their shape can grow
    without schema changes. Each call opens its own connection, which keeps
    the store usable from worker threads.
    """

    def __init__(self, db_path: str | Path = "data/runs.db") -> None:
        """Initialize the SQLite run store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._ensure_db_dir()
        self._init_db()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Initialize the database schema."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS run_history (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        question TEXT NOT NULL,
                        answer TEXT,
                        topk INTEGER,
                        threshold REAL,
                        matched_count INTEGER NOT NULL DEFAULT 0,
                        duration_ms INTEGER NOT NULL DEFAULT 0,
                        steps TEXT NOT NULL DEFAULT '[]',
                        sources TEXT NOT NULL DEFAULT '[]',
                        created_at TEXT NOT NULL
                    )
                """)

                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_run_history_created_at
                    ON run_history(created_at)
                """)

                conn.commit()

        except sqlite3.Error as e:
            logger.error(f"Failed to initialize database: {e}")
            raise PersistenceError(
                "Failed to initialize run history database",
                cause=e,
                context={"db_path": str(self.db_path)},
            ) from e

    def insert_run(self, record: RunRecord) -> int:
        """Insert a run record.

        Args:
            record: The record to store.

        Returns:
            ID of the inserted record.

        Raises:
            PersistenceError: If the write fails.
        """
        data = record.to_dict()
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO run_history (
                        question, answer, topk, threshold, matched_count,
                        duration_ms, steps, sources, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        data["question"],
                        data["answer"],
                        data["topk"],
                        data["threshold"],
                        data["matched_count"],
                        data["duration_ms"],
                        json.dumps(data["steps"], ensure_ascii=False),
                        json.dumps(data["sources"], ensure_ascii=False),
                        data["created_at"],
                    ),
                )
                conn.commit()
                return cursor.lastrowid or 0
        except sqlite3.Error as e:
            logger.error(f"Failed to insert run: {e}")
            raise PersistenceError("Failed to insert run record", cause=e) from e

    def list_runs(self, page: int = 1, page_size: int = 20) -> RunPage:
        """Return one page of run summaries, newest first.

        Args:
            page: 1-based page number.
            page_size: Items per page (capped at 100).

        Returns:
            RunPage whose items carry no steps or sources.
        """
        page = max(1, page)
        page_size = min(max(1, page_size), MAX_PAGE_SIZE)
        offset = (page - 1) * page_size

        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                total = cursor.execute("SELECT count(*) FROM run_history").fetchone()[0]
                rows = cursor.execute(
                    f"""
                    SELECT {SUMMARY_COLUMNS} FROM run_history
                    ORDER BY created_at DESC, id DESC
                    LIMIT ? OFFSET ?
                    """,
                    (page_size, offset),
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to list runs: {e}")
            raise PersistenceError("Failed to list runs", cause=e) from e

        return RunPage(
            items=[self._row_to_record(row) for row in rows],
            total=total,
            page=page,
            page_size=page_size,
        )

    def get_run(self, run_id: int) -> RunRecord:
        """Fetch one run with its steps and sources.

        Raises:
            RunNotFoundError: If no run has this id.
        """
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT * FROM run_history WHERE id = ?", (run_id,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to fetch run {run_id}: {e}")
            raise PersistenceError("Failed to fetch run", cause=e) from e

        if row is None:
            raise RunNotFoundError(f"Run {run_id} not found", context={"run_id": run_id})
        return self._row_to_record(row)

    def ping(self) -> bool:
        """Check that the database answers queries."""
        try:
            with self._connect() as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error as e:
            logger.warning(f"Run store not reachable: {e}")
            return False

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> RunRecord:
        data: dict[str, Any] = dict(row)
        data["steps"] = json.loads(data.get("steps") or "[]")
        data["sources"] = json.loads(data.get("sources") or "[]")
        return RunRecord.from_dict(data)
