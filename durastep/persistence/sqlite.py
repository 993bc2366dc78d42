"""SQLite implementation of the step ledger."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Optional, TypeVar

from ..exceptions import StorageFailureError
from ..utils.retry import run_with_retry
from .ledger import StepLedger, now_millis
from .models import StepRecord, StepStatus, WorkflowSummary

logger = logging.getLogger(__name__)

T = TypeVar("T")

_BUSY_MARKERS = ("database is locked", "database is busy", "database table is locked")


def is_busy_error(exc: BaseException) -> bool:
    """Whether ``exc`` is SQLite reporting write contention."""
    return isinstance(exc, sqlite3.OperationalError) and any(
        marker in str(exc).lower() for marker in _BUSY_MARKERS
    )


class SQLiteStepLedger(StepLedger):
    """Persist step records using SQLite.

    All writes go through one lock and one explicit transaction each.
    Reads share the connection but do not take the lock.
    """

    def __init__(
        self,
        db_path: str | Path,
        retry_attempts: int = 5,
        retry_delay: float = 0.1,
        retry_backoff: float = 1.0,
        clock: Callable[[], int] = now_millis,
    ):
        self.db_path = str(db_path)
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.retry_backoff = retry_backoff
        self._clock = clock
        self._write_lock = Lock()
        try:
            self._conn = sqlite3.connect(
                self.db_path, check_same_thread=False, isolation_level=None
            )
            self._conn.row_factory = sqlite3.Row
            self._ensure_schema()
        except sqlite3.Error as exc:
            raise StorageFailureError(
                f"Failed to open step ledger at {self.db_path}: {exc}"
            ) from exc
        logger.debug(f"Step ledger opened at {self.db_path}")

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        if self.db_path != ":memory:":
            cur.execute("PRAGMA journal_mode=WAL")
        cur.execute("PRAGMA busy_timeout=5000")
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS steps (
                workflow_id TEXT NOT NULL,
                step_id TEXT NOT NULL,
                status TEXT NOT NULL,
                output TEXT,
                updated_at INTEGER NOT NULL,
                PRIMARY KEY (workflow_id, step_id)
            )
            """
        )

    # ------------------------------------------------------------------
    # Helper methods
    def _write(self, query: str, *params: Any) -> None:
        def attempt() -> None:
            cur = self._conn.cursor()
            cur.execute("BEGIN IMMEDIATE")
            try:
                cur.execute(query, params)
                cur.execute("COMMIT")
            except BaseException:
                if self._conn.in_transaction:
                    self._conn.execute("ROLLBACK")
                raise

        with self._write_lock:
            self._guard(
                lambda: run_with_retry(
                    attempt,
                    attempts=self.retry_attempts,
                    delay=self.retry_delay,
                    backoff=self.retry_backoff,
                    is_retryable=is_busy_error,
                )
            )

    def _read(self, fetch: Callable[[sqlite3.Cursor], T], query: str, *params: Any) -> T:
        def attempt() -> T:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return fetch(cur)

        return self._guard(attempt)

    @staticmethod
    def _guard(operation: Callable[[], T]) -> T:
        try:
            return operation()
        except sqlite3.Error as exc:
            raise StorageFailureError(f"Step ledger I/O error: {exc}") from exc

    @staticmethod
    def _to_record(row: sqlite3.Row) -> StepRecord:
        return StepRecord(
            workflow_id=row["workflow_id"],
            step_id=row["step_id"],
            status=row["status"],
            output=row["output"],
            updated_at=row["updated_at"],
        )

    # ------------------------------------------------------------------
    # Ledger API
    def get(self, workflow_id: str, step_id: str) -> Optional[StepRecord]:
        row = self._read(
            lambda cur: cur.fetchone(),
            "SELECT workflow_id, step_id, status, output, updated_at FROM steps "
            "WHERE workflow_id = ? AND step_id = ?",
            workflow_id,
            step_id,
        )
        return self._to_record(row) if row else None

    def insert_in_progress(self, workflow_id: str, step_id: str) -> None:
        self._write(
            "INSERT OR REPLACE INTO steps (workflow_id, step_id, status, output, updated_at) "
            "VALUES (?, ?, ?, NULL, ?)",
            workflow_id,
            step_id,
            StepStatus.IN_PROGRESS.value,
            self._clock(),
        )

    def mark_completed(self, workflow_id: str, step_id: str, output: str) -> None:
        self._write(
            "UPDATE steps SET status = ?, output = ?, updated_at = ? "
            "WHERE workflow_id = ? AND step_id = ?",
            StepStatus.COMPLETED.value,
            output,
            self._clock(),
            workflow_id,
            step_id,
        )

    def list_steps(self, workflow_id: str) -> list[StepRecord]:
        rows = self._read(
            lambda cur: cur.fetchall(),
            "SELECT workflow_id, step_id, status, output, updated_at FROM steps "
            "WHERE workflow_id = ? ORDER BY updated_at, step_id",
            workflow_id,
        )
        return [self._to_record(r) for r in rows]

    def list_workflows(self) -> list[WorkflowSummary]:
        rows = self._read(
            lambda cur: cur.fetchall(),
            """
            SELECT workflow_id,
                   COUNT(*) AS total_steps,
                   SUM(CASE WHEN status = ? THEN 1 ELSE 0 END) AS completed_steps,
                   MAX(updated_at) AS last_updated_at
            FROM steps
            GROUP BY workflow_id
            ORDER BY workflow_id
            """,
            StepStatus.COMPLETED.value,
        )
        return [
            WorkflowSummary(
                workflow_id=r["workflow_id"],
                total_steps=r["total_steps"],
                completed_steps=r["completed_steps"],
                last_updated_at=r["last_updated_at"],
            )
            for r in rows
        ]

    def close(self) -> None:
        with self._write_lock:
            self._conn.close()
