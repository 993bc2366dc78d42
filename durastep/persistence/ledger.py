"""Ledger abstraction for durable step state."""

from __future__ import annotations

import time
from typing import Optional, Protocol

from .models import StepRecord, WorkflowSummary


def now_millis() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class StepLedger(Protocol):
    """Protocol for step ledger backends.

    Writes must be atomic: an observer never sees a half-written row.
    """

    def get(self, workflow_id: str, step_id: str) -> Optional[StepRecord]:
        """Return the current record for the step, or ``None``."""

    def insert_in_progress(self, workflow_id: str, step_id: str) -> None:
        """Insert or replace the row with an ``IN_PROGRESS`` write-ahead record."""

    def mark_completed(self, workflow_id: str, step_id: str, output: str) -> None:
        """Transition the row to ``COMPLETED`` with the encoded output."""

    def list_steps(self, workflow_id: str) -> list[StepRecord]:
        """Return all records for a workflow, oldest write first."""

    def list_workflows(self) -> list[WorkflowSummary]:
        """Return a summary per workflow id present in the ledger."""

    def close(self) -> None:
        """Release any held resources."""
