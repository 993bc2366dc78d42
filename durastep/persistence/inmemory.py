"""In-memory implementation of the step ledger."""

from __future__ import annotations

from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from .ledger import StepLedger, now_millis
from .models import StepRecord, StepStatus, WorkflowSummary


class InMemoryStepLedger(StepLedger):
    """Store step records in local memory.

    Useful for tests or throwaway runs. Data is not persisted across
    process restarts, so nothing survives a crash.
    """

    def __init__(self, clock: Callable[[], int] = now_millis) -> None:
        self._rows: Dict[Tuple[str, str], StepRecord] = {}
        self._write_lock = Lock()
        self._clock = clock

    # ------------------------------------------------------------------
    def get(self, workflow_id: str, step_id: str) -> Optional[StepRecord]:
        return self._rows.get((workflow_id, step_id))

    def insert_in_progress(self, workflow_id: str, step_id: str) -> None:
        record = StepRecord(
            workflow_id=workflow_id,
            step_id=step_id,
            status=StepStatus.IN_PROGRESS,
            updated_at=self._clock(),
        )
        with self._write_lock:
            self._rows[(workflow_id, step_id)] = record

    def mark_completed(self, workflow_id: str, step_id: str, output: str) -> None:
        with self._write_lock:
            # same as an UPDATE matching no row
            if (workflow_id, step_id) not in self._rows:
                return
            self._rows[(workflow_id, step_id)] = StepRecord(
                workflow_id=workflow_id,
                step_id=step_id,
                status=StepStatus.COMPLETED,
                output=output,
                updated_at=self._clock(),
            )

    def list_steps(self, workflow_id: str) -> list[StepRecord]:
        steps = [r for (wf, _), r in list(self._rows.items()) if wf == workflow_id]
        return sorted(steps, key=lambda r: (r.updated_at, r.step_id))

    def list_workflows(self) -> list[WorkflowSummary]:
        summaries: Dict[str, WorkflowSummary] = {}
        for record in list(self._rows.values()):
            current = summaries.get(record.workflow_id) or WorkflowSummary(
                workflow_id=record.workflow_id
            )
            summaries[record.workflow_id] = WorkflowSummary(
                workflow_id=record.workflow_id,
                total_steps=current.total_steps + 1,
                completed_steps=current.completed_steps + int(record.is_completed),
                last_updated_at=max(current.last_updated_at or 0, record.updated_at),
            )
        return [summaries[k] for k in sorted(summaries)]

    def close(self) -> None:
        pass
