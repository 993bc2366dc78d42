"""Data models for persisted step state."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator


class StepStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class StepRecord(BaseModel):
    """Point-in-time snapshot of one step's ledger row."""

    model_config = ConfigDict(frozen=True)

    workflow_id: str
    step_id: str
    status: StepStatus
    output: Optional[str] = None
    updated_at: int

    @model_validator(mode="after")
    def check_output_matches_status(self) -> "StepRecord":
        if self.status is StepStatus.COMPLETED and self.output is None:
            raise ValueError("completed step record requires an output")
        if self.status is StepStatus.IN_PROGRESS and self.output is not None:
            raise ValueError("in-progress step record cannot carry an output")
        return self

    @property
    def is_completed(self) -> bool:
        return self.status is StepStatus.COMPLETED

    def age_ms(self, now_ms: int) -> int:
        """Milliseconds elapsed since the row was last written."""
        return now_ms - self.updated_at


class WorkflowSummary(BaseModel):
    """Aggregate view of the steps recorded under one workflow id."""

    workflow_id: str
    total_steps: int = 0
    completed_steps: int = 0
    last_updated_at: Optional[int] = None

    @property
    def in_progress_steps(self) -> int:
        return self.total_steps - self.completed_steps
