"""Exceptions raised by the durastep engine."""

from __future__ import annotations


class DurastepError(Exception):
    """Base exception for durastep errors."""


class StepInProgressError(DurastepError):
    """A live execution still holds the lease on a step."""

    def __init__(self, workflow_id: str, step_id: str, age_ms: int) -> None:
        self.workflow_id = workflow_id
        self.step_id = step_id
        self.age_ms = age_ms
        super().__init__(
            f"Step {step_id!r} of workflow {workflow_id!r} is currently in progress "
            f"(last updated {age_ms}ms ago)"
        )


class StorageError(DurastepError):
    """The step ledger could not read or write."""


class StorageContentionError(StorageError):
    """A ledger write kept hitting a busy database until retries ran out."""


class StorageFailureError(StorageError):
    """The underlying storage reported an I/O error."""


class OutputCodecError(DurastepError, ValueError):
    """A step output could not be encoded or decoded."""
