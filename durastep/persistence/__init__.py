"""Persistence layer for durastep step records."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from ..config import DurastepConfig, load_config
from ..exceptions import StorageFailureError
from .inmemory import InMemoryStepLedger
from .ledger import StepLedger, now_millis
from .models import StepRecord, StepStatus, WorkflowSummary
from .sqlite import SQLiteStepLedger


def get_ledger(
    database_url: Optional[str] = None,
    config: Optional[DurastepConfig] = None,
    create: bool = True,
) -> StepLedger:
    """Factory function to open a step ledger.

    The backend is selected from ``database_url``, which can be provided
    explicitly, via environment variable ``DURASTEP_DATABASE_URL``, or from
    loaded configuration. ``sqlite://<path>`` opens a SQLite file and
    ``memory://`` an in-memory ledger.

    With ``create=False`` a missing SQLite file raises
    ``StorageFailureError`` instead of being created, for read-only callers.
    """

    config = config or load_config()
    database_url = (
        database_url or os.getenv("DURASTEP_DATABASE_URL") or config.database_url
    )

    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        if not path:
            raise ValueError(f"Missing SQLite path in database URL: {database_url}")
        if not create and path != ":memory:" and not Path(path).exists():
            raise StorageFailureError(f"No step ledger at {path}")
        return SQLiteStepLedger(
            path,
            retry_attempts=config.ledger.retry_attempts,
            retry_delay=config.ledger.retry_delay,
            retry_backoff=config.ledger.retry_backoff,
        )
    if database_url.startswith("memory://"):
        return InMemoryStepLedger()
    raise ValueError(f"Unsupported database backend: {database_url}")


__all__ = [
    "StepRecord",
    "StepStatus",
    "WorkflowSummary",
    "StepLedger",
    "SQLiteStepLedger",
    "InMemoryStepLedger",
    "get_ledger",
    "now_millis",
]
