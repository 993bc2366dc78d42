"""durastep: crash-resilient checkpointing for imperative workflow code."""

from .codec import decode_output, encode_output
from .context import ExecutionContext
from .exceptions import (
    DurastepError,
    OutputCodecError,
    StepInProgressError,
    StorageContentionError,
    StorageError,
    StorageFailureError,
)
from .persistence import (
    InMemoryStepLedger,
    SQLiteStepLedger,
    StepLedger,
    StepRecord,
    StepStatus,
    get_ledger,
)

__version__ = "0.1.0"
__all__ = [
    "ExecutionContext",
    "StepLedger",
    "SQLiteStepLedger",
    "InMemoryStepLedger",
    "StepRecord",
    "StepStatus",
    "get_ledger",
    "encode_output",
    "decode_output",
    "DurastepError",
    "StepInProgressError",
    "StorageError",
    "StorageContentionError",
    "StorageFailureError",
    "OutputCodecError",
]
