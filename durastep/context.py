"""Execution context: the replay decision engine for workflow steps."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Callable, Optional, TypeVar, overload

from .codec import decode_output, encode_output
from .exceptions import StepInProgressError
from .persistence import StepLedger, StepStatus, now_millis

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ExecutionContext:
    """Checkpoints the steps of one workflow run in a step ledger.

    Each step is looked up before it runs. Completed steps are replayed
    from their stored output, steps with a fresh ``IN_PROGRESS`` row are
    rejected, and everything else is written ahead, executed and then
    marked completed.

    Auto-generated step ids (``step-1``, ``step-2``, ...) depend only on
    the order of ``step`` calls within this process. A workflow that is
    re-run after a crash must issue its steps in the same order, otherwise
    stored outputs are matched to the wrong steps. When steps fan out to
    concurrent tasks, reserve their ids with :meth:`next_step_id` before
    dispatching them.
    """

    def __init__(
        self,
        workflow_id: str,
        ledger: StepLedger,
        zombie_timeout: float = 5.0,
        clock: Callable[[], int] = now_millis,
        on_step_completed: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.workflow_id = workflow_id
        self.ledger = ledger
        self.zombie_timeout = zombie_timeout
        self._clock = clock
        self._on_step_completed = on_step_completed
        self._sequence = 0
        self._sequence_lock = Lock()
        self._claim_lock = Lock()

    @property
    def zombie_timeout_ms(self) -> int:
        return int(self.zombie_timeout * 1000)

    def next_step_id(self) -> str:
        """Reserve the next auto-generated step id."""
        with self._sequence_lock:
            self._sequence += 1
            return f"step-{self._sequence}"

    @overload
    def step(self, action: Callable[[], T], /, *, result_type: Any = Any) -> T: ...

    @overload
    def step(
        self, step_id: str, /, action: Callable[[], T], *, result_type: Any = Any
    ) -> T: ...

    def step(
        self,
        step_id_or_action: str | Callable[[], Any],
        /,
        action: Optional[Callable[[], Any]] = None,
        *,
        result_type: Any = Any,
    ) -> Any:
        """Run ``action`` as a checkpointed step and return its result.

        Call as ``step(action)`` to use the next sequential step id, or
        ``step(step_id, action)`` to name the step explicitly. On replay the
        stored output is decoded as ``result_type`` and ``action`` is not
        called.

        Raises:
            StepInProgressError: the step was written ahead less than
                ``zombie_timeout`` seconds ago and is presumed still running.
            StorageError: the ledger could not read or persist the step.
            OutputCodecError: the result could not be encoded or decoded.

        Any exception raised by ``action`` propagates unchanged and leaves
        the step ``IN_PROGRESS``.
        """
        if action is None and callable(step_id_or_action):
            step_id, action = self.next_step_id(), step_id_or_action
        elif isinstance(step_id_or_action, str) and callable(action):
            step_id = step_id_or_action
        else:
            raise TypeError("step() expects (action) or (step_id, action)")
        return self._run_step(step_id, action, result_type)

    def _run_step(self, step_id: str, action: Callable[[], T], result_type: Any) -> T:
        with self._claim_lock:
            existing = self.ledger.get(self.workflow_id, step_id)
            if existing is not None:
                if existing.status is StepStatus.COMPLETED:
                    logger.info(
                        f"Replaying step {step_id} for workflow_id={self.workflow_id}"
                    )
                    return decode_output(existing.output, result_type)

                age = existing.age_ms(self._clock())
                if age < self.zombie_timeout_ms:
                    logger.warning(
                        f"Step {step_id} for workflow_id={self.workflow_id} "
                        f"is in progress ({age}ms old)"
                    )
                    raise StepInProgressError(self.workflow_id, step_id, age)
                logger.warning(
                    f"Recovering zombie step {step_id} for workflow_id={self.workflow_id} "
                    f"({age}ms since last update)"
                )

            self.ledger.insert_in_progress(self.workflow_id, step_id)

        logger.debug(f"Executing step {step_id} for workflow_id={self.workflow_id}")
        result = action()

        self.ledger.mark_completed(self.workflow_id, step_id, encode_output(result))
        logger.info(f"Step {step_id} completed for workflow_id={self.workflow_id}")

        if self._on_step_completed is not None:
            self._on_step_completed(step_id)
        return result
