"""Step outcomes and the rule for combining them across a pipeline.

A pipeline is a flat list of steps. Each step returns a :class:`Signal`; the
first signal that is not ``continue`` ends the pipeline, and a pipeline that
runs to completion ends with ``halt``.
"""

from typing import NamedTuple, Optional
from synapse_operator.types.settings import Settings

CONTINUE = "continue"
HALT = "halt"
REQUEUE = "requeue"
REQUEUE_WITH_ERROR = "requeue_with_error"
ERROR = "error"

ERROR_KINDS = (REQUEUE_WITH_ERROR, ERROR)


class Signal(NamedTuple):
    kind: str
    delay: Optional[float] = None
    error: Optional[BaseException] = None

    @property
    def is_continue(self) -> bool:
        return self.kind == CONTINUE

    @property
    def is_halt(self) -> bool:
        return self.kind == HALT

    @property
    def is_requeue(self) -> bool:
        return self.kind == REQUEUE

    @property
    def is_error(self) -> bool:
        return self.kind in ERROR_KINDS

    def __str__(self) -> str:
        if self.is_error:
            return f"{self.kind}({self.error!r})"
        if self.delay is not None:
            return f"{self.kind}({self.delay}s)"
        return self.kind


def proceed() -> Signal:
    """Run the next step."""
    return Signal(CONTINUE)


def halt() -> Signal:
    """Stop here; nothing to reschedule."""
    return Signal(HALT)


def requeue(delay: Optional[float] = None) -> Signal:
    """Stop here and run the pipeline again later."""
    return Signal(REQUEUE, delay=delay)


def requeue_with_error(error: BaseException) -> Signal:
    """Stop here, record `error` and retry with backoff."""
    return Signal(REQUEUE_WITH_ERROR, error=error)


def error(error: BaseException) -> Signal:
    """An unexpected exception escaped a step."""
    return Signal(ERROR, error=error)


def should_halt_or_requeue(signal: Signal) -> bool:
    return not signal.is_continue


class ReconcileResult(NamedTuple):
    """What the scheduler should do once a pipeline returned."""

    requeue: bool
    delay: Optional[float] = None
    error: Optional[BaseException] = None


def evaluate(
    signal: Signal, settings: Optional[Settings] = None, retry: int = 0
) -> ReconcileResult:
    """Translate a terminal signal into the scheduler's requeue contract.

    Errors are rescheduled with exponential backoff based on `retry`, except
    for errors flagged as not retryable, which are only recorded.
    """
    settings = settings or Settings()
    if signal.is_continue or signal.is_halt:
        return ReconcileResult(requeue=False)
    if signal.is_requeue:
        delay = signal.delay
        if delay is None:
            delay = settings.requeue_delay_seconds
        return ReconcileResult(requeue=True, delay=delay)
    if not getattr(signal.error, "retryable", True):
        return ReconcileResult(requeue=False, error=signal.error)
    return ReconcileResult(
        requeue=True, delay=settings.error_backoff(retry), error=signal.error
    )
