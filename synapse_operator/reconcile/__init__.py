from .signal import (
    Signal,
    ReconcileResult,
    proceed,
    halt,
    requeue,
    requeue_with_error,
    error,
    should_halt_or_requeue,
    evaluate,
)
from .pipeline import PipelineRunner, Step, Plan
from .ownership import OwnershipManager
from .converge import ResourceConverger, OWNED_FIELDS
from .status import StatusPatcher
from .trigger import CrossResourceTrigger

__all__ = [
    "Signal",
    "ReconcileResult",
    "proceed",
    "halt",
    "requeue",
    "requeue_with_error",
    "error",
    "should_halt_or_requeue",
    "evaluate",
    "PipelineRunner",
    "Step",
    "Plan",
    "OwnershipManager",
    "ResourceConverger",
    "OWNED_FIELDS",
    "StatusPatcher",
    "CrossResourceTrigger",
]
