import logging
from typing import Awaitable, Callable, Dict, Iterable, Optional
from synapse_operator.reconcile import signal as signals
from synapse_operator.reconcile.signal import Signal, should_halt_or_requeue
from synapse_operator.sensors import OperatorSensor
from synapse_operator.store import ReconcileRequest, Store
from synapse_operator.utils.errors import ConflictError, StoreError

Step = Callable[[ReconcileRequest], Awaitable[Signal]]
Plan = Callable[[Dict], Iterable[Step]]


class PipelineRunner:
    """Runs an ordered list of steps for one reconcile request."""

    store: Store
    logger: logging.Logger
    sensor: OperatorSensor

    def __init__(
        self,
        store: Store,
        logger: Optional[logging.Logger] = None,
        sensor: Optional[OperatorSensor] = None,
    ):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)
        self.sensor = sensor or OperatorSensor()

    async def run(self, request: ReconcileRequest, steps: Iterable[Step]) -> Signal:
        """Execute `steps` in order and return the terminal signal.

        The first signal that is not ``continue`` ends the run; remaining
        steps never execute. An exception raised by a step becomes an
        ``error`` signal. Running out of steps yields ``halt``.
        """
        for step in steps:
            try:
                result = await step(request)
            except Exception as ex:
                result = signals.error(ex)
            if should_halt_or_requeue(result):
                self._log_terminal(request, step, result)
                return result
        return signals.halt()

    async def reconcile(
        self, request: ReconcileRequest, plan: Plan, trigger_source: str = "event"
    ) -> Signal:
        """Load the top-level resource, build its steps with `plan` and run them.

        A resource that no longer exists ends the pipeline cleanly.
        """
        state = self.sensor.on_reconcile_start(
            request.kind, request.name, request.namespace, trigger_source
        )
        result = await self._reconcile(request, plan)
        self.sensor.on_reconcile_complete(
            request.kind,
            request.name,
            request.namespace,
            state,
            result=result.kind,
            error=result.error,
        )
        return result

    async def _reconcile(self, request: ReconcileRequest, plan: Plan) -> Signal:
        try:
            body = await self.store.get(request.kind, request.namespace, request.name)
        except StoreError as ex:
            self.logger.error(f"Failed to load {request}: {ex}")
            return signals.requeue_with_error(ex)
        if body is None:
            self.logger.debug(f"{request} not found, nothing to reconcile")
            return signals.halt()
        try:
            steps = list(plan(body))
        except Exception as ex:
            self.logger.error(f"Failed to plan {request}: {ex}")
            return signals.error(ex)
        return await self.run(request, steps)

    def _log_terminal(self, request: ReconcileRequest, step: Step, result: Signal):
        step_name = getattr(step, "__name__", repr(step))
        if isinstance(result.error, ConflictError):
            self.logger.warning(
                f"Step {step_name} of {request} hit a conflict, retrying: {result.error}"
            )
        elif result.is_error:
            self.logger.error(
                f"Step {step_name} of {request} failed: {result.error}",
                exc_info=result.error if result.kind == signals.ERROR else None,
            )
        else:
            self.logger.debug(f"Step {step_name} of {request} returned {result}")
