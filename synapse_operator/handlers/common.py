import kopf
import logging
from typing import Mapping, Type
from synapse_operator.controllers import BaseReconciler
from synapse_operator.reconcile import CrossResourceTrigger, Signal, StatusPatcher, evaluate
from synapse_operator.store.kinds import SYNAPSE_GROUP
from synapse_operator.utils.errors import StoreError

GROUP = SYNAPSE_GROUP


class TimerLogFilter(logging.Filter):
    def filter(self, record):
        """Timer logs are noisy so we filter them out."""
        return "Timer " not in record.getMessage()


kopf_logger = logging.getLogger("kopf.objects")
kopf_logger.addFilter(TimerLogFilter())


def needs_reconcile(status, **_) -> bool:
    """Another resource asked this one to reconcile."""
    return bool((status or {}).get("needsReconcile"))


async def run_reconciler(
    reconciler_type: Type[BaseReconciler],
    name: str,
    namespace: str,
    memo: kopf.Memo,
    logger: logging.Logger,
    retry: int = 0,
    trigger_source: str = "event",
) -> Signal:
    """Run a pipeline and map its outcome onto kopf.

    Requeues and retryable errors become ``kopf.TemporaryError`` with the
    computed delay, so kopf reschedules the handler; non-retryable errors
    become ``kopf.PermanentError``.
    """
    reconciler = reconciler_type(
        memo.store, logger=logger, sensor=memo.sensor, conf=memo.conf
    )
    signal = await reconciler.reconcile(name, namespace, trigger_source)
    result = evaluate(signal, memo.conf, retry)

    if result.requeue:
        message = str(result.error) if result.error else "Reconciliation requeued"
        raise kopf.TemporaryError(message, delay=result.delay)
    if result.error:
        raise kopf.PermanentError(str(result.error))
    return signal


async def serve_reconcile_requests(
    reconciler_type: Type[BaseReconciler],
    name: str,
    namespace: str,
    body: Mapping,
    memo: kopf.Memo,
    logger: logging.Logger,
    stopped,
) -> None:
    """Run the pipeline whenever ``needsReconcile`` is set, until stopped.

    `body` is the live view kopf keeps current for a daemon. A run that
    asks to be requeued is run again after its delay even though the flag
    was already consumed, with the retry count driving the error backoff.
    """
    retry = 0
    pending = False
    while not stopped:
        delay = memo.conf.trigger_poll_seconds
        if pending or needs_reconcile(body.get("status")):
            try:
                await run_reconciler(
                    reconciler_type,
                    name,
                    namespace,
                    memo,
                    logger,
                    retry,
                    trigger_source="trigger",
                )
            except kopf.TemporaryError as ex:
                logger.info(f"{reconciler_type.KIND} {namespace}/{name}: {ex}, retrying in {ex.delay}s")
                pending, retry, delay = True, retry + 1, ex.delay
            except kopf.PermanentError as ex:
                logger.error(f"{reconciler_type.KIND} {namespace}/{name}: {ex}")
                pending, retry = False, 0
            else:
                pending, retry = False, 0
        await stopped.wait(delay)


async def request_synapse_reconciliation(
    synapse_name: str, synapse_namespace: str, memo: kopf.Memo, logger: logging.Logger
) -> bool:
    """Flag a Synapse for reconciliation from outside a pipeline."""
    trigger = CrossResourceTrigger(
        StatusPatcher(memo.store, sensor=memo.sensor, logger=logger),
        sensor=memo.sensor,
        logger=logger,
    )
    try:
        return await trigger.request_reconcile("Synapse", synapse_namespace, synapse_name)
    except StoreError as ex:
        raise kopf.TemporaryError(str(ex), delay=memo.conf.error_backoff_seconds)
