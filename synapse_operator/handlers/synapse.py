import kopf
from logging import Logger
from synapse_operator.controllers import SynapseReconciler
from synapse_operator.handlers.common import GROUP, run_reconciler, serve_reconcile_requests
from synapse_operator.types.settings import RESYNC_INTERVAL_SECONDS

KIND = "Synapse"


@kopf.on.resume(group=GROUP, kind=KIND)
@kopf.on.create(group=GROUP, kind=KIND)
@kopf.on.update(group=GROUP, kind=KIND, field="spec")
async def reconciliation(name, namespace, memo: kopf.Memo, logger: Logger, retry, **kwargs):
    """Reconcile Synapse resources."""
    await run_reconciler(
        SynapseReconciler, name, namespace, memo, logger, retry, trigger_source="change"
    )


@kopf.daemon(group=GROUP, kind=KIND, cancellation_timeout=10)
async def reconcile_requests(
    name, namespace, body, stopped, memo: kopf.Memo, logger: Logger, **kwargs
):
    """Serve needsReconcile requests made by bridges.

    kopf.on.update ignores status-only changes and kopf never retries
    event handlers, so a daemon per Synapse watches the flag instead.
    """
    await serve_reconcile_requests(
        SynapseReconciler, name, namespace, body, memo, logger, stopped
    )


@kopf.timer(group=GROUP, kind=KIND, initial_delay=RESYNC_INTERVAL_SECONDS, interval=RESYNC_INTERVAL_SECONDS)
async def periodic_reconciliation(name, namespace, memo: kopf.Memo, logger: Logger, retry, **kwargs):
    """Full sync."""
    await run_reconciler(
        SynapseReconciler, name, namespace, memo, logger, retry, trigger_source="timer"
    )
