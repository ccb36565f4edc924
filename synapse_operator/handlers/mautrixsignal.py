import kopf
from logging import Logger
from marshmallow import ValidationError
from synapse_operator.controllers import MautrixSignalReconciler
from synapse_operator.handlers.common import (
    GROUP,
    request_synapse_reconciliation,
    run_reconciler,
)
from synapse_operator.types.models import MautrixSignalSpec
from synapse_operator.types.schemas import MautrixSignalSpecSchema
from synapse_operator.types.settings import RESYNC_INTERVAL_SECONDS
from synapse_operator.utils.helpers import compute_namespace

KIND = "MautrixSignal"


@kopf.on.resume(group=GROUP, kind=KIND)
@kopf.on.create(group=GROUP, kind=KIND)
@kopf.on.update(group=GROUP, kind=KIND, field="spec")
async def reconciliation(name, namespace, memo: kopf.Memo, logger: Logger, retry, **kwargs):
    """Reconcile MautrixSignal resources."""
    await run_reconciler(
        MautrixSignalReconciler, name, namespace, memo, logger, retry, trigger_source="change"
    )


@kopf.on.delete(group=GROUP, kind=KIND)
async def on_delete(spec, name, namespace, memo: kopf.Memo, logger: Logger, **kwargs):
    """Drop the bridge's registration from its Synapse."""
    try:
        spec_model: MautrixSignalSpec = MautrixSignalSpecSchema().load(dict(spec))
    except ValidationError:
        logger.info(f"MautrixSignal {name} has an invalid spec, no Synapse to notify")
        return
    await request_synapse_reconciliation(
        spec_model.synapse.name,
        compute_namespace(namespace, spec_model.synapse.namespace),
        memo,
        logger,
    )


@kopf.timer(group=GROUP, kind=KIND, initial_delay=RESYNC_INTERVAL_SECONDS, interval=RESYNC_INTERVAL_SECONDS)
async def periodic_reconciliation(name, namespace, memo: kopf.Memo, logger: Logger, retry, **kwargs):
    """Full sync."""
    await run_reconciler(
        MautrixSignalReconciler, name, namespace, memo, logger, retry, trigger_source="timer"
    )
