import kopf
from logging import Logger
from marshmallow import ValidationError
from synapse_operator.controllers import HeisenbridgeReconciler
from synapse_operator.handlers.common import (
    GROUP,
    request_synapse_reconciliation,
    run_reconciler,
)
from synapse_operator.types.models import HeisenbridgeSpec
from synapse_operator.types.schemas import HeisenbridgeSpecSchema
from synapse_operator.types.settings import RESYNC_INTERVAL_SECONDS
from synapse_operator.utils.helpers import compute_namespace

KIND = "Heisenbridge"


@kopf.on.resume(group=GROUP, kind=KIND)
@kopf.on.create(group=GROUP, kind=KIND)
@kopf.on.update(group=GROUP, kind=KIND, field="spec")
async def reconciliation(name, namespace, memo: kopf.Memo, logger: Logger, retry, **kwargs):
    """Reconcile Heisenbridge resources."""
    await run_reconciler(
        HeisenbridgeReconciler, name, namespace, memo, logger, retry, trigger_source="change"
    )


@kopf.on.delete(group=GROUP, kind=KIND)
async def on_delete(spec, name, namespace, memo: kopf.Memo, logger: Logger, **kwargs):
    """Drop the bridge's registration from its Synapse.

    Owned objects are garbage collected by Kubernetes.
    """
    try:
        spec_model: HeisenbridgeSpec = HeisenbridgeSpecSchema().load(dict(spec))
    except ValidationError:
        logger.info(f"Heisenbridge {name} has an invalid spec, no Synapse to notify")
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
        HeisenbridgeReconciler, name, namespace, memo, logger, retry, trigger_source="timer"
    )
