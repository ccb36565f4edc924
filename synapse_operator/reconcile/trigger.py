import logging
from typing import Optional
from synapse_operator.reconcile.status import StatusPatcher
from synapse_operator.sensors import OperatorSensor
from synapse_operator.types.models.status import ResourceStatus
from synapse_operator.utils.errors import NotFoundError


class CrossResourceTrigger:
    """Asks another resource's pipeline to run again.

    The request is a ``needsReconcile`` flag on the target's status; the
    target's daemon sees the flag and runs its pipeline, whose first step
    clears it.
    """

    status: StatusPatcher

    def __init__(
        self,
        status: StatusPatcher,
        sensor: Optional[OperatorSensor] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.status = status
        self.sensor = sensor or OperatorSensor()
        self.logger = logger or logging.getLogger(__name__)

    async def request_reconcile(self, target_kind: str, namespace: str, name: str) -> bool:
        """Flag the target for reconciliation. A missing target is a no-op.

        Returns whether the flag was written (False if it was already set).
        """
        try:
            changed = await self.status.update_status(
                target_kind, namespace, name, ResourceStatus(needs_reconcile=True)
            )
        except NotFoundError:
            self.logger.debug(
                f"{target_kind} {namespace}/{name} not found, skipping reconcile request"
            )
            return False
        if changed:
            self.logger.info(f"Requested reconciliation of {target_kind} {namespace}/{name}")
            self.sensor.on_reconcile_triggered(target_kind, name, namespace)
        return changed
