from typing import Dict, List
from marshmallow import ValidationError
from synapse_operator.controllers.base import BaseReconciler
from synapse_operator.reconcile import (
    Signal,
    Step,
    proceed,
    requeue,
    requeue_with_error,
)
from synapse_operator.resources import BridgeRegistration, Synapse
from synapse_operator.store import ReconcileRequest
from synapse_operator.types.models import SynapseStatus
from synapse_operator.types.schemas import (
    HeisenbridgeSpecSchema,
    MautrixSignalSpecSchema,
    SynapseSpecSchema,
)
from synapse_operator.utils.errors import InputError, StoreError
from synapse_operator.utils.helpers import compute_namespace

# Bridge kinds and how a Synapse pod reaches their registration
BRIDGE_KINDS = {
    "Heisenbridge": (HeisenbridgeSpecSchema, BridgeRegistration.for_heisenbridge),
    "MautrixSignal": (MautrixSignalSpecSchema, BridgeRegistration.for_mautrixsignal),
}


class SynapseReconciler(BaseReconciler):
    """Synapse: homeserver config, data volume, Service and Deployment.

    Bridges are not owned by the Synapse; they point at it from their own
    spec and flag it with ``needsReconcile`` when they change. The set of
    bridges is always derived by listing them, never from status.
    """

    KIND = Synapse.KIND
    status_type = SynapseStatus

    def plan(self, body: Dict) -> List[Step]:
        # Requests made after this point flag the Synapse again
        return [self.consume_reconcile_request] + self.plan_synapse(body)

    def plan_synapse(self, body: Dict) -> List[Step]:
        try:
            spec = SynapseSpecSchema().load(body.get("spec") or {})
        except ValidationError as ex:
            return [self.step(self.reject_spec, f"Invalid Synapse spec: {ex.messages}")]

        synapse = Synapse.from_spec(spec=spec, **self.identity(body))
        reason = synapse.validate_spec()
        if reason:
            return [self.step(self.reject_spec, reason)]

        steps = []
        if synapse.uses_input_config_map:
            steps += [
                self.step(
                    self.validate_input_config_map,
                    synapse.input_config_map_name,
                    synapse.input_config_map_namespace,
                    synapse.synapse_resource.HOMESERVER_FILE_NAME,
                ),
                self.step(self.reconcile_config_map_from_input, synapse, body),
            ]
        else:
            steps.append(self.step(self.reconcile_default_config_map, synapse, body))
        steps += [
            self.step(self.reconcile_persistent_volume_claim, synapse, body),
            self.step(self.reconcile_service, synapse, body),
            self.step(self.reconcile_deployment, synapse, body),
            self.step(self.update_synapse_status, synapse),
            self.set_running,
        ]
        return steps

    async def list_bridges(self, synapse: Synapse) -> List[BridgeRegistration]:
        """Bridges in the Synapse's namespace whose spec points at it.

        Bridges being deleted are left out so their registration is dropped.
        """
        bridges = []
        for kind, (schema, registration) in BRIDGE_KINDS.items():
            for item in await self.store.list(kind, synapse.namespace):
                meta = item.get("metadata", {})
                if meta.get("deletionTimestamp"):
                    continue
                try:
                    spec = schema().load(item.get("spec") or {})
                except ValidationError:
                    self.logger.debug(
                        f"Ignoring {kind} {meta.get('name')} with an invalid spec"
                    )
                    continue
                target_namespace = compute_namespace(
                    meta.get("namespace") or synapse.namespace, spec.synapse.namespace
                )
                if spec.synapse.name == synapse.name and target_namespace == synapse.namespace:
                    bridges.append(registration(meta["name"]))
        return sorted(bridges, key=lambda bridge: (bridge.kind, bridge.name))

    async def consume_reconcile_request(self, request: ReconcileRequest) -> Signal:
        """Clear ``needsReconcile`` before anything is derived from the cluster.

        A bridge that flags the Synapse while the rest of the pipeline runs
        sets the flag again, and that starts another run.
        """
        try:
            await self.status.update_status(
                request.kind,
                request.namespace,
                request.name,
                SynapseStatus(needs_reconcile=False),
            )
        except StoreError as ex:
            return requeue_with_error(ex)
        return proceed()

    async def reconcile_config_map_from_input(
        self, synapse: Synapse, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        try:
            document = await self.read_input_document(
                synapse.input_config_map_name,
                synapse.input_config_map_namespace,
                synapse.synapse_resource.HOMESERVER_FILE_NAME,
            )
            bridges = await self.list_bridges(synapse)
        except InputError as ex:
            return await self.fail(request, str(ex), requeue_with_error(ex))
        except StoreError as ex:
            return requeue_with_error(ex)
        desired = synapse.prepare_config_map(
            synapse.prepare_homeserver_document(bridges, document)
        )
        return await self.converge(request, desired, "ConfigMap", owner)

    async def reconcile_default_config_map(
        self, synapse: Synapse, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        try:
            bridges = await self.list_bridges(synapse)
        except StoreError as ex:
            return requeue_with_error(ex)
        desired = synapse.prepare_config_map(synapse.prepare_homeserver_document(bridges))
        return await self.converge(request, desired, "ConfigMap", owner)

    async def reconcile_persistent_volume_claim(
        self, synapse: Synapse, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        return await self.converge(
            request,
            synapse.prepare_persistent_volume_claim(),
            "PersistentVolumeClaim",
            owner,
        )

    async def reconcile_service(
        self, synapse: Synapse, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        return await self.converge(request, synapse.prepare_service(), "Service", owner)

    async def reconcile_deployment(
        self, synapse: Synapse, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        try:
            bridges = await self.list_bridges(synapse)
        except StoreError as ex:
            return requeue_with_error(ex)
        return await self.converge_deployment(
            request,
            synapse,
            synapse.config_map_name,
            owner,
            lambda config_hash: synapse.prepare_deployment(config_hash, bridges),
        )

    async def update_synapse_status(
        self, synapse: Synapse, request: ReconcileRequest
    ) -> Signal:
        """Record the homeserver configuration in effect and the bridges enabled."""
        try:
            config_map = await self.store.get(
                "ConfigMap", synapse.namespace, synapse.config_map_name
            )
            if config_map is None:
                return requeue()
            document = (config_map.get("data") or {}).get(
                synapse.synapse_resource.HOMESERVER_FILE_NAME, ""
            )
            bridges = await self.list_bridges(synapse)
            await self.status.update_status(
                request.kind,
                request.namespace,
                request.name,
                SynapseStatus(
                    homeserver_configuration=synapse.homeserver_configuration(document),
                    bridges={
                        kind.lower(): [b.name for b in bridges if b.kind == kind]
                        for kind in BRIDGE_KINDS
                    },
                ),
            )
        except StoreError as ex:
            return requeue_with_error(ex)
        return proceed()
