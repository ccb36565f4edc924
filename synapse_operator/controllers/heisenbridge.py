from typing import Dict, List
from marshmallow import ValidationError
from synapse_operator.controllers.base import BaseReconciler
from synapse_operator.reconcile import Signal, Step, proceed, requeue_with_error
from synapse_operator.resources import Heisenbridge
from synapse_operator.store import ReconcileRequest
from synapse_operator.types.schemas import HeisenbridgeSpecSchema
from synapse_operator.utils.errors import InputError, StoreError


class HeisenbridgeReconciler(BaseReconciler):
    """Heisenbridge: config, Service and Deployment of the IRC bridge.

    The bridge first asks its Synapse to reconcile, so that the homeserver
    picks up (or refreshes) the bridge's registration.
    """

    KIND = Heisenbridge.KIND

    def plan(self, body: Dict) -> List[Step]:
        try:
            spec = HeisenbridgeSpecSchema().load(body.get("spec") or {})
        except ValidationError as ex:
            return [self.step(self.reject_spec, f"Invalid Heisenbridge spec: {ex.messages}")]

        bridge = Heisenbridge.from_spec(spec=spec, **self.identity(body))
        steps = [self.step(self.trigger_synapse_reconciliation, bridge)]
        if bridge.uses_input_config_map:
            steps += [
                self.step(
                    self.validate_input_config_map,
                    bridge.input_config_map_name,
                    bridge.input_config_map_namespace,
                    bridge.heisenbridge_resource.CONFIG_FILE_NAME,
                ),
                self.step(self.reconcile_config_map_from_input, bridge, body),
            ]
        else:
            steps.append(self.step(self.reconcile_default_config_map, bridge, body))
        steps += [
            self.step(self.reconcile_service, bridge, body),
            self.step(self.reconcile_deployment, bridge, body),
            self.set_running,
        ]
        return steps

    async def trigger_synapse_reconciliation(
        self, bridge: Heisenbridge, request: ReconcileRequest
    ) -> Signal:
        try:
            await self.trigger.request_reconcile(
                "Synapse", bridge.synapse_namespace, bridge.synapse_name
            )
        except StoreError as ex:
            return requeue_with_error(ex)
        return proceed()

    async def reconcile_config_map_from_input(
        self, bridge: Heisenbridge, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        try:
            document = await self.read_input_document(
                bridge.input_config_map_name,
                bridge.input_config_map_namespace,
                bridge.heisenbridge_resource.CONFIG_FILE_NAME,
            )
        except InputError as ex:
            return await self.fail(request, str(ex), requeue_with_error(ex))
        except StoreError as ex:
            return requeue_with_error(ex)
        desired = bridge.prepare_config_map(bridge.prepare_config_document(document))
        return await self.converge(request, desired, "ConfigMap", owner)

    async def reconcile_default_config_map(
        self, bridge: Heisenbridge, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        desired = bridge.prepare_config_map(bridge.prepare_config_document())
        return await self.converge(request, desired, "ConfigMap", owner)

    async def reconcile_service(
        self, bridge: Heisenbridge, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        return await self.converge(request, bridge.prepare_service(), "Service", owner)

    async def reconcile_deployment(
        self, bridge: Heisenbridge, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        return await self.converge_deployment(
            request, bridge, bridge.config_map_name, owner, bridge.prepare_deployment
        )
