from typing import Dict, List
from marshmallow import ValidationError
from synapse_operator.controllers.base import BaseReconciler
from synapse_operator.reconcile import Signal, Step, proceed, requeue_with_error
from synapse_operator.resources import MautrixSignal, Synapse
from synapse_operator.store import ReconcileRequest
from synapse_operator.types.schemas import MautrixSignalSpecSchema, SynapseSpecSchema
from synapse_operator.utils.errors import InputError, StoreError
from synapse_operator.utils.helpers import read_yaml_values


class MautrixSignalReconciler(BaseReconciler):
    """mautrix-signal: config, signald, bridge volume, Service and Deployment."""

    KIND = MautrixSignal.KIND

    def plan(self, body: Dict) -> List[Step]:
        try:
            spec = MautrixSignalSpecSchema().load(body.get("spec") or {})
        except ValidationError as ex:
            return [self.step(self.reject_spec, f"Invalid MautrixSignal spec: {ex.messages}")]

        bridge = MautrixSignal.from_spec(spec=spec, **self.identity(body))
        steps = [self.step(self.trigger_synapse_reconciliation, bridge)]
        if bridge.uses_input_config_map:
            steps.append(
                self.step(
                    self.validate_input_config_map,
                    bridge.input_config_map_name,
                    bridge.input_config_map_namespace,
                    bridge.mautrixsignal_resource.CONFIG_FILE_NAME,
                )
            )
        steps += [
            self.step(self.reconcile_config_map, bridge, body),
            self.step(self.reconcile_signald_persistent_volume_claim, bridge, body),
            self.step(self.reconcile_signald_deployment, bridge, body),
            self.step(self.reconcile_persistent_volume_claim, bridge, body),
            self.step(self.reconcile_service, bridge, body),
            self.step(self.reconcile_deployment, bridge, body),
            self.set_running,
        ]
        return steps

    async def trigger_synapse_reconciliation(
        self, bridge: MautrixSignal, request: ReconcileRequest
    ) -> Signal:
        try:
            await self.trigger.request_reconcile(
                "Synapse", bridge.synapse_namespace, bridge.synapse_name
            )
        except StoreError as ex:
            return requeue_with_error(ex)
        return proceed()

    async def resolve_server_name(self, bridge: MautrixSignal) -> str:
        """Server name of the bridge's Synapse, from its values or its input
        homeserver.yaml.

        Raises:
            InputError: the Synapse is missing or declares no server name.
        """
        body = await self.store.get(
            Synapse.KIND, bridge.synapse_namespace, bridge.synapse_name
        )
        if body is None:
            raise InputError(
                f"Synapse {bridge.synapse_namespace}/{bridge.synapse_name} does not exist"
            )
        try:
            spec = SynapseSpecSchema().load(body.get("spec") or {})
        except ValidationError as ex:
            raise InputError(f"Synapse {bridge.synapse_name} is invalid: {ex.messages}")
        synapse = Synapse.from_spec(spec=spec, **self.identity(body))
        if spec.homeserver.values is not None:
            return spec.homeserver.values.server_name
        if synapse.uses_input_config_map:
            document = await self.read_input_document(
                synapse.input_config_map_name,
                synapse.input_config_map_namespace,
                synapse.synapse_resource.HOMESERVER_FILE_NAME,
            )
            server_name = read_yaml_values(document, ["server_name"])["server_name"]
            if server_name:
                return server_name
        raise InputError(f"Synapse {bridge.synapse_name} does not declare a server name")

    async def reconcile_config_map(
        self, bridge: MautrixSignal, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        try:
            server_name = await self.resolve_server_name(bridge)
            document = None
            if bridge.uses_input_config_map:
                document = await self.read_input_document(
                    bridge.input_config_map_name,
                    bridge.input_config_map_namespace,
                    bridge.mautrixsignal_resource.CONFIG_FILE_NAME,
                )
        except InputError as ex:
            return await self.fail(request, str(ex), requeue_with_error(ex))
        except StoreError as ex:
            return requeue_with_error(ex)
        desired = bridge.prepare_config_map(
            bridge.prepare_config_document(server_name, document)
        )
        return await self.converge(request, desired, "ConfigMap", owner)

    async def reconcile_signald_persistent_volume_claim(
        self, bridge: MautrixSignal, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        return await self.converge(
            request,
            bridge.prepare_signald_persistent_volume_claim(),
            "PersistentVolumeClaim",
            owner,
        )

    async def reconcile_signald_deployment(
        self, bridge: MautrixSignal, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        return await self.converge(
            request, bridge.prepare_signald_deployment(), "Deployment", owner
        )

    async def reconcile_persistent_volume_claim(
        self, bridge: MautrixSignal, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        return await self.converge(
            request,
            bridge.prepare_persistent_volume_claim(),
            "PersistentVolumeClaim",
            owner,
        )

    async def reconcile_service(
        self, bridge: MautrixSignal, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        return await self.converge(request, bridge.prepare_service(), "Service", owner)

    async def reconcile_deployment(
        self, bridge: MautrixSignal, owner: Dict, request: ReconcileRequest
    ) -> Signal:
        return await self.converge_deployment(
            request, bridge, bridge.config_map_name, owner, bridge.prepare_deployment
        )
