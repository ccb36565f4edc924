import functools
import logging
import yaml
from typing import Any, Dict, List, Mapping, Optional, Type
from kubernetes_asyncio.client.api_client import ApiClient
from synapse_operator.reconcile import (
    CrossResourceTrigger,
    OwnershipManager,
    PipelineRunner,
    ResourceConverger,
    Signal,
    StatusPatcher,
    Step,
    halt,
    proceed,
    requeue,
    requeue_with_error,
)
from synapse_operator.resources.base import BaseResource
from synapse_operator.sensors import OperatorSensor
from synapse_operator.store import ReconcileRequest, Store
from synapse_operator.types.models import (
    STATE_FAILED,
    STATE_RUNNING,
    ResourceStatus,
    StatusRecord,
)
from synapse_operator.types.settings import Settings
from synapse_operator.utils.errors import InputError, InvariantViolation, StoreError
from synapse_operator.utils.helpers import load_yaml


class BaseReconciler:
    """Reconciles one custom resource kind.

    Subclasses implement ``plan``, which turns the freshly loaded resource
    into the ordered list of steps to run. Steps share the helpers below to
    converge objects and write status.
    """

    # Defined by subclass
    KIND: str = None
    status_type: Type[StatusRecord] = ResourceStatus

    # Serializes manifests; shared with the store at startup
    shared_api_client: Optional[ApiClient] = None

    store: Store
    conf: Settings

    def __init__(
        self,
        store: Store,
        logger: Optional[logging.Logger] = None,
        sensor: Optional[OperatorSensor] = None,
        conf: Optional[Settings] = None,
    ):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)
        self.sensor = sensor or OperatorSensor()
        self.conf = conf or BaseResource.conf
        self.ownership = OwnershipManager()
        self.converger = ResourceConverger(
            store,
            self.ownership,
            sensor=self.sensor,
            logger=self.logger,
            api_client=self.shared_api_client,
        )
        self.status = StatusPatcher(store, sensor=self.sensor, logger=self.logger)
        self.trigger = CrossResourceTrigger(
            self.status, sensor=self.sensor, logger=self.logger
        )
        self.runner = PipelineRunner(store, logger=self.logger, sensor=self.sensor)

    async def reconcile(
        self, name: str, namespace: str, trigger_source: str = "event"
    ) -> Signal:
        request = ReconcileRequest(self.KIND, namespace, name)
        return await self.runner.reconcile(request, self.plan, trigger_source)

    def plan(self, body: Dict) -> List[Step]:
        raise NotImplementedError()

    @staticmethod
    def step(fn, *args) -> Step:
        """Bind leading arguments of a step method; the request comes last."""
        bound = functools.partial(fn, *args)
        bound.__name__ = fn.__name__
        return bound

    @staticmethod
    def identity(body: Mapping) -> Dict:
        meta = body["metadata"]
        return {
            "name": meta["name"],
            "namespace": meta.get("namespace"),
            "uid": meta.get("uid"),
            "labels": dict(meta.get("labels") or {}),
        }

    # =============================================================================
    # Status
    # =============================================================================

    async def set_failed(self, request: ReconcileRequest, reason: str) -> None:
        await self.status.update_status(
            request.kind,
            request.namespace,
            request.name,
            self.status_type(state=STATE_FAILED, reason=reason),
        )

    async def fail(
        self, request: ReconcileRequest, reason: str, outcome: Signal
    ) -> Signal:
        """Mark the resource FAILED with `reason` and end the pipeline with `outcome`."""
        self.logger.warning(f"{request}: {reason}")
        try:
            await self.set_failed(request, reason)
        except StoreError as ex:
            return requeue_with_error(ex)
        return outcome

    async def reject_spec(self, reason: str, request: ReconcileRequest) -> Signal:
        """The spec can never be reconciled as is; wait for the user to change it."""
        return await self.fail(request, reason, halt())

    async def set_running(self, request: ReconcileRequest) -> Signal:
        try:
            await self.status.update_status(
                request.kind,
                request.namespace,
                request.name,
                self.status_type(state=STATE_RUNNING, reason=""),
            )
        except StoreError as ex:
            return requeue_with_error(ex)
        return proceed()

    # =============================================================================
    # Managed objects
    # =============================================================================

    async def converge(
        self,
        request: ReconcileRequest,
        desired: Any,
        kind: str,
        owner: Mapping,
    ) -> Signal:
        try:
            await self.converger.converge(desired, kind, owner)
        except InvariantViolation as ex:
            return await self.fail(request, str(ex), halt())
        except StoreError as ex:
            return requeue_with_error(ex)
        return proceed()

    async def fetch_config_hash(
        self, resource: BaseResource, config_map_name: str
    ) -> Optional[str]:
        """Hash of a managed ConfigMap's data, used to roll Deployments when
        the configuration changes. None if the ConfigMap does not exist yet."""
        config_map = await self.store.get("ConfigMap", resource.namespace, config_map_name)
        if config_map is None:
            return None
        return resource.compute_hash(config_map.get("data") or {})

    async def converge_deployment(
        self,
        request: ReconcileRequest,
        resource: BaseResource,
        config_map_name: str,
        owner: Mapping,
        prepare,
    ) -> Signal:
        """Converge the Deployment built by `prepare(config_hash)`."""
        try:
            config_hash = await self.fetch_config_hash(resource, config_map_name)
        except StoreError as ex:
            return requeue_with_error(ex)
        if config_hash is None:
            self.logger.info(
                f"{request}: ConfigMap {config_map_name} not found yet, requeueing"
            )
            return requeue()
        return await self.converge(request, prepare(config_hash), "Deployment", owner)

    # =============================================================================
    # User input
    # =============================================================================

    async def read_input_document(self, name: str, namespace: str, key: str) -> str:
        """Return the YAML document stored under `key` in a user ConfigMap.

        Raises:
            InputError: the ConfigMap or key is missing, or the document is
                not a YAML mapping.
        """
        config_map = await self.store.get("ConfigMap", namespace, name)
        if config_map is None:
            raise InputError(f"ConfigMap {namespace}/{name} does not exist")
        data = config_map.get("data") or {}
        if key not in data:
            raise InputError(f"ConfigMap {namespace}/{name} does not contain {key}")
        try:
            load_yaml(data[key])
        except (yaml.YAMLError, ValueError) as ex:
            raise InputError(
                f"{key} in ConfigMap {namespace}/{name} is not valid: {ex}"
            ) from ex
        return data[key]

    async def validate_input_config_map(
        self, name: str, namespace: str, key: str, request: ReconcileRequest
    ) -> Signal:
        try:
            await self.read_input_document(name, namespace, key)
        except InputError as ex:
            return await self.fail(request, str(ex), requeue_with_error(ex))
        except StoreError as ex:
            return requeue_with_error(ex)
        return proceed()
