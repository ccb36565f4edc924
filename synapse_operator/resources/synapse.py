from typing import Dict, List, Optional, Sequence
from kubernetes_asyncio.client import (
    V1ConfigMap,
    V1Container,
    V1ContainerPort,
    V1Deployment,
    V1EnvVar,
    V1PersistentVolumeClaim,
    V1Service,
    V1Volume,
    V1VolumeMount,
)
from synapse_operator.resources.base import BaseResource
from synapse_operator.resources.bridge import BridgeRegistration
from synapse_operator.types.models import SynapseSpec, SynapseResources
from synapse_operator.utils.helpers import (
    compute_namespace,
    dump_yaml,
    edit_yaml_document,
    read_yaml_values,
)
from synapse_operator.utils.objects import cached_property


class Synapse(BaseResource):
    """Synapse homeserver resource."""

    KIND = "Synapse"
    PLURAL_NAME = "synapses"
    HOMESERVER_MOUNT_PATH = "/data-homeserver"
    DATA_MOUNT_PATH = "/data"
    HOMESERVER_VOLUME_NAME = "homeserver"
    DATA_VOLUME_NAME = "data-pv"
    APP_SERVICE_CONFIG_FILES = "app_service_config_files"

    synapse_resource = SynapseResources

    spec: SynapseSpec

    @classmethod
    def from_spec(
        cls,
        name: str,
        namespace: str,
        spec: SynapseSpec,
        uid: str = None,
        labels: Dict[str, str] = None,
    ) -> "Synapse":
        synapse = Synapse(
            name,
            namespace,
            cls.synapse_resource.component_name(name),
            uid=uid,
            labels=labels,
        )
        synapse.spec = spec
        return synapse

    @cached_property
    def config_map_name(self) -> str:
        return self.synapse_resource.config_map_name(self.name)

    @cached_property
    def persistent_volume_claim_name(self) -> str:
        return self.synapse_resource.persistent_volume_claim_name(self.name)

    @cached_property
    def service_name(self) -> str:
        return self.synapse_resource.service_name(self.name)

    @cached_property
    def deployment_name(self) -> str:
        return self.synapse_resource.deployment_name(self.name)

    @cached_property
    def url(self) -> str:
        return self.synapse_resource.url(self.name, self.namespace)

    @property
    def uses_input_config_map(self) -> bool:
        return self.spec.homeserver.config_map is not None

    @cached_property
    def input_config_map_name(self) -> Optional[str]:
        if not self.uses_input_config_map:
            return None
        return self.spec.homeserver.config_map.name

    @cached_property
    def input_config_map_namespace(self) -> Optional[str]:
        if not self.uses_input_config_map:
            return None
        return compute_namespace(
            self.namespace, self.spec.homeserver.config_map.namespace
        )

    def validate_spec(self) -> Optional[str]:
        """Return why the spec is invalid, or None."""
        homeserver = self.spec.homeserver
        if homeserver.config_map is None and homeserver.values is None:
            return "Invalid Synapse spec: either homeserver.configMap or homeserver.values must be set"
        if homeserver.config_map is not None and homeserver.values is not None:
            return "Invalid Synapse spec: homeserver.configMap and homeserver.values are mutually exclusive"
        return None

    def prepare_default_homeserver(self) -> Dict:
        """Minimal homeserver.yaml for the configured server name."""
        values = self.spec.homeserver.values
        return {
            "server_name": values.server_name,
            "report_stats": bool(values.report_stats),
            "pid_file": f"{self.DATA_MOUNT_PATH}/homeserver.pid",
            "listeners": [
                {
                    "port": self.synapse_resource.HTTP_PORT,
                    "tls": False,
                    "type": "http",
                    "x_forwarded": True,
                    "resources": [
                        {"names": ["client", "federation"], "compress": False}
                    ],
                }
            ],
            "database": {
                "name": "sqlite3",
                "args": {"database": f"{self.DATA_MOUNT_PATH}/homeserver.db"},
            },
            "media_store_path": f"{self.DATA_MOUNT_PATH}/media_store",
            "signing_key_path": f"{self.DATA_MOUNT_PATH}/{values.server_name}.signing.key",
            "registration_shared_secret": self.derive_token("registration_shared_secret"),
            "macaroon_secret_key": self.derive_token("macaroon_secret_key"),
            "form_secret": self.derive_token("form_secret"),
            "trusted_key_servers": [{"server_name": "matrix.org"}],
        }

    def prepare_homeserver_document(
        self,
        bridges: Sequence[BridgeRegistration],
        input_document: str = None,
    ) -> str:
        """Return homeserver.yaml with every bridge registration enabled.

        Starts from the user's document when one is given, else from the
        default configuration.
        """
        registrations = {}
        if bridges:
            registrations[self.APP_SERVICE_CONFIG_FILES] = [
                bridge.registration_file for bridge in bridges
            ]
        if input_document is None:
            return edit_yaml_document(
                dump_yaml(self.prepare_default_homeserver()), registrations
            )
        return edit_yaml_document(input_document, registrations)

    def homeserver_configuration(self, document: str) -> Dict:
        """Server name and stats reporting in effect, for the status."""
        values = read_yaml_values(document, ["server_name", "report_stats"])
        return {
            "serverName": values["server_name"],
            "reportStats": bool(values["report_stats"]),
        }

    def prepare_config_map(self, document: str) -> V1ConfigMap:
        return self.build_config_map(
            self.config_map_name,
            {self.synapse_resource.HOMESERVER_FILE_NAME: document},
        )

    def prepare_persistent_volume_claim(self) -> V1PersistentVolumeClaim:
        return self.build_persistent_volume_claim(self.persistent_volume_claim_name)

    def prepare_service(self) -> V1Service:
        return self.build_service(
            self.service_name, "synapse-unsecure", self.synapse_resource.HTTP_PORT
        )

    def prepare_volumes(self, bridges: Sequence[BridgeRegistration]) -> List[V1Volume]:
        volumes = [
            self.config_map_volume(self.HOMESERVER_VOLUME_NAME, self.config_map_name),
            self.persistent_volume_claim_volume(
                self.DATA_VOLUME_NAME, self.persistent_volume_claim_name
            ),
        ]
        volumes.extend(bridge.volume for bridge in bridges)
        return volumes

    def prepare_volume_mounts(
        self, bridges: Sequence[BridgeRegistration]
    ) -> List[V1VolumeMount]:
        mounts = [
            self.volume_mount(self.HOMESERVER_VOLUME_NAME, self.HOMESERVER_MOUNT_PATH),
            self.volume_mount(self.DATA_VOLUME_NAME, self.DATA_MOUNT_PATH),
        ]
        mounts.extend(
            self.volume_mount(bridge.volume_name, bridge.mount_path, read_only=True)
            for bridge in bridges
        )
        return mounts

    def prepare_deployment(
        self, config_hash: str, bridges: Sequence[BridgeRegistration]
    ) -> V1Deployment:
        container = V1Container(
            name="synapse-generic",
            image=self.conf.synapse_image,
            env=[
                V1EnvVar(
                    name="SYNAPSE_CONFIG_PATH",
                    value=f"{self.HOMESERVER_MOUNT_PATH}/{self.synapse_resource.HOMESERVER_FILE_NAME}",
                )
            ],
            ports=[
                V1ContainerPort(
                    container_port=self.synapse_resource.HTTP_PORT, protocol="TCP"
                )
            ],
            volume_mounts=self.prepare_volume_mounts(bridges),
        )
        return self.build_deployment(
            self.deployment_name,
            containers=[container],
            volumes=self.prepare_volumes(bridges),
            pod_annotations=self.prepare_hash_annotation(config_hash),
        )
