from typing import Dict, List
from kubernetes_asyncio.client import (
    V1ConfigMap,
    V1Container,
    V1ContainerPort,
    V1Deployment,
    V1Service,
)
from synapse_operator.resources.base import BaseResource
from synapse_operator.types.models import (
    HeisenbridgeSpec,
    HeisenbridgeResources,
    SynapseResources,
)
from synapse_operator.utils.helpers import (
    compute_namespace,
    dump_yaml,
    edit_yaml_document,
)
from synapse_operator.utils.objects import cached_property


class Heisenbridge(BaseResource):
    """Heisenbridge IRC bridge resource."""

    KIND = "Heisenbridge"
    PLURAL_NAME = "heisenbridges"
    CONFIG_MOUNT_PATH = "/data-heisenbridge"
    CONFIG_VOLUME_NAME = "config"

    heisenbridge_resource = HeisenbridgeResources

    spec: HeisenbridgeSpec

    @classmethod
    def from_spec(
        cls,
        name: str,
        namespace: str,
        spec: HeisenbridgeSpec,
        uid: str = None,
        labels: Dict[str, str] = None,
    ) -> "Heisenbridge":
        bridge = Heisenbridge(
            name,
            namespace,
            cls.heisenbridge_resource.component_name(name),
            uid=uid,
            labels=labels,
        )
        bridge.spec = spec
        return bridge

    @cached_property
    def config_map_name(self) -> str:
        return self.heisenbridge_resource.config_map_name(self.name)

    @cached_property
    def service_name(self) -> str:
        return self.heisenbridge_resource.service_name(self.name)

    @cached_property
    def deployment_name(self) -> str:
        return self.heisenbridge_resource.deployment_name(self.name)

    @cached_property
    def url(self) -> str:
        return self.heisenbridge_resource.url(self.name, self.namespace)

    @cached_property
    def synapse_name(self) -> str:
        return self.spec.synapse.name

    @cached_property
    def synapse_namespace(self) -> str:
        return compute_namespace(self.namespace, self.spec.synapse.namespace)

    @cached_property
    def synapse_url(self) -> str:
        return SynapseResources.url(self.synapse_name, self.synapse_namespace)

    @property
    def uses_input_config_map(self) -> bool:
        return self.spec.config_map is not None

    @cached_property
    def input_config_map_name(self) -> str:
        return self.spec.config_map.name if self.uses_input_config_map else None

    @cached_property
    def input_config_map_namespace(self) -> str:
        if not self.uses_input_config_map:
            return None
        return compute_namespace(self.namespace, self.spec.config_map.namespace)

    def prepare_default_config(self) -> Dict:
        """Default heisenbridge.yaml, which doubles as the appservice registration."""
        return {
            "id": "heisenbridge",
            "url": self.url,
            "as_token": self.derive_token("as_token"),
            "hs_token": self.derive_token("hs_token"),
            "rate_limited": False,
            "sender_localpart": "heisenbridge",
            "namespaces": {
                "users": [{"regex": "@irc_.*", "exclusive": True}],
                "aliases": [],
                "rooms": [],
            },
        }

    def prepare_config_document(self, input_document: str = None) -> str:
        """Return heisenbridge.yaml; a user document gets its url pointed at
        the bridge's Service."""
        if input_document is None:
            return dump_yaml(self.prepare_default_config())
        return edit_yaml_document(input_document, {"url": self.url})

    def prepare_config_map(self, document: str) -> V1ConfigMap:
        return self.build_config_map(
            self.config_map_name,
            {self.heisenbridge_resource.CONFIG_FILE_NAME: document},
        )

    def prepare_service(self) -> V1Service:
        return self.build_service(
            self.service_name, "heisenbridge", self.heisenbridge_resource.HTTP_PORT
        )

    def prepare_args(self) -> List[str]:
        args = [
            "-c",
            f"{self.CONFIG_MOUNT_PATH}/{self.heisenbridge_resource.CONFIG_FILE_NAME}",
            "-l",
            "0.0.0.0",
            "-p",
            str(self.heisenbridge_resource.HTTP_PORT),
        ]
        verbose_level = self.spec.verbose_level or 0
        if verbose_level > 0:
            args.append("-" + "v" * verbose_level)
        args.append(self.synapse_url)
        return args

    def prepare_deployment(self, config_hash: str) -> V1Deployment:
        container = V1Container(
            name="heisenbridge",
            image=self.conf.heisenbridge_image,
            args=self.prepare_args(),
            ports=[
                V1ContainerPort(
                    container_port=self.heisenbridge_resource.HTTP_PORT,
                    protocol="TCP",
                )
            ],
            volume_mounts=[
                self.volume_mount(self.CONFIG_VOLUME_NAME, self.CONFIG_MOUNT_PATH)
            ],
        )
        return self.build_deployment(
            self.deployment_name,
            containers=[container],
            volumes=[self.config_map_volume(self.CONFIG_VOLUME_NAME, self.config_map_name)],
            pod_annotations=self.prepare_hash_annotation(config_hash),
        )
