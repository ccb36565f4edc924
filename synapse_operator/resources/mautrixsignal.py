import re
from typing import Dict, List
from kubernetes_asyncio.client import (
    V1ConfigMap,
    V1Container,
    V1ContainerPort,
    V1Deployment,
    V1PersistentVolumeClaim,
    V1Service,
)
from synapse_operator.resources.base import BaseResource
from synapse_operator.types.models import (
    MautrixSignalSpec,
    MautrixSignalResources,
    SynapseResources,
)
from synapse_operator.utils.helpers import (
    compute_namespace,
    dump_yaml,
    edit_yaml_document,
    read_yaml_values,
)
from synapse_operator.utils.objects import cached_property


class MautrixSignal(BaseResource):
    """mautrix-signal bridge resource, with its signald companion."""

    KIND = "MautrixSignal"
    PLURAL_NAME = "mautrixsignals"
    SIGNALD_COMPONENT = "signald"
    SIGNALD_MOUNT_PATH = "/signald"
    DATA_MOUNT_PATH = "/data"
    INPUT_MOUNT_PATH = "/input"
    CONFIG_VOLUME_NAME = "config"
    DATA_VOLUME_NAME = "data"
    SIGNALD_VOLUME_NAME = "signald"

    mautrixsignal_resource = MautrixSignalResources

    spec: MautrixSignalSpec

    @classmethod
    def from_spec(
        cls,
        name: str,
        namespace: str,
        spec: MautrixSignalSpec,
        uid: str = None,
        labels: Dict[str, str] = None,
    ) -> "MautrixSignal":
        bridge = MautrixSignal(
            name,
            namespace,
            cls.mautrixsignal_resource.component_name(name),
            uid=uid,
            labels=labels,
        )
        bridge.spec = spec
        return bridge

    @cached_property
    def config_map_name(self) -> str:
        return self.mautrixsignal_resource.config_map_name(self.name)

    @cached_property
    def persistent_volume_claim_name(self) -> str:
        return self.mautrixsignal_resource.persistent_volume_claim_name(self.name)

    @cached_property
    def service_name(self) -> str:
        return self.mautrixsignal_resource.service_name(self.name)

    @cached_property
    def deployment_name(self) -> str:
        return self.mautrixsignal_resource.deployment_name(self.name)

    @cached_property
    def signald_name(self) -> str:
        return self.mautrixsignal_resource.signald_name(self.name)

    @cached_property
    def url(self) -> str:
        return self.mautrixsignal_resource.url(self.name, self.namespace)

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

    @cached_property
    def signald_labels(self):
        return self.prepare_labels(self.SIGNALD_COMPONENT)

    def prepare_default_config(self, server_name: str) -> Dict:
        return {
            "homeserver": {
                "address": self.synapse_url,
                "domain": server_name,
                "verify_ssl": False,
            },
            "appservice": {
                "address": self.url,
                "hostname": "0.0.0.0",
                "port": self.mautrixsignal_resource.HTTP_PORT,
                "database": f"sqlite://{self.DATA_MOUNT_PATH}/mautrix-signal.db",
                "id": "signal",
                "bot_username": "signalbot",
                "bot_displayname": "Signal bridge bot",
                "as_token": self.derive_token("as_token"),
                "hs_token": self.derive_token("hs_token"),
            },
            "signal": {
                "socket_path": f"{self.SIGNALD_MOUNT_PATH}/signald.sock",
                "outgoing_attachment_dir": f"{self.SIGNALD_MOUNT_PATH}/attachments",
                "avatar_dir": f"{self.SIGNALD_MOUNT_PATH}/avatars",
                "data_dir": f"{self.SIGNALD_MOUNT_PATH}/data",
            },
            "bridge": {
                "username_template": "signal_{userid}",
                "displayname_template": "{displayname} (Signal)",
                "permissions": {"*": "relay", server_name: "user"},
            },
            "logging": {
                "version": 1,
                "formatters": {
                    "colored": {"format": "[%(asctime)s] [%(levelname)s@%(name)s] %(message)s"}
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "formatter": "colored",
                    }
                },
                "root": {"level": "INFO", "handlers": ["console"]},
            },
        }

    def prepare_config_document(self, server_name: str, input_document: str = None) -> str:
        """Return config.yaml wired to the Synapse and signald of this bridge.

        A user document keeps its own settings except for the addresses;
        appservice tokens are filled in when it has none.
        """
        if input_document is None:
            return dump_yaml(self.prepare_default_config(server_name))
        edits = {
            "homeserver/address": self.synapse_url,
            "homeserver/domain": server_name,
            "appservice/address": self.url,
            "appservice/hostname": "0.0.0.0",
            "appservice/port": self.mautrixsignal_resource.HTTP_PORT,
            "signal/socket_path": f"{self.SIGNALD_MOUNT_PATH}/signald.sock",
        }
        current = read_yaml_values(
            input_document, ["appservice/as_token", "appservice/hs_token"]
        )
        for keypath, value in current.items():
            if not value:
                edits[keypath] = self.derive_token(keypath.rpartition("/")[2])
        return edit_yaml_document(input_document, edits)

    def prepare_registration_document(self, config_document: str) -> str:
        """Appservice registration matching config.yaml."""
        config = read_yaml_values(
            config_document,
            [
                "homeserver/domain",
                "appservice/id",
                "appservice/address",
                "appservice/as_token",
                "appservice/hs_token",
                "appservice/bot_username",
                "bridge/username_template",
            ],
        )
        domain = re.escape(config["homeserver/domain"] or "")
        bot_username = config["appservice/bot_username"] or "signalbot"
        template = config["bridge/username_template"] or "signal_{userid}"
        user_regex = re.escape(template).replace(re.escape("{userid}"), ".+")
        registration = {
            "id": config["appservice/id"] or "signal",
            "url": config["appservice/address"] or self.url,
            "as_token": config["appservice/as_token"],
            "hs_token": config["appservice/hs_token"],
            "sender_localpart": bot_username,
            "rate_limited": False,
            "namespaces": {
                "users": [
                    {"regex": f"@{user_regex}:{domain}", "exclusive": True},
                    {"regex": f"@{re.escape(bot_username)}:{domain}", "exclusive": True},
                ],
                "aliases": [],
                "rooms": [],
            },
        }
        return dump_yaml(registration)

    def prepare_config_map(self, config_document: str) -> V1ConfigMap:
        resources = self.mautrixsignal_resource
        return self.build_config_map(
            self.config_map_name,
            {
                resources.CONFIG_FILE_NAME: config_document,
                resources.REGISTRATION_FILE_NAME: self.prepare_registration_document(
                    config_document
                ),
            },
        )

    def prepare_signald_persistent_volume_claim(self) -> V1PersistentVolumeClaim:
        return self.build_persistent_volume_claim(self.signald_name, self.signald_labels)

    def prepare_signald_deployment(self) -> V1Deployment:
        container = V1Container(
            name="signald",
            image=self.conf.signald_image,
            volume_mounts=[
                self.volume_mount(self.SIGNALD_VOLUME_NAME, self.SIGNALD_MOUNT_PATH)
            ],
        )
        return self.build_deployment(
            self.signald_name,
            containers=[container],
            volumes=[
                self.persistent_volume_claim_volume(
                    self.SIGNALD_VOLUME_NAME, self.signald_name
                )
            ],
            labels=self.signald_labels,
        )

    def prepare_persistent_volume_claim(self) -> V1PersistentVolumeClaim:
        return self.build_persistent_volume_claim(self.persistent_volume_claim_name)

    def prepare_service(self) -> V1Service:
        return self.build_service(
            self.service_name, "mautrix-signal", self.mautrixsignal_resource.HTTP_PORT
        )

    def prepare_init_containers(self) -> List[V1Container]:
        """Copy config and registration into the data volume, where the
        bridge expects them."""
        resources = self.mautrixsignal_resource
        files = (resources.CONFIG_FILE_NAME, resources.REGISTRATION_FILE_NAME)
        command = " && ".join(
            f"cp {self.INPUT_MOUNT_PATH}/{name} {self.DATA_MOUNT_PATH}/{name}"
            for name in files
        )
        return [
            V1Container(
                name="fetch-config",
                image=self.conf.mautrixsignal_image,
                command=["sh", "-c", command],
                volume_mounts=[
                    self.volume_mount(self.CONFIG_VOLUME_NAME, self.INPUT_MOUNT_PATH),
                    self.volume_mount(self.DATA_VOLUME_NAME, self.DATA_MOUNT_PATH),
                ],
            )
        ]

    def prepare_deployment(self, config_hash: str) -> V1Deployment:
        container = V1Container(
            name="mautrix-signal",
            image=self.conf.mautrixsignal_image,
            ports=[
                V1ContainerPort(
                    container_port=self.mautrixsignal_resource.HTTP_PORT,
                    protocol="TCP",
                )
            ],
            volume_mounts=[
                self.volume_mount(self.DATA_VOLUME_NAME, self.DATA_MOUNT_PATH),
                self.volume_mount(self.SIGNALD_VOLUME_NAME, self.SIGNALD_MOUNT_PATH),
            ],
        )
        return self.build_deployment(
            self.deployment_name,
            containers=[container],
            init_containers=self.prepare_init_containers(),
            volumes=[
                self.config_map_volume(self.CONFIG_VOLUME_NAME, self.config_map_name),
                self.persistent_volume_claim_volume(
                    self.DATA_VOLUME_NAME, self.persistent_volume_claim_name
                ),
                self.persistent_volume_claim_volume(
                    self.SIGNALD_VOLUME_NAME, self.signald_name
                ),
            ],
            pod_annotations=self.prepare_hash_annotation(config_hash),
        )
