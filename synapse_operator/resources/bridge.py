from typing import NamedTuple
from kubernetes_asyncio.client import V1ConfigMapVolumeSource, V1KeyToPath, V1Volume
from synapse_operator.types.models import HeisenbridgeResources, MautrixSignalResources


class BridgeRegistration(NamedTuple):
    """Where a Synapse pod finds a bridge's appservice registration file."""

    kind: str
    name: str
    volume_name: str
    mount_path: str
    file_name: str
    volume: V1Volume

    @property
    def registration_file(self) -> str:
        return f"{self.mount_path}/{self.file_name}"

    @classmethod
    def for_heisenbridge(cls, name: str) -> "BridgeRegistration":
        """Heisenbridge's config file is its registration, served from its ConfigMap."""
        resources = HeisenbridgeResources
        volume_name = resources.volume_mount_name(name)
        return cls(
            kind="Heisenbridge",
            name=name,
            volume_name=volume_name,
            mount_path=resources.registration_mount_path(name),
            file_name=resources.CONFIG_FILE_NAME,
            volume=V1Volume(
                name=volume_name,
                config_map=V1ConfigMapVolumeSource(name=resources.config_map_name(name)),
            ),
        )

    @classmethod
    def for_mautrixsignal(cls, name: str) -> "BridgeRegistration":
        """mautrix-signal's registration is stored next to its config."""
        resources = MautrixSignalResources
        volume_name = resources.volume_mount_name(name)
        return cls(
            kind="MautrixSignal",
            name=name,
            volume_name=volume_name,
            mount_path=resources.registration_mount_path(name),
            file_name=resources.REGISTRATION_FILE_NAME,
            volume=V1Volume(
                name=volume_name,
                config_map=V1ConfigMapVolumeSource(
                    name=resources.config_map_name(name),
                    items=[
                        V1KeyToPath(
                            key=resources.REGISTRATION_FILE_NAME,
                            path=resources.REGISTRATION_FILE_NAME,
                        )
                    ],
                ),
            ),
        )
