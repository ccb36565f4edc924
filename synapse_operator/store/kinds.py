from typing import Dict, NamedTuple, Optional

SYNAPSE_GROUP = "synapse.opdev.io"
SYNAPSE_VERSION = "v1alpha1"


class KindInfo(NamedTuple):
    """How to reach a kind through the Kubernetes API.

    Built-in kinds are served by a typed API class (``api``) whose methods are
    named ``<verb>_namespaced_<method_suffix>``; custom kinds go through the
    CustomObjectsApi with ``group``/``version``/``plural``.
    """

    kind: str
    api_version: str
    plural: str
    api: Optional[str] = None
    method_suffix: Optional[str] = None

    @property
    def group(self) -> str:
        return self.api_version.rpartition("/")[0]

    @property
    def version(self) -> str:
        return self.api_version.rpartition("/")[2]

    @property
    def custom(self) -> bool:
        return self.api is None


CONFIG_MAP = KindInfo("ConfigMap", "v1", "configmaps", "core_v1", "config_map")
PERSISTENT_VOLUME_CLAIM = KindInfo(
    "PersistentVolumeClaim",
    "v1",
    "persistentvolumeclaims",
    "core_v1",
    "persistent_volume_claim",
)
SERVICE = KindInfo("Service", "v1", "services", "core_v1", "service")
DEPLOYMENT = KindInfo("Deployment", "apps/v1", "deployments", "apps_v1", "deployment")
SYNAPSE = KindInfo("Synapse", f"{SYNAPSE_GROUP}/{SYNAPSE_VERSION}", "synapses")
HEISENBRIDGE = KindInfo(
    "Heisenbridge", f"{SYNAPSE_GROUP}/{SYNAPSE_VERSION}", "heisenbridges"
)
MAUTRIXSIGNAL = KindInfo(
    "MautrixSignal", f"{SYNAPSE_GROUP}/{SYNAPSE_VERSION}", "mautrixsignals"
)

KINDS: Dict[str, KindInfo] = {
    info.kind: info
    for info in (
        CONFIG_MAP,
        PERSISTENT_VOLUME_CLAIM,
        SERVICE,
        DEPLOYMENT,
        SYNAPSE,
        HEISENBRIDGE,
        MAUTRIXSIGNAL,
    )
}


def lookup(kind: str) -> KindInfo:
    try:
        return KINDS[kind]
    except KeyError:
        raise ValueError(f"Kind `{kind}` is not managed by this operator.") from None
