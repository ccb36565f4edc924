import mmh3
import hashlib
from typing import Any, Dict, List, Optional, Union
from kubernetes_asyncio.client import (
    V1ConfigMap,
    V1ConfigMapVolumeSource,
    V1Container,
    V1Deployment,
    V1DeploymentSpec,
    V1LabelSelector,
    V1ObjectMeta,
    V1PersistentVolumeClaim,
    V1PersistentVolumeClaimSpec,
    V1PersistentVolumeClaimVolumeSource,
    V1PodSpec,
    V1PodTemplateSpec,
    V1Service,
    V1ServicePort,
    V1ServiceSpec,
    V1Volume,
    V1VolumeMount,
    V1VolumeResourceRequirements,
)
from synapse_operator.common.models.labels import Labels
from synapse_operator.types.settings import Settings
from synapse_operator.utils.helpers import canonicalize_dict


class BaseResource:
    """Builds the desired state of the objects managed for one custom resource.

    Manifests are kubernetes_asyncio models; the converger serializes them
    before comparing them with observed objects.
    """

    SYNAPSE_OPERATOR_NAME = "synapse-operator"
    HASH_ANNOTATION = "synapse.opdev.io/config-hash"

    # Defined by subclass
    KIND: str = None

    conf: Settings = Settings()

    _name: str
    _namespace: str
    _uid: str
    _component_name: str
    _labels: Labels

    def __init__(
        self,
        name: str,
        namespace: str,
        component_name: str,
        uid: str = None,
        labels: Optional[Dict[str, str]] = None,
    ):
        self._name = name
        self._namespace = namespace
        self._uid = uid or ""
        self._component_name = component_name
        _labels = Labels.generate_default_labels(
            name,
            self.KIND,
            component_name,
            self.SYNAPSE_OPERATOR_NAME,
        )
        _labels.update(labels or {})
        self._labels = _labels

    @property
    def name(self) -> str:
        return self._name

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def uid(self) -> str:
        return self._uid

    @property
    def component_name(self) -> str:
        return self._component_name

    @property
    def labels(self) -> Labels:
        return self._labels

    def compute_hash(self, data: Any) -> str:
        """Compute a murmur3 hash."""
        if isinstance(data, dict):
            _data = canonicalize_dict(data)
        elif isinstance(data, str):
            _data = data.encode()
        else:
            raise ValueError(f"Hash of {type(data)} is not supported.")
        murmur_str = str(mmh3.hash128(_data))
        full_hash = hashlib.sha256(murmur_str.encode("utf-8")).hexdigest()
        # First 16 characters are enough for an annotation
        return full_hash[:16]

    def derive_token(self, purpose: str) -> str:
        """Stable secret derived from the resource's uid.

        Tokens must not change between reconciles, otherwise every pass
        would rewrite the configuration.
        """
        return hashlib.sha256(f"{self.uid}/{purpose}".encode("utf-8")).hexdigest()

    def prepare_hash_annotation(self, hash: Union[str, int]) -> Dict[str, str]:
        return {self.HASH_ANNOTATION: str(hash)}

    def prepare_labels(self, component: str = None) -> Labels:
        if component is None or component == self.component_name:
            return self.labels
        return Labels(self.labels.as_dict()).update(
            {
                Labels.SYNAPSE_COMPONENT_LABEL: component,
                Labels.KUBERNETES_NAME_LABEL: component,
            }
        )

    def prepare_object_meta(
        self,
        name: str,
        labels: Labels = None,
        annotations: Dict[str, str] = None,
    ) -> V1ObjectMeta:
        return V1ObjectMeta(
            name=name,
            namespace=self.namespace,
            labels=(labels or self.labels).as_dict(),
            annotations=dict(annotations) if annotations else None,
        )

    def build_config_map(self, name: str, data: Dict[str, str]) -> V1ConfigMap:
        return V1ConfigMap(
            api_version="v1",
            kind="ConfigMap",
            metadata=self.prepare_object_meta(name),
            data=dict(data),
        )

    def build_persistent_volume_claim(
        self, name: str, labels: Labels = None, size: str = None
    ) -> V1PersistentVolumeClaim:
        return V1PersistentVolumeClaim(
            api_version="v1",
            kind="PersistentVolumeClaim",
            metadata=self.prepare_object_meta(name, labels),
            spec=V1PersistentVolumeClaimSpec(
                access_modes=["ReadWriteOnce"],
                resources=V1VolumeResourceRequirements(
                    requests={"storage": size or self.conf.default_storage_size}
                ),
            ),
        )

    def build_service(self, name: str, port_name: str, port: int) -> V1Service:
        return V1Service(
            api_version="v1",
            kind="Service",
            metadata=self.prepare_object_meta(name),
            spec=V1ServiceSpec(
                type="ClusterIP",
                selector=self.labels.selector_labels().as_dict(),
                ports=[
                    V1ServicePort(
                        name=port_name,
                        protocol="TCP",
                        port=port,
                        target_port=port,
                    )
                ],
            ),
        )

    def build_deployment(
        self,
        name: str,
        containers: List[V1Container],
        volumes: List[V1Volume],
        init_containers: List[V1Container] = None,
        labels: Labels = None,
        pod_annotations: Dict[str, str] = None,
    ) -> V1Deployment:
        labels = labels or self.labels
        selector_labels = labels.selector_labels().as_dict()
        return V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=self.prepare_object_meta(name, labels),
            spec=V1DeploymentSpec(
                replicas=1,
                selector=V1LabelSelector(match_labels=selector_labels),
                template=V1PodTemplateSpec(
                    metadata=V1ObjectMeta(
                        labels=dict(selector_labels),
                        annotations=dict(pod_annotations) if pod_annotations else None,
                    ),
                    spec=V1PodSpec(
                        containers=containers,
                        init_containers=init_containers or None,
                        volumes=volumes,
                    ),
                ),
            ),
        )

    @staticmethod
    def config_map_volume(name: str, config_map_name: str) -> V1Volume:
        return V1Volume(
            name=name, config_map=V1ConfigMapVolumeSource(name=config_map_name)
        )

    @staticmethod
    def persistent_volume_claim_volume(name: str, claim_name: str) -> V1Volume:
        return V1Volume(
            name=name,
            persistent_volume_claim=V1PersistentVolumeClaimVolumeSource(
                claim_name=claim_name
            ),
        )

    @staticmethod
    def volume_mount(name: str, mount_path: str, read_only: bool = False) -> V1VolumeMount:
        return V1VolumeMount(name=name, mount_path=mount_path, read_only=read_only or None)
