from typing import Dict


class ResourceLabels:
    SYNAPSE_DOMAIN: str = "synapse.opdev.io/"

    SYNAPSE_KIND_LABEL = SYNAPSE_DOMAIN + "kind"

    SYNAPSE_OWNER_LABEL = SYNAPSE_DOMAIN + "owner"

    SYNAPSE_COMPONENT_LABEL = SYNAPSE_DOMAIN + "component"


class Labels(ResourceLabels):
    KUBERNETES_DOMAIN = "app.kubernetes.io/"

    KUBERNETES_NAME_LABEL = KUBERNETES_DOMAIN + "name"

    KUBERNETES_INSTANCE_LABEL = KUBERNETES_DOMAIN + "instance"

    KUBERNETES_PART_OF_LABEL = KUBERNETES_DOMAIN + "part-of"

    APPLICATION_NAME = "synapse"

    KUBERNETES_MANAGED_BY_LABEL = KUBERNETES_DOMAIN + "managed-by"

    _labels: Dict[str, str]

    def __init__(self, labels: Dict[str, str] = None) -> None:
        self._labels = labels if labels else dict()

    def update(self, labels: Dict[str, str]) -> "Labels":
        self._labels.update(labels.copy())
        return self

    def as_dict(self) -> Dict[str, str]:
        """Return labels as dictionary."""
        return self._labels.copy()

    def include(self, label: str, value: str) -> "Labels":
        self.update({label: value})
        return self

    def include_synapse_kind(self, kind: str) -> "Labels":
        return self.include(self.SYNAPSE_KIND_LABEL, kind)

    def include_synapse_owner(self, owner: str) -> "Labels":
        return self.include(self.SYNAPSE_OWNER_LABEL, owner)

    def include_synapse_component(self, component: str) -> "Labels":
        return self.include(self.SYNAPSE_COMPONENT_LABEL, component)

    def include_kubernetes_name(self, name: str) -> "Labels":
        return self.include(self.KUBERNETES_NAME_LABEL, name)

    def include_kubernetes_instance(self, instance_name: str) -> "Labels":
        return self.include(
            self.KUBERNETES_INSTANCE_LABEL,
            self.get_or_valid_instance_label_value(instance_name),
        )

    def include_kubernetes_part_of(self, instance_name: str) -> "Labels":
        return self.include(
            self.KUBERNETES_PART_OF_LABEL,
            self.get_or_valid_instance_label_value(
                f"{self.APPLICATION_NAME}-{instance_name}"
            ),
        )

    def include_kubernetes_managed_by(self, operator_name: str) -> "Labels":
        return self.include(self.KUBERNETES_MANAGED_BY_LABEL, operator_name)

    @staticmethod
    def get_or_valid_instance_label_value(instance: str) -> str:
        """Validates the instance name and if needed modifies it to make it a valid Label value:
        * (([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])?
        * 63 characters max
        """
        if not instance:
            return ""
        value = instance[:63]
        return value.rstrip(".-_")

    def selector_labels(self) -> "Labels":
        """Subset of labels used for pod selectors; stable across upgrades."""
        keys = [
            self.SYNAPSE_KIND_LABEL,
            self.SYNAPSE_OWNER_LABEL,
            self.SYNAPSE_COMPONENT_LABEL,
        ]
        return Labels({key: self._labels[key] for key in keys if key in self._labels})

    def __str__(self):
        return f"Labels<{self._labels}>"

    @classmethod
    def generate_default_labels(
        cls,
        owner_name: str,
        owner_kind: str,
        component: str,
        managed_by: str,
    ) -> "Labels":
        labels = Labels()
        return (
            labels.include_synapse_kind(owner_kind)
            .include_synapse_owner(owner_name)
            .include_synapse_component(component)
            .include_kubernetes_name(component)
            .include_kubernetes_instance(owner_name)
            .include_kubernetes_part_of(owner_name)
            .include_kubernetes_managed_by(managed_by)
        )
