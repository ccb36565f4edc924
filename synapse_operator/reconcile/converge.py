import copy
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from kubernetes_asyncio.client.api_client import ApiClient
from synapse_operator.reconcile.ownership import OwnershipManager
from synapse_operator.sensors import OperatorSensor
from synapse_operator.store import Store
from synapse_operator.utils.errors import InvariantViolation
from synapse_operator.utils.helpers import get_path, is_subset, json_pointer

Path = Tuple[str, ...]

#: Fields of each kind that the operator owns. Maps below an owned field are
#: merged key by key and lists in ``NAMED_LISTS`` item by item, so keys and
#: items added by other actors survive. Everything outside these fields
#: (server defaults, fields set by other actors) is left untouched.
OWNED_FIELDS: Dict[str, Sequence[Path]] = {
    "ConfigMap": [("data",)],
    "PersistentVolumeClaim": [("spec", "resources", "requests")],
    "Service": [("spec", "type"), ("spec", "selector"), ("spec", "ports")],
    "Deployment": [("spec", "replicas"), ("spec", "template")],
}

#: Labels and annotations are owned per key on every kind.
METADATA_FIELDS: Sequence[Path] = [("metadata", "labels"), ("metadata", "annotations")]

#: Lists whose items are matched by ``name``. Items we do not declare, such
#: as injected sidecars, are kept. Other lists are owned whole.
NAMED_LISTS = frozenset(["containers", "initContainers"])

_MISSING = object()


def _add_or_replace(observed: Mapping, path: Path, value) -> Dict:
    """Build the operation that puts `value` at `path`.

    JSON patch cannot add below a missing parent, so the operation targets
    the first missing ancestor and carries the nested value.
    """
    current = observed
    for index, key in enumerate(path):
        if not isinstance(current, Mapping) or key not in current:
            nested = value
            for inner in reversed(path[index + 1 :]):
                nested = {inner: nested}
            return {"op": "add", "path": json_pointer(*path[: index + 1]), "value": nested}
        current = current[key]
    return {"op": "replace", "path": json_pointer(*path), "value": value}


def _named_items(items: Any) -> bool:
    if not isinstance(items, list):
        return False
    names = [item.get("name") for item in items if isinstance(item, Mapping)]
    return len(names) == len(items) and None not in names and len(set(names)) == len(names)


class ResourceConverger:
    """Makes a single managed object match its desired state.

    ``converge`` creates the object if it is absent, patches the owned
    fields that drifted if it is present, and otherwise does nothing. It
    returns whether a write happened.

    Desired state may be given as a kubernetes_asyncio model or as a dict
    shaped like the API serves it.
    """

    store: Store
    ownership: OwnershipManager
    owned_fields: Dict[str, Sequence[Path]]

    def __init__(
        self,
        store: Store,
        ownership: Optional[OwnershipManager] = None,
        sensor: Optional[OperatorSensor] = None,
        logger: Optional[logging.Logger] = None,
        owned_fields: Optional[Dict[str, Sequence[Path]]] = None,
        api_client: Optional[ApiClient] = None,
    ):
        self.store = store
        self.ownership = ownership or OwnershipManager()
        self.sensor = sensor or OperatorSensor()
        self.logger = logger or logging.getLogger(__name__)
        self.owned_fields = owned_fields if owned_fields is not None else OWNED_FIELDS
        self.api_client = api_client

    def serialize(self, desired: Any) -> Dict:
        """Return `desired` as a fresh dict keyed like the API."""
        if isinstance(desired, Mapping):
            return copy.deepcopy(dict(desired))
        if self.api_client is None:
            raise ValueError(
                f"Serializing {type(desired).__name__} requires an API client"
            )
        return self.api_client.sanitize_for_serialization(desired)

    async def converge(
        self, desired: Any, kind: str, owner: Optional[Mapping] = None
    ) -> bool:
        """Create, patch or leave alone one object.

        Raises:
            ConflictError: the object changed (or was created) concurrently.
            InvariantViolation: the object is controlled by another owner.
            StoreError: any other store failure.
        """
        desired = self.serialize(desired)
        if owner is not None:
            self.ownership.assign_owner(desired, owner)
        name = desired["metadata"]["name"]
        namespace = desired["metadata"]["namespace"]

        state = self.sensor.on_resource_sync_start(name, namespace, kind)
        operation = "no-op"
        try:
            observed = await self.store.get(kind, namespace, name)
            if observed is None:
                await self.store.create(kind, namespace, desired)
                operation = "created"
                self.logger.info(f"Created {kind} {namespace}/{name}")
            else:
                drift, patch = self.compute_patch(desired, observed, kind, owner)
                if patch:
                    self.sensor.on_resource_drift_detected(
                        name, namespace, kind, drift
                    )
                    patch.insert(
                        0,
                        {
                            "op": "replace",
                            "path": "/metadata/resourceVersion",
                            "value": observed["metadata"]["resourceVersion"],
                        },
                    )
                    await self.store.patch(kind, namespace, name, patch)
                    operation = "patched"
                    self.logger.info(
                        f"Patched {kind} {namespace}/{name}: {', '.join(drift)}"
                    )
        except Exception as ex:
            self.sensor.on_resource_sync_complete(
                name, namespace, kind, state, operation, success=False, error=ex
            )
            raise
        self.sensor.on_resource_sync_complete(
            name, namespace, kind, state, operation, success=True
        )
        return operation != "no-op"

    def compute_patch(
        self,
        desired: Mapping,
        observed: Mapping,
        kind: str,
        owner: Optional[Mapping] = None,
    ) -> Tuple[List[str], List[Dict]]:
        """Return the drifted fields and the JSON patch that fixes them.

        A desired value matches when it is contained in the observed one, so
        values defaulted by the API server are not drift. The patch only
        touches what is declared in `desired`.
        """
        drift: List[str] = []
        patch: List[Dict] = []

        for path in list(METADATA_FIELDS) + list(self.owned_fields.get(kind, ())):
            wanted = get_path(desired, path, _MISSING)
            if wanted is _MISSING:
                continue
            present = get_path(observed, path, _MISSING)
            if present is _MISSING or present is None:
                if wanted or path not in METADATA_FIELDS:
                    drift.append(".".join(path))
                    patch.append(_add_or_replace(observed, path, wanted))
                continue
            self.diff(wanted, present, path, drift, patch)

        if owner is not None and not self.ownership.is_controlled_by(observed, owner):
            current = self.ownership.controller_of(observed)
            if current is not None:
                meta = observed["metadata"]
                raise InvariantViolation(
                    f"{kind} {meta.get('namespace')}/{meta.get('name')} is already "
                    f"controlled by {current.get('kind')} {current.get('name')}"
                )
            drift.append("metadata.ownerReferences")
            reference = self.ownership.owner_reference(owner)
            if get_path(observed, ("metadata", "ownerReferences")):
                patch.append(
                    {"op": "add", "path": "/metadata/ownerReferences/-", "value": reference}
                )
            else:
                patch.append(
                    _add_or_replace(observed, ("metadata", "ownerReferences"), [reference])
                )

        return drift, patch

    def diff(
        self,
        wanted: Any,
        present: Any,
        path: Path,
        drift: List[str],
        patch: List[Dict],
    ) -> None:
        """Append the operations that make `present` contain `wanted`."""
        if isinstance(wanted, Mapping) and isinstance(present, Mapping):
            for key, value in wanted.items():
                child = path + (key,)
                if key not in present:
                    drift.append(".".join(child))
                    patch.append({"op": "add", "path": json_pointer(*child), "value": value})
                else:
                    self.diff(value, present[key], child, drift, patch)
            return

        if path[-1] in NAMED_LISTS and _named_items(wanted) and isinstance(present, list):
            positions = {
                item.get("name"): index
                for index, item in enumerate(present)
                if isinstance(item, Mapping)
            }
            for item in wanted:
                index = positions.get(item["name"])
                if index is None:
                    drift.append(".".join(path + (item["name"],)))
                    patch.append({"op": "add", "path": json_pointer(*path, "-"), "value": item})
                else:
                    self.diff(item, present[index], path + (str(index),), drift, patch)
            return

        if not is_subset(wanted, present):
            drift.append(".".join(path))
            patch.append({"op": "replace", "path": json_pointer(*path), "value": wanted})
