from typing import Dict, List, NamedTuple, Optional


class ReconcileRequest(NamedTuple):
    """Identifies the resource to re-evaluate. Carries no payload: the current
    state is always re-read from the store."""

    kind: str
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.kind}/{self.namespace}/{self.name}"


class Store:
    """Versioned object store (the Kubernetes API).

    Objects are JSON-shaped dicts. Patches are JSON patches (RFC 6902); a
    patch that replaces ``/metadata/resourceVersion`` with the last seen
    version fails with ``ConflictError`` when that version is stale.
    """

    async def get(self, kind: str, namespace: str, name: str) -> Optional[Dict]:
        """Return the current object, or None if it does not exist."""
        raise NotImplementedError()

    async def list(
        self, kind: str, namespace: str, label_selector: str = None
    ) -> List[Dict]:
        raise NotImplementedError()

    async def create(self, kind: str, namespace: str, body: Dict) -> Dict:
        raise NotImplementedError()

    async def patch(
        self, kind: str, namespace: str, name: str, patch: List[Dict]
    ) -> Dict:
        raise NotImplementedError()

    async def patch_status(
        self, kind: str, namespace: str, name: str, patch: List[Dict]
    ) -> Dict:
        raise NotImplementedError()

    async def delete(self, kind: str, namespace: str, name: str) -> None:
        raise NotImplementedError()
