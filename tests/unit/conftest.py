"""Shared fixtures: an in-memory store that behaves like the API server for
the operations the operator uses."""

import copy
import itertools
import pytest
from collections import Counter
from typing import Dict, List, Optional
from kubernetes_asyncio.client.api_client import ApiClient
from synapse_operator.controllers.base import BaseReconciler
from synapse_operator.sensors import OperatorSensor
from synapse_operator.store import Store
from synapse_operator.store.kinds import SYNAPSE_GROUP, SYNAPSE_VERSION
from synapse_operator.utils.errors import ConflictError, NotFoundError, UpstreamError

CUSTOM_API_VERSION = f"{SYNAPSE_GROUP}/{SYNAPSE_VERSION}"


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def _split(path: str) -> List[str]:
    return [_unescape(token) for token in path.lstrip("/").split("/")]


def apply_json_patch(document: Dict, patch: List[Dict]) -> Dict:
    """Apply the subset of RFC 6902 used by the operator (add, replace, remove)."""
    for operation in patch:
        *parents, last = _split(operation["path"])
        target = document
        for token in parents:
            target = target[int(token)] if isinstance(target, list) else target[token]
        op = operation["op"]
        if isinstance(target, list):
            if op == "add":
                if last == "-":
                    target.append(copy.deepcopy(operation["value"]))
                else:
                    target.insert(int(last), copy.deepcopy(operation["value"]))
            elif op == "replace":
                target[int(last)] = copy.deepcopy(operation["value"])
            elif op == "remove":
                del target[int(last)]
        else:
            if op == "replace" and last not in target:
                raise UpstreamError(f"Cannot replace missing {operation['path']}", status=422)
            if op in ("add", "replace"):
                target[last] = copy.deepcopy(operation["value"])
            elif op == "remove":
                del target[last]
    return document


class FakeStore(Store):
    """In-memory Store.

    Every write bumps ``metadata.resourceVersion``. A patch that replaces
    ``/metadata/resourceVersion`` with a stale value fails with
    ``ConflictError``. Deleting an object cascades to the objects it controls.
    Failures can be injected per ``(verb, kind)`` through ``errors``.
    """

    def __init__(self):
        self.objects: Dict = {}
        self.calls: Counter = Counter()
        self.errors: Dict = {}
        self._versions = itertools.count(1)

    def _key(self, kind, namespace, name):
        return (kind, namespace, name)

    def _check(self, verb: str, kind: str):
        self.calls[(verb, kind)] += 1
        error = self.errors.get((verb, kind))
        if error is not None:
            raise error

    def _bump(self, body: Dict) -> None:
        body["metadata"]["resourceVersion"] = str(next(self._versions))

    def writes(self, kind: str = None) -> int:
        return sum(
            count
            for (verb, k), count in self.calls.items()
            if verb in ("create", "patch", "patch_status", "delete")
            and (kind is None or k == kind)
        )

    def put(self, body: Dict) -> Dict:
        """Seed an object directly, as another actor would have created it."""
        body = copy.deepcopy(body)
        meta = body.setdefault("metadata", {})
        meta.setdefault("uid", f"{body['kind'].lower()}-{meta['name']}-uid")
        self._bump(body)
        self.objects[self._key(body["kind"], meta["namespace"], meta["name"])] = body
        return copy.deepcopy(body)

    def peek(self, kind: str, namespace: str, name: str) -> Optional[Dict]:
        body = self.objects.get(self._key(kind, namespace, name))
        return copy.deepcopy(body) if body is not None else None

    async def get(self, kind, namespace, name):
        self._check("get", kind)
        return self.peek(kind, namespace, name)

    async def list(self, kind, namespace, label_selector=None):
        self._check("list", kind)
        wanted = {}
        if label_selector:
            wanted = dict(term.split("=", 1) for term in label_selector.split(","))
        items = []
        for (k, ns, _), body in sorted(self.objects.items()):
            labels = body["metadata"].get("labels") or {}
            if k == kind and ns == namespace and all(
                labels.get(key) == value for key, value in wanted.items()
            ):
                items.append(copy.deepcopy(body))
        return items

    async def create(self, kind, namespace, body):
        self._check("create", kind)
        key = self._key(kind, namespace, body["metadata"]["name"])
        if key in self.objects:
            raise ConflictError(f"{kind} {namespace}/{key[2]} already exists", status=409)
        return self.put(body)

    async def _patch(self, kind, namespace, name, patch):
        key = self._key(kind, namespace, name)
        if key not in self.objects:
            raise NotFoundError(f"{kind} {namespace}/{name} not found", status=404)
        current = self.objects[key]
        for operation in patch:
            if (
                operation["path"] == "/metadata/resourceVersion"
                and operation["value"] != current["metadata"]["resourceVersion"]
            ):
                raise ConflictError(f"{kind} {namespace}/{name} was modified", status=409)
        updated = apply_json_patch(copy.deepcopy(current), patch)
        self._bump(updated)
        self.objects[key] = updated
        return copy.deepcopy(updated)

    async def patch(self, kind, namespace, name, patch):
        self._check("patch", kind)
        return await self._patch(kind, namespace, name, patch)

    async def patch_status(self, kind, namespace, name, patch):
        self._check("patch_status", kind)
        return await self._patch(kind, namespace, name, patch)

    async def delete(self, kind, namespace, name):
        self._check("delete", kind)
        body = self.objects.pop(self._key(kind, namespace, name), None)
        if body is None:
            return
        uid = body["metadata"]["uid"]
        for key, child in list(self.objects.items()):
            references = child["metadata"].get("ownerReferences") or []
            if any(ref.get("uid") == uid and ref.get("controller") for ref in references):
                await self.delete(*key)


class RecordingSensor(OperatorSensor):
    """Sensor that remembers every hook call."""

    def __init__(self):
        self.events = []

    def on_reconcile_start(self, kind, name, namespace, trigger_source):
        self.events.append(("reconcile_start", kind, name, trigger_source))
        return {"trigger_source": trigger_source}

    def on_reconcile_complete(self, kind, name, namespace, state, result, error=None):
        self.events.append(("reconcile_complete", kind, name, result))

    def on_resource_sync_complete(
        self, resource_name, namespace, resource_type, state, operation, success, error=None
    ):
        self.events.append(("sync", resource_type, resource_name, operation, success))

    def on_resource_drift_detected(self, resource_name, namespace, resource_type, drift_fields):
        self.events.append(("drift", resource_type, resource_name, tuple(drift_fields)))

    def on_status_update(self, kind, name, namespace, update_fields):
        self.events.append(("status", kind, name, tuple(update_fields)))

    def on_reconcile_triggered(self, kind, name, namespace):
        self.events.append(("triggered", kind, name))

    def named(self, event: str):
        return [e for e in self.events if e[0] == event]


def custom_resource(kind: str, name: str, spec: Dict, namespace: str = "default") -> Dict:
    return {
        "apiVersion": CUSTOM_API_VERSION,
        "kind": kind,
        "metadata": {"name": name, "namespace": namespace},
        "spec": spec,
    }


def config_map(name: str, data: Dict, namespace: str = "default") -> Dict:
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": name, "namespace": namespace},
        "data": data,
    }


@pytest.fixture
async def api_client():
    """Serializer for manifests, shared with reconcilers the way startup does."""
    async with ApiClient() as client:
        BaseReconciler.shared_api_client = client
        yield client
        BaseReconciler.shared_api_client = None


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def sensor():
    return RecordingSensor()


@pytest.fixture
def synapse_body(store):
    return store.put(
        custom_resource(
            "Synapse",
            "matrix",
            {"homeserver": {"values": {"serverName": "example.com", "reportStats": False}}},
        )
    )
