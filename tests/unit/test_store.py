"""Unit tests for the Kubernetes-backed store and API error conversion."""

import json
import pytest
from unittest.mock import AsyncMock, Mock
from kubernetes_asyncio.client import ApiException
from synapse_operator.store import KubeStore
from synapse_operator.utils.errors import (
    ConflictError,
    NotFoundError,
    UpstreamError,
    already_exists_error,
    convert_api_exception,
)


def api_exception(status, reason="", body=None):
    ex = ApiException(status=status, reason=reason)
    ex.body = json.dumps(body) if body is not None else None
    return ex


class TestConvertApiException:
    def test_not_found(self):
        error = convert_api_exception(api_exception(404, "Not Found"))
        assert isinstance(error, NotFoundError)
        assert error.status == 404

    def test_conflict(self):
        error = convert_api_exception(
            api_exception(409, "Conflict", {"reason": "Conflict", "message": "stale"})
        )
        assert isinstance(error, ConflictError)
        assert "stale" in str(error)

    def test_already_exists(self):
        ex = api_exception(409, "Conflict", {"reason": "AlreadyExists"})
        assert already_exists_error(ex)
        assert isinstance(convert_api_exception(ex), ConflictError)

    def test_everything_else_is_upstream(self):
        error = convert_api_exception(api_exception(403, "Forbidden", {"message": "denied"}))
        assert isinstance(error, UpstreamError)
        assert error.retryable

    def test_garbage_body(self):
        ex = api_exception(500, "Internal Server Error")
        ex.body = "<html>"
        assert isinstance(convert_api_exception(ex), UpstreamError)

    def test_other_exceptions_are_reraised(self):
        with pytest.raises(RuntimeError):
            convert_api_exception(RuntimeError("boom"))


@pytest.fixture
def kube_store():
    api_client = Mock()
    api_client.sanitize_for_serialization = Mock(side_effect=lambda obj: {"converted": obj})
    store = KubeStore(api_client)
    store.core_v1 = Mock()
    store.apps_v1 = Mock()
    store.custom_objects = Mock()
    return store


class TestKubeStore:
    async def test_get_custom_object(self, kube_store):
        kube_store.custom_objects.get_namespaced_custom_object = AsyncMock(
            return_value={"kind": "Synapse"}
        )
        assert await kube_store.get("Synapse", "default", "matrix") == {"kind": "Synapse"}
        kube_store.custom_objects.get_namespaced_custom_object.assert_awaited_once_with(
            group="synapse.opdev.io",
            version="v1alpha1",
            namespace="default",
            plural="synapses",
            name="matrix",
        )

    async def test_get_builtin_object_is_serialized(self, kube_store):
        kube_store.core_v1.read_namespaced_config_map = AsyncMock(return_value="model")
        assert await kube_store.get("ConfigMap", "default", "cfg") == {"converted": "model"}

    async def test_get_missing_returns_none(self, kube_store):
        kube_store.apps_v1.read_namespaced_deployment = AsyncMock(
            side_effect=api_exception(404, "Not Found")
        )
        assert await kube_store.get("Deployment", "default", "matrix") is None

    async def test_get_failure_is_converted(self, kube_store):
        kube_store.apps_v1.read_namespaced_deployment = AsyncMock(
            side_effect=api_exception(403, "Forbidden")
        )
        with pytest.raises(UpstreamError):
            await kube_store.get("Deployment", "default", "matrix")

    async def test_patch_conflict(self, kube_store):
        kube_store.core_v1.patch_namespaced_service = AsyncMock(
            side_effect=api_exception(409, "Conflict")
        )
        with pytest.raises(ConflictError):
            await kube_store.patch("Service", "default", "matrix", [])

    async def test_patch_status_of_custom_object(self, kube_store):
        patch = [{"op": "add", "path": "/status/state", "value": "RUNNING"}]
        kube_store.custom_objects.patch_namespaced_custom_object_status = AsyncMock(
            return_value={}
        )
        await kube_store.patch_status("Heisenbridge", "default", "irc", patch)
        kube_store.custom_objects.patch_namespaced_custom_object_status.assert_awaited_once_with(
            group="synapse.opdev.io",
            version="v1alpha1",
            namespace="default",
            plural="heisenbridges",
            name="irc",
            body=patch,
        )

    async def test_list_custom_objects(self, kube_store):
        kube_store.custom_objects.list_namespaced_custom_object = AsyncMock(
            return_value={"items": [{"metadata": {"name": "irc"}}]}
        )
        items = await kube_store.list("Heisenbridge", "default")
        assert items == [{"metadata": {"name": "irc"}}]

    async def test_delete_missing_is_ignored(self, kube_store):
        kube_store.core_v1.delete_namespaced_persistent_volume_claim = AsyncMock(
            side_effect=api_exception(404, "Not Found")
        )
        await kube_store.delete("PersistentVolumeClaim", "default", "matrix")
