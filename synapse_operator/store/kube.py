import logging
from typing import Dict, List, Optional
from kubernetes_asyncio.client import (
    ApiException,
    AppsV1Api,
    CoreV1Api,
    CustomObjectsApi,
    V1DeleteOptions,
)
from kubernetes_asyncio.client.api_client import ApiClient
from synapse_operator.store.base import Store
from synapse_operator.store.kinds import KindInfo, lookup
from synapse_operator.utils.errors import NotFoundError, convert_api_exception
from synapse_operator.utils.objects import cached_property

logger = logging.getLogger(__name__)


class KubeStore(Store):
    """Store backed by the Kubernetes API through kubernetes_asyncio.

    Built-in kinds go through the typed APIs and are returned as plain dicts
    (camelCase, as the API server serves them). Custom kinds go through the
    CustomObjectsApi. Every ``ApiException`` is converted to the operator's
    store error taxonomy.
    """

    api_client: ApiClient

    def __init__(self, api_client: ApiClient):
        self.api_client = api_client

    @cached_property
    def core_v1(self) -> CoreV1Api:
        return CoreV1Api(self.api_client)

    @cached_property
    def apps_v1(self) -> AppsV1Api:
        return AppsV1Api(self.api_client)

    @cached_property
    def custom_objects(self) -> CustomObjectsApi:
        return CustomObjectsApi(self.api_client)

    def _method(self, info: KindInfo, verb: str, suffix: str = ""):
        api = getattr(self, info.api)
        return getattr(api, f"{verb}_namespaced_{info.method_suffix}{suffix}")

    def _as_dict(self, obj) -> Dict:
        if obj is None or isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)

    async def get(self, kind: str, namespace: str, name: str) -> Optional[Dict]:
        info = lookup(kind)
        try:
            if info.custom:
                return await self.custom_objects.get_namespaced_custom_object(
                    group=info.group,
                    version=info.version,
                    namespace=namespace,
                    plural=info.plural,
                    name=name,
                )
            obj = await self._method(info, "read")(name=name, namespace=namespace)
            return self._as_dict(obj)
        except ApiException as ex:
            error = convert_api_exception(ex)
            if isinstance(error, NotFoundError):
                return None
            raise error from ex

    async def list(
        self, kind: str, namespace: str, label_selector: str = None
    ) -> List[Dict]:
        info = lookup(kind)
        kwargs = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        try:
            if info.custom:
                result = await self.custom_objects.list_namespaced_custom_object(
                    group=info.group,
                    version=info.version,
                    namespace=namespace,
                    plural=info.plural,
                    **kwargs,
                )
            else:
                result = self._as_dict(
                    await self._method(info, "list")(namespace=namespace, **kwargs)
                )
        except ApiException as ex:
            raise convert_api_exception(ex) from ex
        return list(result.get("items") or [])

    async def create(self, kind: str, namespace: str, body: Dict) -> Dict:
        info = lookup(kind)
        try:
            if info.custom:
                return await self.custom_objects.create_namespaced_custom_object(
                    group=info.group,
                    version=info.version,
                    namespace=namespace,
                    plural=info.plural,
                    body=body,
                )
            obj = await self._method(info, "create")(namespace=namespace, body=body)
            return self._as_dict(obj)
        except ApiException as ex:
            raise convert_api_exception(ex) from ex

    async def patch(
        self, kind: str, namespace: str, name: str, patch: List[Dict]
    ) -> Dict:
        info = lookup(kind)
        try:
            if info.custom:
                return await self.custom_objects.patch_namespaced_custom_object(
                    group=info.group,
                    version=info.version,
                    namespace=namespace,
                    plural=info.plural,
                    name=name,
                    body=patch,
                )
            obj = await self._method(info, "patch")(
                name=name, namespace=namespace, body=patch
            )
            return self._as_dict(obj)
        except ApiException as ex:
            raise convert_api_exception(ex) from ex

    async def patch_status(
        self, kind: str, namespace: str, name: str, patch: List[Dict]
    ) -> Dict:
        info = lookup(kind)
        try:
            if info.custom:
                return await self.custom_objects.patch_namespaced_custom_object_status(
                    group=info.group,
                    version=info.version,
                    namespace=namespace,
                    plural=info.plural,
                    name=name,
                    body=patch,
                )
            obj = await self._method(info, "patch", "_status")(
                name=name, namespace=namespace, body=patch
            )
            return self._as_dict(obj)
        except ApiException as ex:
            raise convert_api_exception(ex) from ex

    async def delete(self, kind: str, namespace: str, name: str) -> None:
        info = lookup(kind)
        try:
            if info.custom:
                await self.custom_objects.delete_namespaced_custom_object(
                    group=info.group,
                    version=info.version,
                    namespace=namespace,
                    plural=info.plural,
                    name=name,
                )
            else:
                await self._method(info, "delete")(
                    name=name,
                    namespace=namespace,
                    body=V1DeleteOptions(propagation_policy="Background"),
                )
        except ApiException as ex:
            if ex.status == 404:
                logger.debug(f"{kind} {namespace}/{name} already deleted")
                return
            raise convert_api_exception(ex) from ex
