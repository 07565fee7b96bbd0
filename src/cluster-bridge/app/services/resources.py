"""Custom resource clients for subscriptions and functions.

Each client is bound to one cluster's ApiClient. Kubernetes calls are
blocking, so they are run in a worker thread.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException

from shared.observability import external_call, get_logger

from .exceptions import ClusterAPIError, InvalidInputError, ResourceNotFoundError

logger = get_logger(__name__)

EVENT_TYPE_PREFIX = "sap.kyma.custom"

FUNCTION_NAME_LABEL = "serverless.kyma-project.io/function-name"
FUNCTION_RESOURCE_LABEL = "serverless.kyma-project.io/resource"
FUNCTION_CONTAINER = "function"

DEFAULT_FUNCTION_RUNTIME = "nodejs16"
DEFAULT_FUNCTION_SOURCE = (
    "module.exports = {\n"
    " main: function (event, context) {\n"
    "  console.log(event.data);\n"
    '  return "Hello World!";\n'
    "  }\n"
    "}"
)
DEFAULT_FUNCTION_DEPS = (
    '{ \n  "name": "test",\n  "version": "1.0.0",\n  "dependencies":{}\n}'
)


class CustomResourceClient:
    """CRUD access to one custom resource kind.

    An empty namespace on ``list`` means all namespaces.
    """

    group: str
    version: str
    plural: str
    kind: str

    def __init__(self, api_client: client.ApiClient):
        self.api_client = api_client
        self._custom = client.CustomObjectsApi(api_client)

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"

    async def list(self, namespace: str) -> dict[str, Any]:
        """List resources in ``namespace`` or across all namespaces."""

        def _list() -> dict[str, Any]:
            if namespace:
                return self._custom.list_namespaced_custom_object(
                    self.group, self.version, namespace, self.plural
                )
            return self._custom.list_cluster_custom_object(
                self.group, self.version, self.plural
            )

        return await self._call("list", _list, namespace=namespace)

    async def get(self, name: str, namespace: str) -> dict[str, Any]:
        _require_namespace(namespace)
        return await self._call(
            "get",
            lambda: self._custom.get_namespaced_custom_object(
                self.group, self.version, namespace, self.plural, name
            ),
            name=name,
            namespace=namespace,
        )

    async def create(self, resource: dict[str, Any]) -> dict[str, Any]:
        name, namespace = _identity(resource)
        return await self._call(
            "create",
            lambda: self._custom.create_namespaced_custom_object(
                self.group, self.version, namespace, self.plural, resource
            ),
            name=name,
            namespace=namespace,
        )

    async def update(self, resource: dict[str, Any]) -> dict[str, Any]:
        """Replace a resource, carrying over the live resourceVersion if missing."""
        name, namespace = _identity(resource)
        metadata = resource["metadata"]
        if not metadata.get("resourceVersion"):
            live = await self.get(name, namespace)
            metadata["resourceVersion"] = live["metadata"]["resourceVersion"]

        return await self._call(
            "update",
            lambda: self._custom.replace_namespaced_custom_object(
                self.group, self.version, namespace, self.plural, name, resource
            ),
            name=name,
            namespace=namespace,
        )

    async def delete(self, name: str, namespace: str) -> None:
        _require_namespace(namespace)
        await self._call(
            "delete",
            lambda: self._custom.delete_namespaced_custom_object(
                self.group, self.version, namespace, self.plural, name
            ),
            name=name,
            namespace=namespace,
        )

    async def _call(
        self,
        operation: str,
        fn: Callable[[], Any],
        name: str | None = None,
        namespace: str | None = None,
    ) -> Any:
        try:
            with external_call(logger, "kubernetes", f"{operation} {self.plural}"):
                return await asyncio.to_thread(fn)
        except ApiException as e:
            if e.status == 404:
                raise ResourceNotFoundError(
                    f"{self.kind} '{name}' not found in namespace '{namespace}'"
                ) from e
            raise ClusterAPIError(
                f"Failed to {operation} {self.plural}: {e.status} {e.reason}"
            ) from e
        except urllib3.exceptions.HTTPError as e:
            raise ClusterAPIError(f"Cluster API unreachable: {e}") from e


class SubscriptionClient(CustomResourceClient):
    """Eventing subscriptions."""

    group = "eventing.kyma-project.io"
    version = "v1alpha1"
    plural = "subscriptions"
    kind = "Subscription"

    async def clean_event_types(self, namespace: str) -> list[str]:
        """Collect the distinct clean event types of all subscriptions, first seen first."""
        subscriptions = await self.list(namespace)

        clean_types: list[str] = []
        for item in subscriptions.get("items", []):
            for event_type in (item.get("status") or {}).get("cleanEventTypes") or []:
                if event_type not in clean_types:
                    clean_types.append(event_type)
        return clean_types


class FunctionClient(CustomResourceClient):
    """Serverless functions."""

    group = "serverless.kyma-project.io"
    version = "v1alpha1"
    plural = "functions"
    kind = "Function"

    def __init__(self, api_client: client.ApiClient):
        super().__init__(api_client)
        self._core = client.CoreV1Api(api_client)

    async def tiny_list(self, namespace: str) -> list[dict[str, str]]:
        """List functions reduced to name, namespace and source."""
        functions = await self.list(namespace)
        return [
            {
                "name": item["metadata"]["name"],
                "namespace": item["metadata"].get("namespace", ""),
                "source": (item.get("spec") or {}).get("source", ""),
            }
            for item in functions.get("items", [])
        ]

    async def get_logs(self, name: str, namespace: str) -> list[str]:
        """Return the logs of every runtime pod of a function."""
        _require_namespace(namespace)
        selector = f"{FUNCTION_NAME_LABEL}={name},{FUNCTION_RESOURCE_LABEL}=deployment"

        def _collect() -> list[str]:
            pods = self._core.list_namespaced_pod(namespace, label_selector=selector)
            return [
                self._core.read_namespaced_pod_log(
                    pod.metadata.name, namespace, container=FUNCTION_CONTAINER
                )
                for pod in pods.items
            ]

        return await self._call("logs", _collect, name=name, namespace=namespace)


def event_type_for(app_name: str, event_name: str, event_version: str) -> str:
    return f"{EVENT_TYPE_PREFIX}.{app_name}.{event_name}.{event_version}"


def subscription_manifest(
    name: str,
    namespace: str,
    sink: str,
    event_types: list[str],
) -> dict[str, Any]:
    """Build a subscription filtering on exact event types."""
    filters = [
        {
            "eventSource": {"property": "source", "type": "exact", "value": ""},
            "eventType": {"property": "type", "type": "exact", "value": event_type},
        }
        for event_type in event_types
    ]
    return {
        "apiVersion": f"{SubscriptionClient.group}/{SubscriptionClient.version}",
        "kind": SubscriptionClient.kind,
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"sink": sink, "filter": {"filters": filters}},
    }


def function_manifest(
    name: str,
    namespace: str,
    source: str = DEFAULT_FUNCTION_SOURCE,
    deps: str = DEFAULT_FUNCTION_DEPS,
    runtime: str = DEFAULT_FUNCTION_RUNTIME,
    min_replicas: int = 1,
    max_replicas: int = 5,
) -> dict[str, Any]:
    return {
        "apiVersion": f"{FunctionClient.group}/{FunctionClient.version}",
        "kind": FunctionClient.kind,
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "source": source,
            "deps": deps,
            "runtime": runtime,
            "minReplicas": min_replicas,
            "maxReplicas": max_replicas,
        },
    }


def _require_namespace(namespace: str) -> None:
    if not namespace:
        raise InvalidInputError("A namespace is required for this operation")


def _identity(resource: dict[str, Any]) -> tuple[str, str]:
    metadata = resource.get("metadata") or {}
    name = metadata.get("name")
    namespace = metadata.get("namespace")
    if not name:
        raise InvalidInputError("Resource metadata.name is required")
    _require_namespace(namespace)
    return name, namespace
