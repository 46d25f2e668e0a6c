"""Resource client backed by the Kubernetes dynamic client."""

import threading
from typing import Any, Callable, Optional, TypeVar

from kubernetes.client import ApiClient
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError as KindNotFoundError

from crossplane_broker.domain.exceptions import (
    InfrastructureError,
    ResourceAlreadyExistsError,
    ResourceConflictError,
    ResourceNotFoundError,
)
from crossplane_broker.domain.ports import LabelSelector, ResourceClientPort, ResourceKind
from crossplane_broker.infrastructure.logging import get_logger

T = TypeVar("T")

MERGE_PATCH = "application/merge-patch+json"

logger = get_logger(__name__)


class KubernetesResourceClient(ResourceClientPort):
    """ResourceClientPort implementation for one cluster.

    API discovery runs on first use. Kubernetes API errors are translated into
    domain exceptions so callers never see ``ApiException``.
    """

    def __init__(self, api_client: ApiClient, request_timeout: Optional[float] = 30.0) -> None:
        self._api_client = api_client
        self._request_timeout = request_timeout
        self._dynamic: Optional[DynamicClient] = None
        self._lock = threading.Lock()

    @property
    def dynamic(self) -> DynamicClient:
        """Lazy load the dynamic client."""
        if self._dynamic is None:
            with self._lock:
                if self._dynamic is None:
                    try:
                        self._dynamic = DynamicClient(self._api_client)
                    except ApiException as e:
                        raise InfrastructureError(
                            f"API discovery failed: {e.reason}", details={"status": e.status}
                        ) from e
        return self._dynamic

    def _resource(self, kind: ResourceKind) -> Any:
        try:
            return self.dynamic.resources.get(api_version=kind.api_version, kind=kind.kind)
        except KindNotFoundError as e:
            raise InfrastructureError(
                f"resource kind {kind} is not served by the cluster",
                details={"kind": str(kind)},
            ) from e

    def _call(
        self,
        kind: ResourceKind,
        name: str,
        namespace: Optional[str],
        operation: Callable[[], T],
        on_conflict: Callable[[], Exception],
    ) -> T:
        try:
            return operation()
        except ApiException as e:
            if e.status == 404:
                raise ResourceNotFoundError(kind.kind, name, namespace) from e
            if e.status == 409:
                raise on_conflict() from e
            logger.debug("Kubernetes API call for %s %s failed: %s", kind, name, e.reason)
            raise InfrastructureError(
                f"{kind.kind} {name}: {e.reason}",
                details={"status": e.status, "kind": str(kind), "name": name},
            ) from e

    def _conflict(self, kind: ResourceKind, name: str) -> Callable[[], Exception]:
        return lambda: ResourceConflictError(
            f"{kind.kind} {name} was modified concurrently", details={"kind": str(kind), "name": name}
        )

    def get(self, kind: ResourceKind, name: str, namespace: Optional[str] = None) -> dict[str, Any]:
        resource = self._resource(kind)
        result = self._call(
            kind,
            name,
            namespace,
            lambda: resource.get(name=name, namespace=namespace, _request_timeout=self._request_timeout),
            self._conflict(kind, name),
        )
        return result.to_dict()

    def list_objects(
        self,
        kind: ResourceKind,
        selector: Optional[LabelSelector] = None,
        namespace: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        resource = self._resource(kind)
        kwargs: dict[str, Any] = {"namespace": namespace, "_request_timeout": self._request_timeout}
        if selector is not None:
            kwargs["label_selector"] = selector.to_string()
        result = self._call(kind, "", namespace, lambda: resource.get(**kwargs), self._conflict(kind, ""))
        return result.to_dict().get("items") or []

    def create(self, kind: ResourceKind, body: dict[str, Any], namespace: Optional[str] = None) -> dict[str, Any]:
        resource = self._resource(kind)
        name = body.get("metadata", {}).get("name", "")
        result = self._call(
            kind,
            name,
            namespace,
            lambda: resource.create(body=body, namespace=namespace, _request_timeout=self._request_timeout),
            lambda: ResourceAlreadyExistsError(kind.kind, name, namespace),
        )
        return result.to_dict()

    def update(self, kind: ResourceKind, body: dict[str, Any], namespace: Optional[str] = None) -> dict[str, Any]:
        resource = self._resource(kind)
        name = body.get("metadata", {}).get("name", "")
        result = self._call(
            kind,
            name,
            namespace,
            lambda: resource.replace(body=body, namespace=namespace, _request_timeout=self._request_timeout),
            self._conflict(kind, name),
        )
        return result.to_dict()

    def patch(
        self,
        kind: ResourceKind,
        name: str,
        patch: dict[str, Any],
        namespace: Optional[str] = None,
    ) -> dict[str, Any]:
        resource = self._resource(kind)
        result = self._call(
            kind,
            name,
            namespace,
            lambda: resource.patch(
                body=patch,
                name=name,
                namespace=namespace,
                content_type=MERGE_PATCH,
                _request_timeout=self._request_timeout,
            ),
            self._conflict(kind, name),
        )
        return result.to_dict()

    def delete(self, kind: ResourceKind, name: str, namespace: Optional[str] = None) -> None:
        resource = self._resource(kind)
        self._call(
            kind,
            name,
            namespace,
            lambda: resource.delete(name=name, namespace=namespace, _request_timeout=self._request_timeout),
            self._conflict(kind, name),
        )
