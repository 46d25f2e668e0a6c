"""Shared fixtures: an in-memory resource store and builders for control plane objects."""

import copy
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from crossplane_broker.application.broker import LifecycleController
from crossplane_broker.application.catalog import PlanCatalog
from crossplane_broker.application.control_plane import ControlPlane
from crossplane_broker.domain import kinds
from crossplane_broker.domain.exceptions import ResourceAlreadyExistsError, ResourceNotFoundError
from crossplane_broker.domain.kinds import ControlPlaneKinds
from crossplane_broker.domain.labels import (
    BINDABLE_LABEL,
    CLUSTER_LABEL,
    DESCRIPTION_ANNOTATION,
    METADATA_ANNOTATION,
    PLAN_NAME_LABEL,
    SERVICE_ID_LABEL,
    SERVICE_NAME_LABEL,
    SLA_LABEL,
)
from crossplane_broker.domain.models import encode_secret_data
from crossplane_broker.domain.ports import LabelSelector, ResourceClientPort, ResourceKind
from crossplane_broker.infrastructure.downstream import DownstreamClientCache, DownstreamClientResolver
from crossplane_broker.providers import ServiceBinderFactory
from crossplane_broker.providers.bindings import BindingManager

NAMESPACE = "spks-crossplane"
CONTROL_PLANE_KINDS = ControlPlaneKinds()

REDIS_SERVICE_ID = "redis-id"
MARIADB_SERVICE_ID = "mariadb-id"
MARIADB_DATABASE_SERVICE_ID = "mariadb-db-id"
SERVICE_IDS = [REDIS_SERVICE_ID, MARIADB_SERVICE_ID, MARIADB_DATABASE_SERVICE_ID]

REDIS_KIND = ResourceKind("syn.tools/v1alpha1", "CompositeRedisInstance")
MARIADB_KIND = ResourceKind("syn.tools/v1alpha1", "CompositeMariaDBInstance")

FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, 678901, tzinfo=timezone.utc)


def _merge_patch(target: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    for key, value in patch.items():
        if value is None:
            target.pop(key, None)
        elif isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge_patch(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


class FakeResourceClient(ResourceClientPort):
    """In-memory resource store with the error behavior of the API server."""

    def __init__(self) -> None:
        self.objects: dict[tuple[ResourceKind, Optional[str], str], dict[str, Any]] = {}
        self.calls: list[tuple[str, str, str]] = []

    def add(self, kind: ResourceKind, obj: dict[str, Any]) -> dict[str, Any]:
        metadata = obj.setdefault("metadata", {})
        self.objects[(kind, metadata.get("namespace"), metadata["name"])] = copy.deepcopy(obj)
        return obj

    def stored(self, kind: ResourceKind, name: str, namespace: Optional[str] = None) -> Optional[dict[str, Any]]:
        return self.objects.get((kind, namespace, name))

    def mutations(self) -> list[tuple[str, str, str]]:
        return [call for call in self.calls if call[0] != "get" and call[0] != "list"]

    def get(self, kind: ResourceKind, name: str, namespace: Optional[str] = None) -> dict[str, Any]:
        self.calls.append(("get", kind.kind, name))
        obj = self.objects.get((kind, namespace, name))
        if obj is None:
            raise ResourceNotFoundError(kind.kind, name, namespace)
        return copy.deepcopy(obj)

    def list_objects(
        self,
        kind: ResourceKind,
        selector: Optional[LabelSelector] = None,
        namespace: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        self.calls.append(("list", kind.kind, ""))
        return [
            copy.deepcopy(obj)
            for (obj_kind, obj_namespace, _), obj in self.objects.items()
            if obj_kind == kind
            and (namespace is None or obj_namespace == namespace)
            and (selector is None or selector.matches((obj.get("metadata") or {}).get("labels")))
        ]

    def create(self, kind: ResourceKind, body: dict[str, Any], namespace: Optional[str] = None) -> dict[str, Any]:
        name = body["metadata"]["name"]
        self.calls.append(("create", kind.kind, name))
        if (kind, namespace, name) in self.objects:
            raise ResourceAlreadyExistsError(kind.kind, name, namespace)
        obj = copy.deepcopy(body)
        if namespace is not None:
            obj["metadata"]["namespace"] = namespace
        self.objects[(kind, namespace, name)] = obj
        return copy.deepcopy(obj)

    def update(self, kind: ResourceKind, body: dict[str, Any], namespace: Optional[str] = None) -> dict[str, Any]:
        name = body["metadata"]["name"]
        self.calls.append(("update", kind.kind, name))
        if (kind, namespace, name) not in self.objects:
            raise ResourceNotFoundError(kind.kind, name, namespace)
        self.objects[(kind, namespace, name)] = copy.deepcopy(body)
        return copy.deepcopy(body)

    def patch(
        self,
        kind: ResourceKind,
        name: str,
        patch: dict[str, Any],
        namespace: Optional[str] = None,
    ) -> dict[str, Any]:
        self.calls.append(("patch", kind.kind, name))
        obj = self.objects.get((kind, namespace, name))
        if obj is None:
            raise ResourceNotFoundError(kind.kind, name, namespace)
        return copy.deepcopy(_merge_patch(obj, patch))

    def delete(self, kind: ResourceKind, name: str, namespace: Optional[str] = None) -> None:
        self.calls.append(("delete", kind.kind, name))
        if self.objects.pop((kind, namespace, name), None) is None:
            raise ResourceNotFoundError(kind.kind, name, namespace)


# Builders


def xrd(service_id: str, service_name: str, labels: Optional[dict[str, str]] = None, **annotations: str) -> dict[str, Any]:
    obj_labels = {SERVICE_ID_LABEL: service_id, SERVICE_NAME_LABEL: service_name}
    obj_labels.update(labels or {})
    return {
        "apiVersion": CONTROL_PLANE_KINDS.composite_resource_definition.api_version,
        "kind": "CompositeResourceDefinition",
        "metadata": {
            "name": f"{service_name}.syn.tools",
            "labels": obj_labels,
            "annotations": {
                DESCRIPTION_ANNOTATION: annotations.get("description", f"{service_name} service"),
                **({METADATA_ANNOTATION: annotations["metadata"]} if "metadata" in annotations else {}),
            },
        },
    }


def composition(
    plan_id: str,
    service_id: str,
    service_name: str,
    plan_name: str,
    composite_kind: ResourceKind,
    cluster: str = "c1",
    sla: str = "standard",
    bindable: Optional[str] = None,
) -> dict[str, Any]:
    labels = {
        SERVICE_ID_LABEL: service_id,
        SERVICE_NAME_LABEL: service_name,
        PLAN_NAME_LABEL: plan_name,
        CLUSTER_LABEL: cluster,
        SLA_LABEL: sla,
    }
    if bindable is not None:
        labels[BINDABLE_LABEL] = bindable
    return {
        "apiVersion": CONTROL_PLANE_KINDS.composition.api_version,
        "kind": "Composition",
        "metadata": {
            "name": plan_id,
            "labels": labels,
            "annotations": {DESCRIPTION_ANNOTATION: f"{plan_name} plan"},
        },
        "spec": {
            "compositeTypeRef": {"apiVersion": composite_kind.api_version, "kind": composite_kind.kind},
        },
    }


def secret(name: str, data: Optional[dict[str, str]], namespace: str = NAMESPACE) -> dict[str, Any]:
    obj: dict[str, Any] = {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": name, "namespace": namespace},
    }
    if data is not None:
        obj["data"] = encode_secret_data(data)
    return obj


def release(name: str, chart: str, namespace: str, provider_config: str = "cluster-1") -> dict[str, Any]:
    return {
        "apiVersion": CONTROL_PLANE_KINDS.helm_release.api_version,
        "kind": "Release",
        "metadata": {"name": name},
        "spec": {
            "forProvider": {"chart": {"name": chart}, "namespace": namespace},
            "providerConfigRef": {"name": provider_config},
        },
    }


def proxy_service(
    namespace: str,
    ports: dict[str, int],
    ingress: Optional[list[dict[str, str]]] = None,
) -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": "haproxy", "namespace": namespace},
        "spec": {"ports": [{"name": name, "port": port} for name, port in ports.items()]},
        "status": {"loadBalancer": {"ingress": ingress if ingress is not None else [{"ip": "10.0.0.1"}]}},
    }


def ready_condition(reason: str = "Available") -> dict[str, str]:
    return {"type": "Ready", "status": "True" if reason == "Available" else "False", "reason": reason}


def seed_catalog(client: FakeResourceClient) -> None:
    """Store the services and plans used across the tests."""
    client.add(CONTROL_PLANE_KINDS.composite_resource_definition, xrd(REDIS_SERVICE_ID, "redis-k8s"))
    client.add(
        CONTROL_PLANE_KINDS.composite_resource_definition,
        xrd(MARIADB_SERVICE_ID, "mariadb-k8s", metadata='{"displayName": "MariaDB Galera Cluster"}'),
    )
    client.add(
        CONTROL_PLANE_KINDS.composite_resource_definition,
        xrd(MARIADB_DATABASE_SERVICE_ID, "mariadb-k8s-database"),
    )

    compositions = [
        composition("redis-standard", REDIS_SERVICE_ID, "redis-k8s", "redis-standard", REDIS_KIND),
        composition("redis-premium", REDIS_SERVICE_ID, "redis-k8s", "redis-premium", REDIS_KIND, sla="premium"),
        composition("large-standard", REDIS_SERVICE_ID, "redis-k8s", "large-standard", REDIS_KIND),
        composition(
            "redis-standard-c2", REDIS_SERVICE_ID, "redis-k8s", "redis-standard-c2", REDIS_KIND, cluster="c2"
        ),
        composition("mariadb-standard", MARIADB_SERVICE_ID, "mariadb-k8s", "mariadb-standard", MARIADB_KIND),
        composition(
            "mariadb-db-default",
            MARIADB_DATABASE_SERVICE_ID,
            "mariadb-k8s-database",
            "default",
            kinds.MARIADB_DATABASE_INSTANCE,
        ),
    ]
    for obj in compositions:
        client.add(CONTROL_PLANE_KINDS.composition, obj)


class Workloads:
    """Places the objects a reconciled instance points at into the stores."""

    def __init__(self, control: FakeResourceClient, downstream: FakeResourceClient) -> None:
        self.control = control
        self.downstream = downstream

    def make_ready(
        self,
        kind: ResourceKind,
        instance_id: str,
        reason: str = "Available",
        refs: Optional[list[dict[str, Any]]] = None,
    ) -> dict[str, Any]:
        obj = self.control.objects[(kind, None, instance_id)]
        obj.setdefault("status", {})["conditions"] = [ready_condition(reason)]
        if refs is not None:
            obj.setdefault("spec", {})["resourceRefs"] = refs
        return copy.deepcopy(obj)

    def add_proxy(self, instance_id: str, ports: dict[str, int], host: str = "10.0.0.1") -> list[dict[str, Any]]:
        """Add a haproxy release, its namespace and load balancer. Returns the release reference."""
        namespace = f"sv-{instance_id}"
        self.control.add(
            CONTROL_PLANE_KINDS.helm_release, release(f"{instance_id}-haproxy", "haproxy", namespace)
        )
        self.downstream.add(kinds.NAMESPACE, {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": instance_id}})
        self.downstream.add(kinds.SERVICE, proxy_service(namespace, ports, [{"ip": host}]))
        return [
            {
                "apiVersion": CONTROL_PLANE_KINDS.helm_release.api_version,
                "kind": "Release",
                "name": f"{instance_id}-haproxy",
            }
        ]

    def ready_redis(self, instance_id: str, password: str = "redis-pass") -> dict[str, Any]:
        refs = self.add_proxy(instance_id, {"redis": 6379, "sentinel": 26379})
        self.control.add(kinds.SECRET, secret(f"{instance_id}-redis", {"password": password}))
        refs.append({"apiVersion": "v1", "kind": "Secret", "name": f"{instance_id}-redis", "namespace": NAMESPACE})
        return self.make_ready(REDIS_KIND, instance_id, refs=refs)

    def ready_mariadb(self, instance_id: str, host: str = "10.0.0.5") -> dict[str, Any]:
        refs = self.add_proxy(instance_id, {"mariadb": 3306}, host=host)
        self.control.add(kinds.SECRET, secret(instance_id, {"endpoint": "", "port": "3306"}))
        return self.make_ready(MARIADB_KIND, instance_id, refs=refs)


@pytest.fixture
def fake_client() -> FakeResourceClient:
    client = FakeResourceClient()
    seed_catalog(client)
    return client


@pytest.fixture
def downstream_client() -> FakeResourceClient:
    return FakeResourceClient()


@pytest.fixture
def workloads(fake_client: FakeResourceClient, downstream_client: FakeResourceClient) -> Workloads:
    return Workloads(fake_client, downstream_client)


@pytest.fixture
def control_plane(fake_client: FakeResourceClient) -> ControlPlane:
    return ControlPlane(fake_client, SERVICE_IDS, NAMESPACE)


@pytest.fixture
def downstream(fake_client: FakeResourceClient, downstream_client: FakeResourceClient) -> DownstreamClientResolver:
    def no_kubeconfig(kubeconfig: str) -> ResourceClientPort:
        raise AssertionError("downstream clients resolve to the local debug client in tests")

    return DownstreamClientResolver(
        fake_client,
        no_kubeconfig,
        DownstreamClientCache(),
        local_debug_client=downstream_client,
    )


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def bindings(control_plane: ControlPlane, sleeps: list[float]) -> BindingManager:
    return BindingManager(control_plane, deletion_delay=5.0, sleep=sleeps.append)


@pytest.fixture
def binders(
    control_plane: ControlPlane,
    downstream: DownstreamClientResolver,
    bindings: BindingManager,
) -> ServiceBinderFactory:
    return ServiceBinderFactory(control_plane, downstream, bindings, clock=lambda: FIXED_NOW)


@pytest.fixture
def broker(control_plane: ControlPlane, binders: ServiceBinderFactory) -> LifecycleController:
    return LifecycleController(control_plane, PlanCatalog(control_plane), binders)
