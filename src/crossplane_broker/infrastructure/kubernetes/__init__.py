from crossplane_broker.infrastructure.kubernetes.client_factory import (
    KubernetesClientFactory,
    load_control_plane_api_client,
)
from crossplane_broker.infrastructure.kubernetes.resource_client import KubernetesResourceClient

__all__ = ["KubernetesClientFactory", "KubernetesResourceClient", "load_control_plane_api_client"]
