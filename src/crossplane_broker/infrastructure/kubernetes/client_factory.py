"""Construction of Kubernetes API clients."""

from typing import Any, Optional

import yaml
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.config.config_exception import ConfigException

from crossplane_broker.domain.exceptions import ConfigurationError, InfrastructureError
from crossplane_broker.domain.ports import ResourceClientPort
from crossplane_broker.infrastructure.kubernetes.resource_client import KubernetesResourceClient
from crossplane_broker.infrastructure.logging import get_logger

logger = get_logger(__name__)


def load_control_plane_api_client(kubeconfig: Optional[str] = None) -> k8s_client.ApiClient:
    """
    Load the API client for the control plane cluster.

    Uses the in-cluster service account when running as a pod and falls
    back to a kubeconfig file (``KUBECONFIG`` or ``~/.kube/config``).

    Args:
        kubeconfig: Explicit kubeconfig path, skips in-cluster detection

    Raises:
        ConfigurationError: If no usable cluster configuration is found
    """
    configuration = k8s_client.Configuration()
    try:
        if kubeconfig:
            k8s_config.load_kube_config(config_file=kubeconfig, client_configuration=configuration)
        else:
            try:
                k8s_config.load_incluster_config(client_configuration=configuration)
                logger.debug("Using in-cluster configuration")
            except ConfigException:
                k8s_config.load_kube_config(client_configuration=configuration)
                logger.debug("Using kubeconfig configuration")
    except (ConfigException, OSError) as e:
        raise ConfigurationError(f"unable to load Kubernetes configuration: {e}") from e
    return k8s_client.ApiClient(configuration)


class KubernetesClientFactory:
    """Builds resource clients for the control plane and downstream clusters."""

    def __init__(self, request_timeout: Optional[float] = 30.0, kubeconfig: Optional[str] = None) -> None:
        self._request_timeout = request_timeout
        self._kubeconfig = kubeconfig

    def control_plane(self) -> ResourceClientPort:
        """Client for the cluster the broker talks to directly."""
        return KubernetesResourceClient(load_control_plane_api_client(self._kubeconfig), self._request_timeout)

    def from_kubeconfig(self, kubeconfig: str) -> ResourceClientPort:
        """
        Client for a cluster described by a kubeconfig document.

        Args:
            kubeconfig: Kubeconfig YAML as stored in a provider-helm credential secret

        Raises:
            InfrastructureError: If the document is not a usable kubeconfig
        """
        try:
            config_dict: Any = yaml.safe_load(kubeconfig)
            if not isinstance(config_dict, dict):
                raise InfrastructureError("kubeconfig is not a mapping")
            api_client = k8s_config.new_client_from_config_dict(config_dict)
        except (yaml.YAMLError, ConfigException) as e:
            raise InfrastructureError(f"invalid downstream kubeconfig: {e}") from e
        return KubernetesResourceClient(api_client, self._request_timeout)
