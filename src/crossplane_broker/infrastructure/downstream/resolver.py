"""Resolution of clients for the clusters that run service workloads."""

from typing import Any, Callable, Optional

from crossplane_broker.domain import kinds
from crossplane_broker.domain.exceptions import InfrastructureError
from crossplane_broker.domain.kinds import ControlPlaneKinds
from crossplane_broker.domain.models import decode_secret_data
from crossplane_broker.domain.ports import ResourceClientPort
from crossplane_broker.infrastructure.downstream.cache import DownstreamClientCache
from crossplane_broker.infrastructure.logging import get_logger

DEFAULT_KUBECONFIG_KEY = "kubeconfig"

logger = get_logger(__name__)


def provider_config_name(release: dict[str, Any]) -> Optional[str]:
    """Return the provider config a helm Release is deployed with."""
    spec = release.get("spec") or {}
    ref = spec.get("providerConfigRef") or spec.get("providerConfigReference") or {}
    return ref.get("name")


class DownstreamClientResolver:
    """Maps helm Releases to clients for the cluster they are deployed to."""

    def __init__(
        self,
        control_plane: ResourceClientPort,
        client_factory: Callable[[str], ResourceClientPort],
        cache: DownstreamClientCache,
        control_plane_kinds: Optional[ControlPlaneKinds] = None,
        local_debug_client: Optional[ResourceClientPort] = None,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            control_plane: Client for the cluster holding provider configs and secrets
            client_factory: Builds a client from kubeconfig YAML
            cache: Cache shared by all requests of the process
            control_plane_kinds: API versions of the helm provider kinds
            local_debug_client: Development only. When set, every release resolves to this client
        """
        self._control_plane = control_plane
        self._client_factory = client_factory
        self._cache = cache
        self._kinds = control_plane_kinds or ControlPlaneKinds()
        self._local_debug_client = local_debug_client
        if local_debug_client is not None:
            logger.warning("Local debug mode enabled: downstream clusters resolve to the local cluster")

    def for_release(self, release: dict[str, Any]) -> ResourceClientPort:
        """
        Get a client for the cluster a release is deployed to.

        Args:
            release: helm Release object

        Returns:
            Resource client for the downstream cluster

        Raises:
            InfrastructureError: If the release has no provider config or its credentials are unusable
            ResourceNotFoundError: If the provider config or its secret does not exist
        """
        if self._local_debug_client is not None:
            return self._local_debug_client

        name = provider_config_name(release)
        if not name:
            release_name = (release.get("metadata") or {}).get("name")
            raise InfrastructureError(f"release {release_name!r} has no provider config reference")

        return self._cache.get_or_create(name, lambda: self._build_client(name))

    def _build_client(self, provider_config: str) -> ResourceClientPort:
        client = self._client_factory(self._read_kubeconfig(provider_config))
        logger.debug("Built downstream client for provider config %s", provider_config)
        return client

    def _read_kubeconfig(self, provider_config: str) -> str:
        config = self._control_plane.get(self._kinds.helm_provider_config, provider_config)
        credentials = (config.get("spec") or {}).get("credentials") or {}
        secret_ref = credentials.get("secretRef") or {}
        if not secret_ref.get("name"):
            raise InfrastructureError(f"provider config {provider_config!r} has no credentials secret")

        secret = self._control_plane.get(kinds.SECRET, secret_ref["name"], secret_ref.get("namespace"))
        data = decode_secret_data(secret)
        if data is None:
            raise InfrastructureError("nil secret data")

        key = secret_ref.get("key") or DEFAULT_KUBECONFIG_KEY
        if key not in data:
            raise InfrastructureError(f"credentials secret of {provider_config!r} has no key {key!r}")
        return data[key]
