"""Credential extractors.

Each extractor reads the connection facts of a backend from one kind of
source: a secret in the control plane, or the load balancer of a proxy
service running in a downstream cluster.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from crossplane_broker.application.control_plane import ControlPlane
from crossplane_broker.domain import kinds
from crossplane_broker.domain.exceptions import InfrastructureError, InstanceNotReadyError
from crossplane_broker.infrastructure.downstream import DownstreamClientResolver

# Keys of connection secrets written by Crossplane
SECRET_ENDPOINT_KEY = "endpoint"
SECRET_PORT_KEY = "port"
SECRET_PASSWORD_KEY = "password"

HAPROXY_NAME = "haproxy"


@dataclass(frozen=True)
class SecretCredentials:
    """Connection facts read from a secret."""

    endpoint: Optional[str] = None
    port: Optional[int] = None
    password: Optional[str] = None


@dataclass(frozen=True)
class ProxyPort:
    name: str
    port: int


@dataclass(frozen=True)
class ProxyCredentials:
    """Load balancer address and named ports of a proxy service."""

    host: str
    ports: list[ProxyPort] = field(default_factory=list)

    def find_port(self, name: str) -> Optional[int]:
        """Return the port with the given name, or None."""
        for port in self.ports:
            if port.name == name:
                return port.port
        return None


class CredentialExtractor(ABC):
    """Retrieves connection credentials of a backend."""

    @abstractmethod
    def get_credentials(self) -> Any:
        """
        Read the credentials.

        Raises:
            InstanceNotReadyError: If the backend is not reachable yet
            InfrastructureError: If the source is missing or malformed
        """


def parse_port(value: Optional[str]) -> Optional[int]:
    """Parse a port stored as a string, None stays None."""
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise InfrastructureError(f"invalid port {value!r}") from e


class SecretCredentialExtractor(CredentialExtractor):
    """Reads endpoint, port and password from a secret in the control plane."""

    def __init__(self, control_plane: ControlPlane, secret_name: str, namespace: Optional[str] = None) -> None:
        self._control_plane = control_plane
        self._secret_name = secret_name
        self._namespace = namespace

    def get_credentials(self) -> SecretCredentials:
        data = self._control_plane.get_secret(self._secret_name, self._namespace)
        return SecretCredentials(
            endpoint=data.get(SECRET_ENDPOINT_KEY),
            port=parse_port(data.get(SECRET_PORT_KEY)),
            password=data.get(SECRET_PASSWORD_KEY),
        )


class ProxyCredentialExtractor(CredentialExtractor):
    """Reads the load balancer address of the proxy a helm release deploys."""

    def __init__(
        self,
        release: dict[str, Any],
        resolver: DownstreamClientResolver,
        service_name: str = HAPROXY_NAME,
    ) -> None:
        self._release = release
        self._resolver = resolver
        self._service_name = service_name

    def get_credentials(self) -> ProxyCredentials:
        client = self._resolver.for_release(self._release)
        namespace = ((self._release.get("spec") or {}).get("forProvider") or {}).get("namespace")
        service = client.get(kinds.SERVICE, self._service_name, namespace)

        ingress = ((service.get("status") or {}).get("loadBalancer") or {}).get("ingress") or []
        if not ingress:
            raise InstanceNotReadyError()
        host = ingress[0].get("ip") or ingress[0].get("hostname")
        if not host:
            raise InstanceNotReadyError()

        ports = [
            ProxyPort(name=port.get("name", ""), port=int(port["port"]))
            for port in (service.get("spec") or {}).get("ports") or []
        ]
        return ProxyCredentials(host=host, ports=ports)
