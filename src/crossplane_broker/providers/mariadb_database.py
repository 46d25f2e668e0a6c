"""Binder for databases hosted on a MariaDB cluster (mariadb-k8s-database)."""

from typing import Callable, Optional

from crossplane_broker.application.control_plane import ControlPlane
from crossplane_broker.domain.exceptions import (
    BindingNotFoundError,
    InfrastructureError,
    InstanceNotReadyError,
    ResourceNotFoundError,
)
from crossplane_broker.domain.models import Credentials, Endpoint, Instance, InstanceParameters
from crossplane_broker.infrastructure.downstream import DownstreamClientResolver
from crossplane_broker.providers.base import ServiceBinder
from crossplane_broker.providers.bindings import BindingManager
from crossplane_broker.providers.credentials import (
    SECRET_ENDPOINT_KEY,
    SECRET_PASSWORD_KEY,
    SECRET_PORT_KEY,
    parse_port,
)


def database_credentials(endpoint: Endpoint, username: str, password: str, database: str) -> Credentials:
    """Build the credentials handed to applications bound to a database."""
    uri = f"mysql://{username}:{password}@{endpoint.host}:{endpoint.port}/{database}?reconnect=true"
    return {
        "host": endpoint.host,
        "hostname": endpoint.host,
        "port": endpoint.port,
        "name": username,
        "database": database,
        "user": username,
        "password": password,
        "database_uri": uri,
        "uri": uri,
        "jdbcUrl": (
            f"jdbc:mysql://{endpoint.host}:{endpoint.port}/{database}"
            f"?user={username}&password={password}"
        ),
    }


def endpoint_from_secret(data: dict[str, str], secret_name: str) -> Endpoint:
    """Read host and port from a connection secret."""
    if SECRET_ENDPOINT_KEY not in data:
        raise BindingNotFoundError(secret_name)
    port = parse_port(data.get(SECRET_PORT_KEY))
    if port is None:
        raise InfrastructureError(f"secret {secret_name!r} has no port")
    return Endpoint(host=data[SECRET_ENDPOINT_KEY], port=port, protocol="tcp")


class MariadbDatabaseServiceBinder(ServiceBinder):
    """Each binding is a database user created on the parent cluster."""

    def __init__(
        self,
        instance: Instance,
        control_plane: ControlPlane,
        downstream: DownstreamClientResolver,
        bindings: BindingManager,
        clock: Optional[Callable] = None,
    ) -> None:
        super().__init__(instance, control_plane, downstream, clock)
        self.bindings = bindings

    @property
    def parent_reference(self) -> str:
        parent = InstanceParameters.model_validate(self.instance.parameters).parent_reference
        if not parent:
            raise InfrastructureError(
                "illegal instance: missing parent reference",
                details={"instance_id": self.instance.name},
            )
        return parent

    def finish_provision(self) -> None:
        pass

    def bind(self, binding_id: str) -> Credentials:
        parent = self.parent_reference
        password = self.bindings.create_binding(
            binding_id,
            self.instance.instance_id or self.instance.name,
            parent,
        )
        endpoint = self._parent_endpoint(parent)
        return database_credentials(endpoint, binding_id, password, self.instance.name)

    def binding_exists(self, binding_id: str) -> bool:
        return self.bindings.binding_exists(binding_id)

    def get_binding(self, binding_id: str) -> Credentials:
        try:
            data = self.control_plane.get_secret(binding_id)
        except ResourceNotFoundError as e:
            raise BindingNotFoundError(binding_id) from e
        endpoint = endpoint_from_secret(data, binding_id)
        return database_credentials(endpoint, binding_id, data.get(SECRET_PASSWORD_KEY, ""), self.instance.name)

    def unbind(self, binding_id: str) -> None:
        self.bindings.delete_binding(binding_id)

    def endpoints(self) -> list[Endpoint]:
        return [self._parent_endpoint(self.parent_reference)]

    def deprovision(self) -> None:
        pass

    def _parent_endpoint(self, parent: str) -> Endpoint:
        try:
            data = self.control_plane.get_secret(parent)
        except ResourceNotFoundError as e:
            raise InstanceNotReadyError() from e
        return endpoint_from_secret(data, parent)
