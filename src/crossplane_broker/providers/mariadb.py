"""Binder for the MariaDB Galera cluster service (mariadb-k8s)."""

from crossplane_broker.domain import kinds
from crossplane_broker.domain.exceptions import (
    BindingNotSupportedError,
    InstanceInUseError,
    OperationNotImplementedError,
)
from crossplane_broker.domain.models import Credentials, Endpoint
from crossplane_broker.infrastructure.logging import get_logger
from crossplane_broker.providers.base import ServiceBinder
from crossplane_broker.providers.credentials import SECRET_ENDPOINT_KEY

logger = get_logger(__name__)

NOT_BINDABLE_MESSAGE = (
    "Service MariaDB Galera Cluster is not bindable. "
    "You can create a bindable database on this cluster using "
    "cf create-service mariadb-k8s-database default my-mariadb-db -c '{{\"parent_reference\": \"{instance_id}\"}}'"
)


class MariadbServiceBinder(ServiceBinder):
    """A MariaDB cluster hosts database instances, it is never bound directly."""

    def finish_provision(self) -> None:
        """Write the proxy's load balancer address into the instance secret."""
        proxy = self.proxy_credentials()
        namespace = self.control_plane.namespace
        data = self.control_plane.get_secret(self.instance.name)
        if data.get(SECRET_ENDPOINT_KEY) != proxy.host:
            logger.info("update-secret", endpoint=proxy.host, namespace=namespace)
            self.control_plane.set_secret_values(self.instance.name, {SECRET_ENDPOINT_KEY: proxy.host})

    def bind(self, binding_id: str) -> Credentials:
        raise BindingNotSupportedError(NOT_BINDABLE_MESSAGE.format(instance_id=self.instance.name))

    def get_binding(self, binding_id: str) -> Credentials:
        raise OperationNotImplementedError()

    def unbind(self, binding_id: str) -> None:
        raise OperationNotImplementedError()

    def endpoints(self) -> list[Endpoint]:
        return []

    def deprovision(self) -> None:
        children = self.control_plane.list_child_instances(kinds.MARIADB_DATABASE_INSTANCE, self.instance.name)
        if children:
            names = [(child.get("metadata") or {}).get("name", "") for child in children]
            raise InstanceInUseError(self.instance.name, names)
        self.mark_namespace_deleted()
