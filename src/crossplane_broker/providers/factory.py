"""Selection of the service binder for an instance."""

from enum import Enum
from typing import Callable, Optional

from crossplane_broker.application.control_plane import ControlPlane
from crossplane_broker.domain.exceptions import UnsupportedBackendError
from crossplane_broker.domain.models import Instance
from crossplane_broker.infrastructure.downstream import DownstreamClientResolver
from crossplane_broker.providers.base import ServiceBinder
from crossplane_broker.providers.bindings import BindingManager
from crossplane_broker.providers.mariadb import MariadbServiceBinder
from crossplane_broker.providers.mariadb_database import MariadbDatabaseServiceBinder
from crossplane_broker.providers.redis import RedisServiceBinder


class BackendKind(str, Enum):
    """Backends with a binder, keyed by the service name label of an instance."""

    REDIS = "redis-k8s"
    MARIADB = "mariadb-k8s"
    MARIADB_DATABASE = "mariadb-k8s-database"

    @classmethod
    def of(cls, instance: Instance) -> "BackendKind":
        """
        Resolve the backend of an instance.

        Raises:
            UnsupportedBackendError: If the service name label is missing or unknown
        """
        try:
            return cls(instance.service_name)
        except ValueError:
            raise UnsupportedBackendError(instance.service_name) from None


class ServiceBinderFactory:
    """Creates the binder matching an instance's backend."""

    def __init__(
        self,
        control_plane: ControlPlane,
        downstream: DownstreamClientResolver,
        bindings: BindingManager,
        clock: Optional[Callable] = None,
    ) -> None:
        self._control_plane = control_plane
        self._downstream = downstream
        self._bindings = bindings
        self._clock = clock

    def create(self, instance: Instance) -> ServiceBinder:
        """
        Create the binder for an instance.

        Args:
            instance: Instance to act on

        Returns:
            ServiceBinder: Binder of the instance's backend

        Raises:
            UnsupportedBackendError: If no binder exists for the instance's service
        """
        kind = BackendKind.of(instance)
        if kind is BackendKind.REDIS:
            return RedisServiceBinder(instance, self._control_plane, self._downstream, self._clock)
        if kind is BackendKind.MARIADB:
            return MariadbServiceBinder(instance, self._control_plane, self._downstream, self._clock)
        return MariadbDatabaseServiceBinder(
            instance, self._control_plane, self._downstream, self._bindings, self._clock
        )
