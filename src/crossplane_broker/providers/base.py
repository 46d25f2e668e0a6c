"""Base class and shared helpers of service binders."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional

from crossplane_broker.application.control_plane import ControlPlane
from crossplane_broker.domain import kinds
from crossplane_broker.domain.exceptions import InfrastructureError
from crossplane_broker.domain.labels import DELETED_LABEL, DELETION_TIMESTAMP_ANNOTATION
from crossplane_broker.domain.models import Credentials, Endpoint, Instance
from crossplane_broker.infrastructure.downstream import DownstreamClientResolver
from crossplane_broker.infrastructure.logging import get_logger
from crossplane_broker.providers.credentials import (
    HAPROXY_NAME,
    ProxyCredentialExtractor,
    ProxyCredentials,
)

RELEASE_KIND = "Release"
SECRET_KIND = "Secret"

logger = get_logger(__name__)


def rfc3339_micro(moment: datetime) -> str:
    """Format a time as RFC 3339 in UTC with microsecond precision."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class ServiceBinder(ABC):
    """
    Backend specific part of the instance and binding lifecycle.

    One binder is created per request for the instance it acts on.
    """

    def __init__(
        self,
        instance: Instance,
        control_plane: ControlPlane,
        downstream: DownstreamClientResolver,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize the binder.

        Args:
            instance: Instance this binder acts on
            control_plane: Access to plans, instances and secrets
            downstream: Resolver for clients of the clusters running the workload
            clock: Source of the current time, used for deletion timestamps
        """
        self.instance = instance
        self.control_plane = control_plane
        self.downstream = downstream
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @abstractmethod
    def finish_provision(self) -> None:
        """
        Run backend specific work once the instance is available.

        Must be safe to call repeatedly, it runs on every successful poll
        and before every bind.
        """

    @abstractmethod
    def bind(self, binding_id: str) -> Credentials:
        """
        Create a binding and return its credentials.

        Args:
            binding_id: Binding identifier chosen by the platform

        Returns:
            Credentials: Backend specific connection details

        Raises:
            BindingNotSupportedError: If the backend cannot be bound directly
            InstanceNotReadyError: If the backend is not reachable yet
        """

    def binding_exists(self, binding_id: str) -> bool:
        """Whether the backend already holds a binding with this ID. Stateless backends hold none."""
        return False

    @abstractmethod
    def get_binding(self, binding_id: str) -> Credentials:
        """Return the credentials of an existing binding without changing anything."""

    @abstractmethod
    def unbind(self, binding_id: str) -> None:
        """Remove a binding."""

    @abstractmethod
    def endpoints(self) -> list[Endpoint]:
        """Return the network endpoints of the instance."""

    @abstractmethod
    def deprovision(self) -> None:
        """
        Run backend specific checks and cleanup before the instance is deleted.

        Raises:
            InstanceInUseError: If dependent instances still exist
        """

    # Shared helpers

    def proxy_credentials(self) -> ProxyCredentials:
        """Read the address of the haproxy deployed for this instance."""
        release = self.control_plane.find_release(self.instance.refs_of_kind(RELEASE_KIND), HAPROXY_NAME)
        return ProxyCredentialExtractor(release, self.downstream).get_credentials()

    def mark_namespace_deleted(self) -> None:
        """
        Flag the instance's namespace in the downstream cluster for cleanup.

        The namespace is not deleted here. It gets the deleted label and a
        deletion timestamp annotation, and an external job removes it later.
        """
        instance_id = self.instance.name
        logger.debug("mark-namespace-deleted", instance_id=instance_id)

        releases = self.instance.refs_of_kind(RELEASE_KIND)
        if not releases:
            raise InfrastructureError(f"no releases found for instance {instance_id!r}")

        release = self.control_plane.get_release(releases[0].name)
        client = self.downstream.for_release(release)
        patch = {
            "metadata": {
                "labels": {DELETED_LABEL: "true"},
                "annotations": {DELETION_TIMESTAMP_ANNOTATION: rfc3339_micro(self._clock())},
            }
        }
        client.patch(kinds.NAMESPACE, instance_id, patch)

        logger.debug("success-marking-namespace-deleted", instance_id=instance_id)
