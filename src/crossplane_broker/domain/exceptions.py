"""Domain exceptions for the service broker.

The hierarchy follows the broker's error taxonomy: not found, conflict,
permission denied, not implemented, not ready and internal failures. The
API boundary maps these onto protocol error envelopes in one place
(see ``application.errors.convert_error``).
"""

from typing import Any, Optional


class DomainException(Exception):
    """Base exception for all broker domain errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


class ConfigurationError(DomainException):
    """Raised when broker configuration is invalid."""


class InfrastructureError(DomainException):
    """Raised for unclassified failures of the resource store or a downstream cluster."""


# Not found


class NotFoundError(DomainException):
    """Base class for missing entities."""


class ResourceNotFoundError(NotFoundError):
    """Raised by resource clients when an object does not exist in the store."""

    def __init__(self, kind: str, name: str, namespace: Optional[str] = None) -> None:
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(
            f"{kind} {location} not found",
            details={"kind": kind, "name": name, "namespace": namespace},
        )
        self.kind = kind
        self.name = name
        self.namespace = namespace


class PlanNotFoundError(NotFoundError):
    """Raised when a plan (composition) does not exist."""

    def __init__(self, plan_id: str) -> None:
        super().__init__(f"plan {plan_id} not found", details={"plan_id": plan_id})
        self.plan_id = plan_id


class InstanceNotFoundError(NotFoundError):
    """Raised when an instance cannot be found under any configured plan."""

    def __init__(self, instance_id: str) -> None:
        super().__init__("instance not found", details={"instance_id": instance_id})
        self.instance_id = instance_id


class InstanceDoesNotExistError(NotFoundError):
    """Raised by operations where a missing instance means it is already gone."""

    def __init__(self, instance_id: str) -> None:
        super().__init__("instance does not exist", details={"instance_id": instance_id})
        self.instance_id = instance_id


class BindingNotFoundError(NotFoundError):
    """Raised when a binding (or its credential secret) cannot be found."""

    def __init__(self, binding_id: str) -> None:
        super().__init__("binding cannot be fetched", details={"binding_id": binding_id})
        self.binding_id = binding_id


class BindingDoesNotExistError(NotFoundError):
    """Raised on unbind when the binding resource is already gone."""

    def __init__(self, binding_id: str) -> None:
        super().__init__("binding does not exist", details={"binding_id": binding_id})
        self.binding_id = binding_id


# Conflict


class ConflictError(DomainException):
    """Base class for state conflicts."""


class ResourceAlreadyExistsError(ConflictError):
    """Raised by resource clients when creating an object that already exists."""

    def __init__(self, kind: str, name: str, namespace: Optional[str] = None) -> None:
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(
            f"{kind} {location} already exists",
            details={"kind": kind, "name": name, "namespace": namespace},
        )
        self.kind = kind
        self.name = name
        self.namespace = namespace


class ResourceConflictError(ConflictError):
    """Raised by resource clients when a write conflicts with the stored object."""


class InstanceAlreadyExistsError(ConflictError):
    """Raised when provisioning an instance ID that exists with different attributes."""

    def __init__(self, instance_id: str) -> None:
        super().__init__(
            "instance with this ID already exists with different attributes",
            details={"instance_id": instance_id},
        )
        self.instance_id = instance_id


class ConcurrentInstanceAccessError(ConflictError):
    """Raised when an operation requires a ready instance but it is still reconciling."""

    def __init__(self, instance_id: str) -> None:
        super().__init__(
            "instance is being updated and cannot be retrieved",
            details={"instance_id": instance_id},
        )
        self.instance_id = instance_id


class InstanceInUseError(ConflictError):
    """Raised when deprovisioning a parent instance that still has children."""

    def __init__(self, instance_id: str, children: list[str]) -> None:
        names = ", ".join(children)
        super().__init__(
            f'instance is still in use by "{names}"',
            details={"instance_id": instance_id, "children": list(children)},
        )
        self.instance_id = instance_id
        self.children = list(children)


class AsyncRequiredError(DomainException):
    """Raised when the caller does not accept asynchronous provisioning."""

    def __init__(self) -> None:
        super().__init__("This service plan requires client support for asynchronous service operations.")


# Permission denied


class UpdateNotPermittedError(DomainException):
    """Base class for rejected instance updates."""


class ServiceUpdateNotPermittedError(UpdateNotPermittedError):
    """Raised when an update would move an instance to another service."""

    def __init__(self) -> None:
        super().__init__("service update not permitted")


class ClusterChangeNotPermittedError(UpdateNotPermittedError):
    """Raised when an update would move an instance to another cluster or plan level."""

    def __init__(self) -> None:
        super().__init__("cluster change not permitted")


class SLAChangeNotPermittedError(UpdateNotPermittedError):
    """Raised when an update is not a standard/premium SLA swap."""

    def __init__(self) -> None:
        super().__init__("SLA change not permitted")


# Not implemented


class OperationNotImplementedError(DomainException):
    """Raised for operations a backend or the broker does not implement."""

    def __init__(self, message: str = "not implemented") -> None:
        super().__init__(message)


class BindingNotSupportedError(OperationNotImplementedError):
    """Raised when binding directly to an unbindable root instance."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class UnsupportedBackendError(DomainException):
    """Raised when an instance carries a service name no binder knows."""

    def __init__(self, service_name: Optional[str]) -> None:
        super().__init__(
            f"service binder {service_name!r} not implemented",
            details={"service_name": service_name},
        )
        self.service_name = service_name


# Not ready


class InstanceNotReadyError(DomainException):
    """Raised when credentials are requested before the workload is reachable."""

    def __init__(self, message: str = "instance not ready") -> None:
        super().__init__(message)
