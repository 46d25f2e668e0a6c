"""Domain models for plans, service definitions, instances and credentials."""

import base64
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from crossplane_broker.domain.labels import (
    CLUSTER_LABEL,
    INSTANCE_ID_LABEL,
    INSTANCE_PARAMETERS_PATH,
    PARENT_ID_LABEL,
    PLAN_NAME_LABEL,
    SERVICE_ID_LABEL,
    SERVICE_NAME_LABEL,
    SLA_LABEL,
)
from crossplane_broker.domain.ports import ResourceKind

READY_CONDITION_TYPE = "Ready"


class ReadyReason(str, Enum):
    """Reasons reported by the orchestration layer on the Ready condition."""

    AVAILABLE = "Available"
    CREATING = "Creating"
    UNAVAILABLE = "Unavailable"
    DELETING = "Deleting"


class SLA(str, Enum):
    """Service level tiers a plan can carry."""

    STANDARD = "standard"
    PREMIUM = "premium"

    def swapped(self) -> "SLA":
        """Return the other tier."""
        return SLA.PREMIUM if self is SLA.STANDARD else SLA.STANDARD


class OperationState(str, Enum):
    """Broker-visible state of the last asynchronous operation."""

    IN_PROGRESS = "in progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Condition(BaseModel):
    """A status condition reported on a composite resource."""

    model_config = ConfigDict(frozen=True)

    type: str
    status: str = "Unknown"
    reason: str = ""
    message: Optional[str] = None


class ResourceReference(BaseModel):
    """A reference to an object composed for an instance."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_version: str = Field(default="", alias="apiVersion")
    kind: str
    name: str
    namespace: Optional[str] = None


class Endpoint(BaseModel):
    """Network reachability facts of a backend."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    protocol: str = "tcp"


def _labels(obj: dict[str, Any]) -> dict[str, str]:
    return dict((obj.get("metadata") or {}).get("labels") or {})


def _annotations(obj: dict[str, Any]) -> dict[str, str]:
    return dict((obj.get("metadata") or {}).get("annotations") or {})


def _name(obj: dict[str, Any]) -> str:
    return (obj.get("metadata") or {}).get("name", "")


def plan_level(plan_name: str) -> str:
    """Return the plan level, the part of a plan name before the first dash."""
    return plan_name.split("-", 1)[0]


class Plan(BaseModel):
    """A service plan, backed by a Composition template."""

    id: str
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    composite_api_version: str
    composite_kind: str

    @classmethod
    def from_resource(cls, obj: dict[str, Any]) -> "Plan":
        """Build a plan from a Composition object."""
        type_ref = (obj.get("spec") or {}).get("compositeTypeRef") or {}
        return cls(
            id=_name(obj),
            labels=_labels(obj),
            annotations=_annotations(obj),
            composite_api_version=type_ref.get("apiVersion", ""),
            composite_kind=type_ref.get("kind", ""),
        )

    @property
    def composite_kind_ref(self) -> ResourceKind:
        return ResourceKind(self.composite_api_version, self.composite_kind)

    @property
    def name(self) -> str:
        return self.labels.get(PLAN_NAME_LABEL, "")

    @property
    def service_id(self) -> Optional[str]:
        return self.labels.get(SERVICE_ID_LABEL)

    @property
    def service_name(self) -> Optional[str]:
        return self.labels.get(SERVICE_NAME_LABEL)

    @property
    def cluster(self) -> Optional[str]:
        return self.labels.get(CLUSTER_LABEL)

    @property
    def sla(self) -> Optional[str]:
        return self.labels.get(SLA_LABEL)

    @property
    def level(self) -> str:
        return plan_level(self.name)


class Instance(BaseModel):
    """A service instance, represented by a composite resource.

    ``raw`` keeps the object as read from the store so updates can write
    back every field this broker does not own.
    """

    name: str
    labels: dict[str, str] = Field(default_factory=dict)
    composition_ref: Optional[str] = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    ready: Optional[Condition] = None
    resource_refs: list[ResourceReference] = Field(default_factory=list)
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @classmethod
    def from_resource(cls, obj: dict[str, Any]) -> "Instance":
        """Build an instance from a composite resource object."""
        spec = obj.get("spec") or {}
        parameters: Any = obj
        for key in INSTANCE_PARAMETERS_PATH:
            parameters = (parameters or {}).get(key)
        conditions = (obj.get("status") or {}).get("conditions") or []
        ready = next(
            (Condition(**c) for c in conditions if c.get("type") == READY_CONDITION_TYPE), None
        )
        return cls(
            name=_name(obj),
            labels=_labels(obj),
            composition_ref=(spec.get("compositionRef") or {}).get("name"),
            parameters=parameters or {},
            ready=ready,
            resource_refs=[ResourceReference(**ref) for ref in spec.get("resourceRefs") or []],
            raw=obj,
        )

    @property
    def service_id(self) -> Optional[str]:
        return self.labels.get(SERVICE_ID_LABEL)

    @property
    def service_name(self) -> Optional[str]:
        return self.labels.get(SERVICE_NAME_LABEL)

    @property
    def plan_name(self) -> Optional[str]:
        return self.labels.get(PLAN_NAME_LABEL)

    @property
    def instance_id(self) -> Optional[str]:
        return self.labels.get(INSTANCE_ID_LABEL)

    @property
    def parent_id(self) -> Optional[str]:
        return self.labels.get(PARENT_ID_LABEL)

    @property
    def cluster(self) -> Optional[str]:
        return self.labels.get(CLUSTER_LABEL)

    @property
    def sla(self) -> Optional[str]:
        return self.labels.get(SLA_LABEL)

    @property
    def is_ready(self) -> bool:
        """True once the orchestration layer reports the instance as ready."""
        return self.ready is not None and self.ready.status == "True"

    @property
    def ready_reason(self) -> str:
        return self.ready.reason if self.ready else ""

    def refs_of_kind(self, kind: str) -> list[ResourceReference]:
        """Return the resource references of the given kind, in order."""
        return [ref for ref in self.resource_refs if ref.kind == kind]


class ServicePlan(BaseModel):
    """A plan as presented in the broker catalog."""

    id: str
    name: str
    description: str = ""
    free: bool = False
    bindable: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)


class ServiceDefinition(BaseModel):
    """A catalog entry, derived from a CompositeResourceDefinition."""

    id: str
    name: str
    description: str = ""
    bindable: bool = True
    instances_retrievable: bool = True
    bindings_retrievable: bool = True
    plan_updateable: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)
    plans: list[ServicePlan] = Field(default_factory=list)


Credentials = dict[str, Any]


class ProvisionResult(BaseModel):
    """Outcome of a provision call."""

    is_async: bool = False
    already_exists: bool = False
    operation: Optional[str] = None


class BindingResult(BaseModel):
    """Outcome of a bind call."""

    credentials: Credentials = Field(default_factory=dict)
    already_exists: bool = False


class InstanceDetails(BaseModel):
    """Read model returned for a fetched instance."""

    service_id: Optional[str] = None
    plan_id: Optional[str] = None
    parameters: dict[str, Any] = Field(default_factory=dict)


class LastOperation(BaseModel):
    """Read model returned when polling an instance."""

    state: OperationState
    description: str = ""


def decode_secret_data(secret: dict[str, Any]) -> Optional[dict[str, str]]:
    """Return the decoded ``data`` of a Secret object, or None if it has no data."""
    data = secret.get("data")
    if data is None:
        return None
    return {key: base64.b64decode(value).decode("utf-8") for key, value in data.items()}


def encode_secret_data(data: dict[str, str]) -> dict[str, str]:
    """Encode plain values for the ``data`` field of a Secret object."""
    return {key: base64.b64encode(value.encode("utf-8")).decode("ascii") for key, value in data.items()}


class InstanceParameters(BaseModel):
    """Provisioning parameters stored on an instance.

    Only ``parent_reference`` is interpreted by the broker. Every other key is
    passed through untouched to the composition.
    """

    model_config = ConfigDict(extra="allow")

    parent_reference: Optional[str] = None

    @field_validator("parent_reference", mode="before")
    @classmethod
    def ignore_non_string_reference(cls, v: Any) -> Optional[str]:
        """Treat a non-string parent reference as absent."""
        return v if isinstance(v, str) else None
