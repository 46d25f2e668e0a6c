"""Ports the broker core depends on."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ResourceKind:
    """An API version and kind pair identifying a resource type."""

    api_version: str
    kind: str

    def __str__(self) -> str:
        return f"{self.kind}.{self.api_version}"


@dataclass(frozen=True)
class LabelSelector:
    """Equality and set-based label requirements, ANDed together."""

    match_labels: dict[str, str] = field(default_factory=dict)
    match_in: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def label_in(cls, key: str, values: list[str]) -> "LabelSelector":
        return cls(match_in={key: tuple(values)})

    @classmethod
    def equals(cls, key: str, value: str) -> "LabelSelector":
        return cls(match_labels={key: value})

    def to_string(self) -> str:
        """Render the selector in the Kubernetes label selector syntax."""
        parts = [f"{key}={value}" for key, value in self.match_labels.items()]
        parts.extend(
            f"{key} in ({','.join(values)})" for key, values in self.match_in.items()
        )
        return ",".join(parts)

    def matches(self, labels: Optional[dict[str, str]]) -> bool:
        """Check whether a label set satisfies every requirement."""
        labels = labels or {}
        for key, value in self.match_labels.items():
            if labels.get(key) != value:
                return False
        for key, values in self.match_in.items():
            if key not in labels or labels[key] not in values:
                return False
        return True


class ResourceClientPort(ABC):
    """Generic access to the resource store of one cluster.

    Objects are plain dictionaries in the API server's JSON shape. Every
    method is bounded by the client's request timeout and never retries.

    Raises:
        ResourceNotFoundError: If the named object does not exist
        ResourceAlreadyExistsError: If ``create`` finds an existing object
        ResourceConflictError: If a write conflicts with the stored object
        InfrastructureError: For any other store failure
    """

    @abstractmethod
    def get(self, kind: ResourceKind, name: str, namespace: Optional[str] = None) -> dict[str, Any]:
        """Fetch a single object by name."""

    @abstractmethod
    def list_objects(
        self,
        kind: ResourceKind,
        selector: Optional[LabelSelector] = None,
        namespace: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """List objects, optionally filtered by a label selector."""

    @abstractmethod
    def create(self, kind: ResourceKind, body: dict[str, Any], namespace: Optional[str] = None) -> dict[str, Any]:
        """Create an object and return it as stored."""

    @abstractmethod
    def update(self, kind: ResourceKind, body: dict[str, Any], namespace: Optional[str] = None) -> dict[str, Any]:
        """Replace an existing object and return it as stored."""

    @abstractmethod
    def patch(
        self,
        kind: ResourceKind,
        name: str,
        patch: dict[str, Any],
        namespace: Optional[str] = None,
    ) -> dict[str, Any]:
        """Apply a JSON merge patch to an object."""

    @abstractmethod
    def delete(self, kind: ResourceKind, name: str, namespace: Optional[str] = None) -> None:
        """Delete an object by name."""
