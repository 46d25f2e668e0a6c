"""Broker configuration schema."""

import re
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, field_validator

from crossplane_broker.domain.kinds import ControlPlaneKinds
from crossplane_broker.domain.ports import ResourceKind

_DURATION_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h)?$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}


def parse_duration(value: Any) -> Any:
    """Parse seconds or a duration such as "500ms", "5s", "10m", "1h" into seconds."""
    if isinstance(value, (int, float)) or value is None:
        return value
    match = _DURATION_PATTERN.match(str(value).strip())
    if not match:
        raise ValueError(f"invalid duration: {value!r}")
    return float(match.group(1)) * _DURATION_UNITS[match.group(2)]


class BrokerConfig(BaseModel):
    """Broker configuration, read from OSB_ prefixed environment variables or a settings file."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    service_ids: list[str] = Field(description="IDs of the services offered by this broker")
    username: str = Field(min_length=1, description="Basic auth user of the platform")
    password: SecretStr = Field(description="Basic auth password of the platform")

    listen_addr: str = Field(
        default=":8080",
        validation_alias=AliasChoices("listen_addr", "http_listen_addr"),
        description="host:port to listen on, an empty host listens on all interfaces",
    )
    max_header_bytes: int = Field(
        default=1 << 20,
        gt=0,
        validation_alias=AliasChoices("max_header_bytes", "http_max_header_bytes"),
    )

    namespace: str = Field(default="spks-crossplane", description="Namespace of instance and binding secrets")
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    kubeconfig: Optional[str] = Field(default=None, description="Kubeconfig of the control plane, in-cluster if unset")
    kube_request_timeout: float = Field(default=30.0, gt=0)
    binding_secret_deletion_delay: float = Field(default=5.0, ge=0)
    downstream_cache_ttl: float = Field(default=3600.0, gt=0)
    local_debug_downstream: bool = Field(
        default=False,
        description="Development only: use the control plane cluster in place of every downstream cluster",
    )

    crossplane_api_version: str = "apiextensions.crossplane.io/v1"
    helm_api_version: str = "helm.crossplane.io/v1beta1"

    @field_validator("service_ids", mode="before")
    @classmethod
    def split_service_ids(cls, v: Any) -> Any:
        """Accept a comma separated string."""
        if isinstance(v, (int, float)):
            v = str(v)
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, (list, tuple)):
            ids = [str(item).strip() for item in v]
            if not ids or any(not item for item in ids):
                raise ValueError("service_ids must be a non-empty list without empty entries")
            return ids
        return v

    @field_validator("username", "password", mode="before")
    @classmethod
    def stringify_credentials(cls, v: Any) -> Any:
        """Environment values such as 1234 arrive as numbers."""
        return str(v) if isinstance(v, (int, float)) else v

    @field_validator(
        "kube_request_timeout", "binding_secret_deletion_delay", "downstream_cache_ttl", mode="before"
    )
    @classmethod
    def parse_durations(cls, v: Any) -> Any:
        return parse_duration(v)

    @field_validator("listen_addr")
    @classmethod
    def validate_listen_addr(cls, v: str) -> str:
        host, sep, port = v.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"listen_addr must be host:port, got {v!r}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"invalid log level: {v!r}")
        return level

    @property
    def host(self) -> str:
        return self.listen_addr.rpartition(":")[0] or "0.0.0.0"  # nosec B104

    @property
    def port(self) -> int:
        return int(self.listen_addr.rpartition(":")[2])

    @property
    def control_plane_kinds(self) -> ControlPlaneKinds:
        return ControlPlaneKinds(
            composition=ResourceKind(self.crossplane_api_version, "Composition"),
            composite_resource_definition=ResourceKind(self.crossplane_api_version, "CompositeResourceDefinition"),
            helm_release=ResourceKind(self.helm_api_version, "Release"),
            helm_provider_config=ResourceKind(self.helm_api_version, "ProviderConfig"),
        )
