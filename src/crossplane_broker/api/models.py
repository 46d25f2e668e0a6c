"""Request and response bodies of the Open Service Broker API."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from crossplane_broker.domain.models import Endpoint, ServiceDefinition


class BrokerRequestModel(BaseModel):
    """Base class for broker API request bodies. Unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")


class ProvisionRequest(BrokerRequestModel):
    service_id: str
    plan_id: str
    organization_guid: Optional[str] = None
    space_guid: Optional[str] = None
    context: Optional[dict[str, Any]] = None
    parameters: Optional[dict[str, Any]] = None


class UpdateRequest(BrokerRequestModel):
    service_id: str
    plan_id: Optional[str] = None
    context: Optional[dict[str, Any]] = None
    parameters: Optional[dict[str, Any]] = None
    previous_values: Optional[dict[str, Any]] = None


class BindRequest(BrokerRequestModel):
    service_id: str
    plan_id: str
    app_guid: Optional[str] = None
    bind_resource: Optional[dict[str, Any]] = None
    context: Optional[dict[str, Any]] = None
    parameters: Optional[dict[str, Any]] = None


class CatalogResponse(BaseModel):
    services: list[ServiceDefinition] = Field(default_factory=list)


class ProvisionResponse(BaseModel):
    dashboard_url: Optional[str] = None
    operation: Optional[str] = None


class BindingResponse(BaseModel):
    credentials: dict[str, Any] = Field(default_factory=dict)


class InstanceResponse(BaseModel):
    service_id: Optional[str] = None
    plan_id: Optional[str] = None
    parameters: dict[str, Any] = Field(default_factory=dict)


class LastOperationResponse(BaseModel):
    state: str
    description: Optional[str] = None


class EndpointResponse(BaseModel):
    """An endpoint as listed by the custom API. Ports are a string."""

    destination: str
    ports: str
    protocol: str

    @classmethod
    def from_endpoint(cls, endpoint: Endpoint) -> "EndpointResponse":
        return cls(destination=endpoint.host, ports=str(endpoint.port), protocol=endpoint.protocol)


class ErrorResponse(BaseModel):
    error: Optional[str] = None
    description: Optional[str] = None
