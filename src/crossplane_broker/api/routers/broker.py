"""Open Service Broker API v2 routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from crossplane_broker.api.auth import verify_credentials
from crossplane_broker.api.dependencies import get_broker, require_api_version
from crossplane_broker.api.errors import handle_broker_errors
from crossplane_broker.api.models import (
    BindingResponse,
    BindRequest,
    CatalogResponse,
    InstanceResponse,
    LastOperationResponse,
    ProvisionRequest,
    ProvisionResponse,
    UpdateRequest,
)
from crossplane_broker.application.broker import LifecycleController

router = APIRouter(
    prefix="/v2",
    tags=["Open Service Broker"],
    dependencies=[Depends(verify_credentials), Depends(require_api_version)],
)

# Module-level dependency variables to avoid B008 warnings
BROKER = Depends(get_broker)
ACCEPTS_INCOMPLETE = Query(False, description="Whether the platform supports asynchronous operations")
SERVICE_ID_QUERY = Query(None, description="Service ID of the instance")
PLAN_ID_QUERY = Query(None, description="Plan ID of the instance")
OPERATION_QUERY = Query(None, description="Operation data returned by the asynchronous call")


def _empty(status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(content={}, status_code=status_code)


@router.get("/catalog", summary="Get Catalog")
@handle_broker_errors("get-catalog")
def get_catalog(broker: LifecycleController = BROKER) -> JSONResponse:
    response = CatalogResponse(services=broker.services())
    return JSONResponse(content=jsonable_encoder(response))


@router.put("/service_instances/{instance_id}", summary="Provision Service Instance")
@handle_broker_errors("provision")
def provision(
    instance_id: str,
    body: ProvisionRequest,
    accepts_incomplete: bool = ACCEPTS_INCOMPLETE,
    broker: LifecycleController = BROKER,
) -> JSONResponse:
    result = broker.provision(
        instance_id,
        body.plan_id,
        body.parameters,
        accepts_incomplete,
        service_id=body.service_id,
    )
    if result.already_exists:
        return _empty(status.HTTP_200_OK)
    return JSONResponse(
        content=jsonable_encoder(ProvisionResponse(operation=result.operation), exclude_none=True),
        status_code=status.HTTP_202_ACCEPTED,
    )


@router.get("/service_instances/{instance_id}", summary="Fetch Service Instance")
@handle_broker_errors("get-instance")
def get_instance(instance_id: str, broker: LifecycleController = BROKER) -> JSONResponse:
    details = broker.get_instance(instance_id)
    response = InstanceResponse(
        service_id=details.service_id,
        plan_id=details.plan_id,
        parameters=details.parameters,
    )
    return JSONResponse(content=jsonable_encoder(response))


@router.patch("/service_instances/{instance_id}", summary="Update Service Instance")
@handle_broker_errors("update")
def update(
    instance_id: str,
    body: UpdateRequest,
    accepts_incomplete: bool = ACCEPTS_INCOMPLETE,
    broker: LifecycleController = BROKER,
) -> JSONResponse:
    broker.update(instance_id, body.service_id, body.plan_id)
    return _empty()


@router.delete("/service_instances/{instance_id}", summary="Deprovision Service Instance")
@handle_broker_errors("deprovision")
def deprovision(
    instance_id: str,
    service_id: Optional[str] = SERVICE_ID_QUERY,
    plan_id: Optional[str] = PLAN_ID_QUERY,
    accepts_incomplete: bool = ACCEPTS_INCOMPLETE,
    broker: LifecycleController = BROKER,
) -> JSONResponse:
    broker.deprovision(instance_id, plan_id or "", accepts_incomplete, service_id=service_id)
    return _empty()


@router.get("/service_instances/{instance_id}/last_operation", summary="Poll Service Instance")
@handle_broker_errors("last-operation")
def last_operation(
    instance_id: str,
    service_id: Optional[str] = SERVICE_ID_QUERY,
    plan_id: Optional[str] = PLAN_ID_QUERY,
    operation: Optional[str] = OPERATION_QUERY,
    broker: LifecycleController = BROKER,
) -> JSONResponse:
    result = broker.last_operation(instance_id, plan_id=plan_id, service_id=service_id, operation=operation)
    response = LastOperationResponse(state=result.state.value, description=result.description)
    return JSONResponse(content=jsonable_encoder(response, exclude_none=True))


@router.put(
    "/service_instances/{instance_id}/service_bindings/{binding_id}",
    summary="Create Service Binding",
)
@handle_broker_errors("bind")
def bind(
    instance_id: str,
    binding_id: str,
    body: BindRequest,
    accepts_incomplete: bool = ACCEPTS_INCOMPLETE,
    broker: LifecycleController = BROKER,
) -> JSONResponse:
    result = broker.bind(instance_id, binding_id, body.plan_id, service_id=body.service_id)
    return JSONResponse(
        content=jsonable_encoder(BindingResponse(credentials=result.credentials)),
        status_code=status.HTTP_200_OK if result.already_exists else status.HTTP_201_CREATED,
    )


@router.get(
    "/service_instances/{instance_id}/service_bindings/{binding_id}",
    summary="Fetch Service Binding",
)
@handle_broker_errors("get-binding")
def get_binding(instance_id: str, binding_id: str, broker: LifecycleController = BROKER) -> JSONResponse:
    credentials = broker.get_binding(instance_id, binding_id)
    return JSONResponse(content=jsonable_encoder(BindingResponse(credentials=credentials)))


@router.delete(
    "/service_instances/{instance_id}/service_bindings/{binding_id}",
    summary="Delete Service Binding",
)
@handle_broker_errors("unbind")
def unbind(
    instance_id: str,
    binding_id: str,
    service_id: Optional[str] = SERVICE_ID_QUERY,
    plan_id: Optional[str] = PLAN_ID_QUERY,
    accepts_incomplete: bool = ACCEPTS_INCOMPLETE,
    broker: LifecycleController = BROKER,
) -> JSONResponse:
    broker.unbind(instance_id, binding_id, plan_id or "", service_id=service_id)
    return _empty()


@router.get(
    "/service_instances/{instance_id}/service_bindings/{binding_id}/last_operation",
    summary="Poll Service Binding",
)
@handle_broker_errors("last-binding-operation")
def last_binding_operation(
    instance_id: str,
    binding_id: str,
    service_id: Optional[str] = SERVICE_ID_QUERY,
    plan_id: Optional[str] = PLAN_ID_QUERY,
    operation: Optional[str] = OPERATION_QUERY,
    broker: LifecycleController = BROKER,
) -> JSONResponse:
    result = broker.last_binding_operation(
        instance_id, binding_id, plan_id=plan_id, service_id=service_id, operation=operation
    )
    return JSONResponse(content=jsonable_encoder(LastOperationResponse(state=result.state.value)))
