"""Custom endpoints outside the Open Service Broker API.

Only the endpoint listing is implemented. Usage, service definition
administration, backups, restores and API docs answer 501.
"""

from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from crossplane_broker.api.auth import verify_credentials
from crossplane_broker.api.dependencies import get_broker
from crossplane_broker.api.middleware import current_correlation_id
from crossplane_broker.api.models import EndpointResponse, ErrorResponse
from crossplane_broker.application.broker import LifecycleController
from crossplane_broker.application.errors import with_correlation_id
from crossplane_broker.domain.exceptions import DomainException, InstanceNotFoundError
from crossplane_broker.infrastructure.logging import get_logger

router = APIRouter(prefix="/custom", tags=["Custom"], dependencies=[Depends(verify_credentials)])

BROKER = Depends(get_broker)

NOT_IMPLEMENTED = ErrorResponse(error="API not implemented", description="API not implemented")

logger = get_logger(__name__)


def _not_implemented() -> JSONResponse:
    return JSONResponse(
        content=jsonable_encoder(NOT_IMPLEMENTED),
        status_code=status.HTTP_501_NOT_IMPLEMENTED,
    )


@router.get("/service_instances/{instance_id}/endpoint", summary="List Service Endpoints")
def endpoints(instance_id: str, broker: LifecycleController = BROKER) -> JSONResponse:
    try:
        result = broker.endpoints(instance_id)
    except InstanceNotFoundError:
        error = ErrorResponse(error="instance not found", description="instance not found")
        return JSONResponse(content=jsonable_encoder(error), status_code=status.HTTP_404_NOT_FOUND)
    except DomainException as e:
        logger.error("get-endpoints-failed", instance_id=instance_id, error=e.message)
        error = ErrorResponse(error=with_correlation_id(e.message, current_correlation_id()))
        return JSONResponse(
            content=jsonable_encoder(error, exclude_none=True),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    content = [EndpointResponse.from_endpoint(endpoint) for endpoint in result]
    return JSONResponse(content=jsonable_encoder(content))


@router.get("/service_instances/{instance_id}/usage", summary="Service Usage")
async def service_usage(instance_id: str) -> JSONResponse:
    return _not_implemented()


@router.post("/admin/service-definition", summary="Create or Update Service Definition")
async def create_update_service_definition() -> JSONResponse:
    return _not_implemented()


@router.delete("/admin/service-definition/{definition_id}", summary="Delete Service Definition")
async def delete_service_definition(definition_id: str) -> JSONResponse:
    return _not_implemented()


@router.post("/service_instances/{instance_id}/backups", summary="Create Backup")
async def create_backup(instance_id: str) -> JSONResponse:
    return _not_implemented()


@router.get("/service_instances/{instance_id}/backups", summary="List Backups")
async def list_backups(instance_id: str) -> JSONResponse:
    return _not_implemented()


@router.get("/service_instances/{instance_id}/backups/{backup_id}", summary="Get Backup")
async def get_backup(instance_id: str, backup_id: str) -> JSONResponse:
    return _not_implemented()


@router.delete("/service_instances/{instance_id}/backups/{backup_id}", summary="Delete Backup")
async def delete_backup(instance_id: str, backup_id: str) -> JSONResponse:
    return _not_implemented()


@router.post("/service_instances/{instance_id}/backups/{backup_id}/restores", summary="Restore Backup")
async def restore_backup(instance_id: str, backup_id: str) -> JSONResponse:
    return _not_implemented()


@router.get(
    "/service_instances/{instance_id}/backups/{backup_id}/restores/{restore_id}",
    summary="Restore Status",
)
async def restore_status(instance_id: str, backup_id: str, restore_id: str) -> JSONResponse:
    return _not_implemented()


@router.get("/service_instances/{instance_id}/api-docs", summary="API Docs")
async def api_docs(instance_id: str) -> JSONResponse:
    return _not_implemented()
