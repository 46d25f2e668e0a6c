"""Broker catalog built from CompositeResourceDefinitions and Compositions."""

import json
from typing import Any, Optional

from crossplane_broker.application.control_plane import ControlPlane
from crossplane_broker.domain.exceptions import InfrastructureError
from crossplane_broker.domain.labels import (
    BINDABLE_LABEL,
    DESCRIPTION_ANNOTATION,
    METADATA_ANNOTATION,
    SERVICE_ID_LABEL,
    SERVICE_NAME_LABEL,
)
from crossplane_broker.domain.models import ServiceDefinition, ServicePlan
from crossplane_broker.infrastructure.logging import get_logger

logger = get_logger(__name__)

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


def parse_bindable(labels: dict[str, str]) -> bool:
    """
    Read the bindable label. Absent means bindable.

    An unparsable value is logged and treated as not bindable.
    """
    value = labels.get(BINDABLE_LABEL)
    if value is None:
        return True
    if value in _TRUE_VALUES:
        return True
    if value not in _FALSE_VALUES:
        logger.error("parse-bindable", value=value)
    return False


def parse_metadata(annotations: dict[str, str], display_name: str) -> dict[str, Any]:
    """Read the JSON metadata annotation, falling back to a display name only."""
    raw: Optional[str] = annotations.get(METADATA_ANNOTATION)
    try:
        metadata = json.loads(raw) if raw is not None else None
    except json.JSONDecodeError as e:
        logger.error("parse-metadata", error=str(e))
        metadata = None
    if not isinstance(metadata, dict):
        return {"displayName": display_name}
    return metadata


class PlanCatalog:
    """Lists the services and plans this broker offers."""

    def __init__(self, control_plane: ControlPlane) -> None:
        self._control_plane = control_plane

    def services(self) -> list[ServiceDefinition]:
        """
        Build the catalog.

        Returns:
            One service definition per CompositeResourceDefinition of the configured services

        Raises:
            InfrastructureError: If a definition lacks its service ID or name label
        """
        services = []
        for xrd in self._control_plane.list_service_definitions():
            metadata = xrd.get("metadata") or {}
            labels = metadata.get("labels") or {}
            annotations = metadata.get("annotations") or {}
            xrd_name = metadata.get("name", "")

            service_id = labels.get(SERVICE_ID_LABEL)
            if service_id is None:
                raise InfrastructureError(f"Could not find service id of XRD {xrd_name}")
            service_name = labels.get(SERVICE_NAME_LABEL)
            if service_name is None:
                raise InfrastructureError(f"Could not find service name of XRD {xrd_name}")

            try:
                plans = self.plans_for_service(service_id)
            except InfrastructureError as e:
                logger.error("Could not get plans for service", service_id=service_id, error=str(e))
                plans = []

            bindable = parse_bindable(labels)
            services.append(
                ServiceDefinition(
                    id=service_id,
                    name=service_name,
                    description=annotations.get(DESCRIPTION_ANNOTATION, ""),
                    bindable=bindable,
                    instances_retrievable=True,
                    bindings_retrievable=bindable,
                    plan_updateable=True,
                    metadata=parse_metadata(annotations, service_name),
                    plans=plans,
                )
            )
        return services

    def plans_for_service(self, service_id: str) -> list[ServicePlan]:
        """List the catalog plans of one service, sorted by plan name."""
        return [
            ServicePlan(
                id=plan.id,
                name=plan.name,
                description=plan.annotations.get(DESCRIPTION_ANNOTATION, ""),
                free=False,
                bindable=parse_bindable(plan.labels),
                metadata=parse_metadata(plan.annotations, plan.name),
            )
            for plan in self._control_plane.list_plans([service_id])
        ]
