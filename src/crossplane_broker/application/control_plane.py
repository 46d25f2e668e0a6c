"""Typed access to plans, instances, secrets and releases in the control plane."""

import copy
from typing import Any, Optional

from crossplane_broker.domain import kinds
from crossplane_broker.domain.exceptions import (
    ClusterChangeNotPermittedError,
    InfrastructureError,
    InstanceNotFoundError,
    PlanNotFoundError,
    ResourceNotFoundError,
    ServiceUpdateNotPermittedError,
    SLAChangeNotPermittedError,
)
from crossplane_broker.domain.kinds import ControlPlaneKinds
from crossplane_broker.domain.labels import (
    CLUSTER_LABEL,
    INSTANCE_ID_LABEL,
    PARENT_ID_LABEL,
    PLAN_LABELS_COPIED_TO_INSTANCE,
    PLAN_NAME_LABEL,
    SERVICE_ID_LABEL,
    SLA_LABEL,
)
from crossplane_broker.domain.models import (
    SLA,
    Instance,
    InstanceParameters,
    Plan,
    ResourceReference,
    decode_secret_data,
    encode_secret_data,
    plan_level,
)
from crossplane_broker.domain.ports import LabelSelector, ResourceClientPort, ResourceKind
from crossplane_broker.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ControlPlane:
    """Reads and writes the broker's state, which lives entirely in the control plane.

    Plans are Compositions and instances are composite resources. Lookups by
    instance name are scoped to the configured service IDs.
    """

    def __init__(
        self,
        client: ResourceClientPort,
        service_ids: list[str],
        namespace: str,
        control_plane_kinds: Optional[ControlPlaneKinds] = None,
    ) -> None:
        """
        Initialize the control plane facade.

        Args:
            client: Resource client for the control plane cluster
            service_ids: Service IDs this broker serves
            namespace: Namespace holding instance and binding secrets
            control_plane_kinds: API versions of Crossplane and provider-helm kinds
        """
        self.client = client
        self.service_ids = list(service_ids)
        self.namespace = namespace
        self.kinds = control_plane_kinds or ControlPlaneKinds()

    # Plans and services

    def get_plan(self, plan_id: str) -> Plan:
        """
        Get a plan by ID.

        Raises:
            PlanNotFoundError: If no Composition with that name exists
        """
        if not plan_id:
            raise PlanNotFoundError(plan_id)
        try:
            return Plan.from_resource(self.client.get(self.kinds.composition, plan_id))
        except ResourceNotFoundError as e:
            raise PlanNotFoundError(plan_id) from e

    def list_plans(self, service_ids: Optional[list[str]] = None) -> list[Plan]:
        """List the plans of the given services, sorted by plan name."""
        selector = LabelSelector.label_in(SERVICE_ID_LABEL, service_ids or self.service_ids)
        plans = [
            Plan.from_resource(obj)
            for obj in self.client.list_objects(self.kinds.composition, selector)
        ]
        return sorted(plans, key=lambda plan: plan.name)

    def list_service_definitions(self) -> list[dict[str, Any]]:
        """List the CompositeResourceDefinitions of the configured services."""
        selector = LabelSelector.label_in(SERVICE_ID_LABEL, self.service_ids)
        return self.client.list_objects(self.kinds.composite_resource_definition, selector)

    # Instances

    def create_instance(self, instance_id: str, parameters: Optional[dict[str, Any]], plan: Plan) -> None:
        """
        Create the composite resource of a new instance.

        Labels identifying service, plan, cluster and SLA are copied from the
        plan. A ``parent_reference`` parameter is also recorded as a label so
        children can be found by their parent.

        Raises:
            ResourceAlreadyExistsError: If a composite with that name exists
        """
        labels = {INSTANCE_ID_LABEL: instance_id}
        for label in PLAN_LABELS_COPIED_TO_INSTANCE:
            if label in plan.labels:
                labels[label] = plan.labels[label]

        parameters = parameters or {}
        parent_reference = InstanceParameters.model_validate(parameters).parent_reference
        if parent_reference is not None:
            labels[PARENT_ID_LABEL] = parent_reference

        body = {
            "apiVersion": plan.composite_api_version,
            "kind": plan.composite_kind,
            "metadata": {"name": instance_id, "labels": labels},
            "spec": {
                "compositionRef": {"name": plan.id},
                "parameters": parameters,
            },
        }
        logger.debug("create-instance", instance_id=instance_id, plan_id=plan.id, labels=labels)
        self.client.create(plan.composite_kind_ref, body)

    def delete_instance(self, name: str, plan: Plan) -> None:
        self.client.delete(plan.composite_kind_ref, name)

    def get_instance_with_plan(self, instance_id: str, plan: Plan) -> Instance:
        """
        Get an instance created from the given plan.

        Raises:
            InstanceNotFoundError: If the composite is missing or belongs to another plan
        """
        try:
            obj = self.client.get(plan.composite_kind_ref, instance_id)
        except ResourceNotFoundError as e:
            raise InstanceNotFoundError(instance_id) from e

        instance = Instance.from_resource(obj)
        if instance.plan_name != plan.name:
            logger.debug(
                "instance-not-found-labels-dont-match",
                instance_id=instance_id,
                plan_labels=plan.labels,
            )
            raise InstanceNotFoundError(instance_id)
        return instance

    def instance_exists(self, instance_id: str, plan: Plan) -> Optional[Instance]:
        """Return the instance if it exists for the given plan, None otherwise."""
        try:
            return self.get_instance_with_plan(instance_id, plan)
        except InstanceNotFoundError:
            return None

    def get_instance(self, instance_id: str) -> Instance:
        """
        Get an instance by scanning every plan of the configured services.

        The first plan the instance matches wins. Prefer
        ``get_instance_with_plan`` when the plan is known.

        Raises:
            InstanceNotFoundError: If no plan has an instance with that ID
        """
        for plan in self.list_plans():
            try:
                return self.get_instance_with_plan(instance_id, plan)
            except InstanceNotFoundError:
                continue
        raise InstanceNotFoundError(instance_id)

    def list_child_instances(self, kind: ResourceKind, parent_id: str) -> list[dict[str, Any]]:
        """List composites of ``kind`` whose parent label points at ``parent_id``."""
        return self.client.list_objects(kind, LabelSelector.equals(PARENT_ID_LABEL, parent_id))

    def update_instance_sla(self, instance_id: str, service_id: Optional[str], plan_id: Optional[str]) -> None:
        """
        Move an instance to the plan of the other SLA tier.

        The target plan must belong to the same service, the same cluster and
        the same plan level as the current one. Only a standard/premium swap
        is permitted.

        Args:
            instance_id: Instance to update
            service_id: Service ID sent by the platform
            plan_id: Target plan ID

        Raises:
            InstanceNotFoundError: If the instance does not exist
            PlanNotFoundError: If the target plan does not exist
            ServiceUpdateNotPermittedError: If the service would change
            ClusterChangeNotPermittedError: If cluster or plan level would change
            SLAChangeNotPermittedError: If the SLA delta is not a tier swap
        """
        instance = self.get_instance(instance_id)
        if not plan_id:
            raise SLAChangeNotPermittedError()
        target = self.get_plan(plan_id)

        if (service_id and service_id != instance.service_id) or target.service_id != instance.service_id:
            raise ServiceUpdateNotPermittedError()

        current_sla = instance.sla
        if current_sla is None and instance.composition_ref:
            current_sla = self.get_plan(instance.composition_ref).sla

        if target.cluster != instance.cluster or target.level != plan_level(instance.plan_name or ""):
            raise ClusterChangeNotPermittedError()

        try:
            permitted = SLA(target.sla) is SLA(current_sla).swapped()
        except ValueError:
            permitted = False
        if not permitted:
            raise SLAChangeNotPermittedError()

        body = copy.deepcopy(instance.raw)
        labels = body.setdefault("metadata", {}).setdefault("labels", {})
        labels[PLAN_NAME_LABEL] = target.name
        labels[SLA_LABEL] = target.sla
        if target.cluster is not None:
            labels[CLUSTER_LABEL] = target.cluster
        body.setdefault("spec", {})["compositionRef"] = {"name": target.id}

        logger.info(
            "update-instance-sla",
            instance_id=instance_id,
            from_sla=current_sla,
            to_sla=target.sla,
            plan_id=target.id,
        )
        self.client.update(target.composite_kind_ref, body)

    # Secrets and releases

    def get_secret(self, name: str, namespace: Optional[str] = None) -> dict[str, str]:
        """
        Get the decoded data of a secret, by default in the broker namespace.

        Raises:
            ResourceNotFoundError: If the secret does not exist
            InfrastructureError: If the secret has no data
        """
        secret = self.client.get(kinds.SECRET, name, namespace or self.namespace)
        data = decode_secret_data(secret)
        if data is None:
            raise InfrastructureError("nil secret data", details={"secret": name})
        return data

    def set_secret_values(self, name: str, values: dict[str, str], namespace: Optional[str] = None) -> None:
        """Merge values into the data of an existing secret."""
        self.client.patch(
            kinds.SECRET,
            name,
            {"data": encode_secret_data(values)},
            namespace or self.namespace,
        )

    def create_secret(self, name: str, data: dict[str, str], labels: dict[str, str]) -> None:
        """
        Create a secret in the broker namespace.

        Raises:
            ResourceAlreadyExistsError: If the secret exists
        """
        body = {
            "apiVersion": kinds.SECRET.api_version,
            "kind": kinds.SECRET.kind,
            "metadata": {"name": name, "namespace": self.namespace, "labels": labels},
            "data": encode_secret_data(data),
        }
        self.client.create(kinds.SECRET, body, self.namespace)

    def delete_secret(self, name: str) -> None:
        self.client.delete(kinds.SECRET, name, self.namespace)

    def get_release(self, name: str) -> dict[str, Any]:
        return self.client.get(self.kinds.helm_release, name)

    def find_release(self, refs: list[ResourceReference], chart_name: str) -> dict[str, Any]:
        """
        Find the release among ``refs`` that deploys the given chart.

        Raises:
            InfrastructureError: If none of the releases deploys the chart
        """
        for ref in refs:
            release = self.get_release(ref.name)
            chart = ((release.get("spec") or {}).get("forProvider") or {}).get("chart") or {}
            if chart.get("name") == chart_name:
                return release
        raise InfrastructureError(f"release {chart_name!r} not found")
