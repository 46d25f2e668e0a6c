"""Lifecycle controller mapping broker operations onto composite resources.

Provision and deprovision create and delete composites, binding work is
delegated to the binder of the instance's backend. The controller owns
idempotency and validation. It raises domain exceptions, which the API layer
turns into broker errors through ``convert_error``.
"""

from typing import Any, Optional

from crossplane_broker.application.catalog import PlanCatalog
from crossplane_broker.application.control_plane import ControlPlane
from crossplane_broker.domain.exceptions import (
    AsyncRequiredError,
    ConcurrentInstanceAccessError,
    InstanceAlreadyExistsError,
    InstanceDoesNotExistError,
    InstanceNotFoundError,
    OperationNotImplementedError,
    ResourceAlreadyExistsError,
)
from crossplane_broker.domain.models import (
    BindingResult,
    Credentials,
    Endpoint,
    Instance,
    InstanceDetails,
    LastOperation,
    OperationState,
    Plan,
    ProvisionResult,
    ReadyReason,
    ServiceDefinition,
)
from crossplane_broker.infrastructure.logging import get_logger
from crossplane_broker.providers.factory import ServiceBinderFactory

logger = get_logger(__name__)


class LifecycleController:
    """Implements the broker operations."""

    def __init__(
        self,
        control_plane: ControlPlane,
        catalog: PlanCatalog,
        binders: ServiceBinderFactory,
    ) -> None:
        self._control_plane = control_plane
        self._catalog = catalog
        self._binders = binders

    def services(self) -> list[ServiceDefinition]:
        logger.info("get-catalog")
        return self._catalog.services()

    def provision(
        self,
        instance_id: str,
        plan_id: str,
        parameters: Optional[dict[str, Any]],
        async_allowed: bool,
        service_id: Optional[str] = None,
    ) -> ProvisionResult:
        """
        Provision an instance.

        Provisioning is always asynchronous. Repeating a call for an existing
        instance with the same plan and no parameters is reported as already
        existing. Any other repeat is a conflict.

        Raises:
            AsyncRequiredError: If the platform does not accept async operations
            PlanNotFoundError: If the plan does not exist
            InstanceAlreadyExistsError: If the instance exists with other attributes
        """
        logger.info("provision-instance", instance_id=instance_id, plan_id=plan_id, service_id=service_id)
        if not async_allowed:
            raise AsyncRequiredError()

        plan = self._control_plane.get_plan(plan_id)

        instance = self._control_plane.instance_exists(instance_id, plan)
        if instance is not None:
            # Parameters are not compared, only parameterless requests count as equal
            if instance.plan_name == plan.name and not parameters:
                return ProvisionResult(already_exists=True)
            raise InstanceAlreadyExistsError(instance_id)

        if self._exists_under_other_plan(instance_id):
            raise InstanceAlreadyExistsError(instance_id)

        try:
            self._control_plane.create_instance(instance_id, parameters, plan)
        except ResourceAlreadyExistsError as e:
            raise InstanceAlreadyExistsError(instance_id) from e

        return ProvisionResult(is_async=True)

    def deprovision(
        self,
        instance_id: str,
        plan_id: str,
        async_allowed: bool = False,
        service_id: Optional[str] = None,
    ) -> None:
        """
        Deprovision an instance. The binder's checks run before the composite is deleted.

        Raises:
            InstanceDoesNotExistError: If the instance does not exist for the plan
            InstanceInUseError: If child instances still exist
        """
        logger.info("deprovision-instance", instance_id=instance_id, plan_id=plan_id, service_id=service_id)
        plan = self._control_plane.get_plan(plan_id)
        instance = self._require_instance(instance_id, plan)

        self._binders.create(instance).deprovision()
        self._control_plane.delete_instance(instance.name, plan)

    def bind(
        self,
        instance_id: str,
        binding_id: str,
        plan_id: str,
        service_id: Optional[str] = None,
    ) -> BindingResult:
        """
        Create a binding and return its credentials.

        A binding the backend already holds is reported as existing, its
        credentials are returned unchanged.

        Raises:
            InstanceDoesNotExistError: If the instance does not exist for the plan
            ConcurrentInstanceAccessError: If the instance is not ready
        """
        logger.info(
            "bind-instance",
            instance_id=instance_id,
            binding_id=binding_id,
            plan_id=plan_id,
            service_id=service_id,
        )
        plan = self._control_plane.get_plan(plan_id)
        instance = self._require_instance(instance_id, plan)
        self._require_ready(instance)

        binder = self._binders.create(instance)
        binder.finish_provision()
        already_exists = binder.binding_exists(binding_id)
        return BindingResult(credentials=binder.bind(binding_id), already_exists=already_exists)

    def unbind(
        self,
        instance_id: str,
        binding_id: str,
        plan_id: str,
        service_id: Optional[str] = None,
    ) -> None:
        logger.info(
            "unbind-instance",
            instance_id=instance_id,
            binding_id=binding_id,
            plan_id=plan_id,
            service_id=service_id,
        )
        plan = self._control_plane.get_plan(plan_id)
        instance = self._require_instance(instance_id, plan)
        self._binders.create(instance).unbind(binding_id)

    def last_operation(
        self,
        instance_id: str,
        plan_id: Optional[str] = None,
        service_id: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> LastOperation:
        """
        Report the provisioning state of an instance from its Ready condition.

        The plan ID of the request is ignored and the instance is looked up
        across all plans. When the instance is available the binder's
        ``finish_provision`` runs as well.

        Raises:
            InstanceDoesNotExistError: If the instance does not exist
        """
        logger.info(
            "last-operation",
            instance_id=instance_id,
            operation_data=operation,
            plan_id=plan_id,
            service_id=service_id,
        )
        instance = self._existing_instance(instance_id)

        reason = instance.ready_reason
        if reason == ReadyReason.AVAILABLE.value:
            binder = self._binders.create(instance)
            logger.info("finish-provision", instance_id=instance_id)
            binder.finish_provision()
            state = OperationState.SUCCEEDED
        elif reason == ReadyReason.CREATING.value:
            state = OperationState.IN_PROGRESS
        else:
            state = OperationState.FAILED
        return LastOperation(state=state, description=reason)

    def update(self, instance_id: str, service_id: Optional[str], plan_id: Optional[str]) -> None:
        """
        Change the SLA of an instance.

        Raises:
            InstanceDoesNotExistError: If the instance does not exist
            UpdateNotPermittedError: If the requested change is not an SLA swap
        """
        logger.info("update-service-instance", instance_id=instance_id, plan_id=plan_id, service_id=service_id)
        try:
            self._control_plane.update_instance_sla(instance_id, service_id, plan_id)
        except InstanceNotFoundError as e:
            raise InstanceDoesNotExistError(instance_id) from e

    def get_binding(self, instance_id: str, binding_id: str) -> Credentials:
        logger.info("get-binding", instance_id=instance_id, binding_id=binding_id)
        instance = self._existing_instance(instance_id)
        self._require_ready(instance)
        return self._binders.create(instance).get_binding(binding_id)

    def get_instance(self, instance_id: str) -> InstanceDetails:
        logger.info("get-instance", instance_id=instance_id)
        instance = self._existing_instance(instance_id)
        return InstanceDetails(
            service_id=instance.service_id,
            plan_id=instance.composition_ref,
            parameters=instance.parameters,
        )

    def last_binding_operation(
        self,
        instance_id: str,
        binding_id: str,
        plan_id: Optional[str] = None,
        service_id: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> LastOperation:
        """Bindings are synchronous, there is never a binding operation to poll."""
        logger.info(
            "last-binding-operation",
            instance_id=instance_id,
            binding_id=binding_id,
            operation_data=operation,
            plan_id=plan_id,
            service_id=service_id,
        )
        raise OperationNotImplementedError()

    def endpoints(self, instance_id: str) -> list[Endpoint]:
        """
        List the network endpoints of an instance.

        Raises:
            InstanceNotFoundError: If the instance does not exist
        """
        logger.info("get-endpoints", instance_id=instance_id)
        instance = self._control_plane.get_instance(instance_id)
        return self._binders.create(instance).endpoints()

    def _require_instance(self, instance_id: str, plan: Plan) -> Instance:
        instance = self._control_plane.instance_exists(instance_id, plan)
        if instance is None:
            raise InstanceDoesNotExistError(instance_id)
        return instance

    def _existing_instance(self, instance_id: str) -> Instance:
        """Look an instance up across all plans, a missing one is reported as gone."""
        try:
            return self._control_plane.get_instance(instance_id)
        except InstanceNotFoundError as e:
            raise InstanceDoesNotExistError(instance_id) from e

    @staticmethod
    def _require_ready(instance: Instance) -> None:
        if not instance.is_ready:
            raise ConcurrentInstanceAccessError(instance.name)

    def _exists_under_other_plan(self, instance_id: str) -> bool:
        try:
            self._control_plane.get_instance(instance_id)
        except InstanceNotFoundError:
            return False
        return True
