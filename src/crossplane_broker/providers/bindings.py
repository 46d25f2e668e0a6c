"""Creation and removal of binding composites and their password secrets."""

import secrets
import string
import time
from typing import Callable

from crossplane_broker.application.control_plane import ControlPlane
from crossplane_broker.domain import kinds
from crossplane_broker.domain.exceptions import (
    BindingDoesNotExistError,
    InfrastructureError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
)
from crossplane_broker.domain.labels import (
    INSTANCE_ID_LABEL,
    PARENT_ID_LABEL,
    PARENT_REFERENCE_PARAMETER,
)
from crossplane_broker.infrastructure.logging import get_logger
from crossplane_broker.providers.credentials import SECRET_PASSWORD_KEY

PASSWORD_LENGTH = 27
PASSWORD_ALPHABET = string.ascii_letters + string.digits

logger = get_logger(__name__)


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def password_secret_name(binding_id: str) -> str:
    return f"{binding_id}-password"


class BindingManager:
    """
    Manages MariaDB user bindings.

    A binding is a ``CompositeMariaDBUserInstance`` named after the binding ID
    plus a secret holding the generated password. Every step tolerates
    objects left behind by an earlier attempt, so retried calls converge.
    """

    def __init__(
        self,
        control_plane: ControlPlane,
        deletion_delay: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the manager.

        Args:
            control_plane: Access to secrets and composites
            deletion_delay: Seconds to wait between deleting the composite and its secret
            sleep: Sleep function, replaced in tests
        """
        self._control_plane = control_plane
        self._deletion_delay = deletion_delay
        self._sleep = sleep

    def create_binding(self, binding_id: str, instance_id: str, parent_reference: str) -> str:
        """
        Create the password secret and the binding composite.

        Args:
            binding_id: Binding identifier, also the composite name
            instance_id: Database instance the binding belongs to
            parent_reference: Cluster instance hosting the database

        Returns:
            str: The password of the binding
        """
        labels = {INSTANCE_ID_LABEL: instance_id, PARENT_ID_LABEL: parent_reference}
        secret_name = password_secret_name(binding_id)

        password = generate_password()
        try:
            self._control_plane.create_secret(secret_name, {SECRET_PASSWORD_KEY: password}, labels)
        except ResourceAlreadyExistsError:
            logger.debug("Password secret %s already exists, reusing it", secret_name)
            existing = self._control_plane.get_secret(secret_name)
            if SECRET_PASSWORD_KEY not in existing:
                raise InfrastructureError(f"secret {secret_name!r} has no password") from None
            password = existing[SECRET_PASSWORD_KEY]

        body = {
            "apiVersion": kinds.MARIADB_USER_INSTANCE.api_version,
            "kind": kinds.MARIADB_USER_INSTANCE.kind,
            "metadata": {"name": binding_id, "labels": labels},
            "spec": {
                "compositionRef": {"name": kinds.MARIADB_USER_COMPOSITION},
                "parameters": {PARENT_REFERENCE_PARAMETER: parent_reference},
            },
        }
        logger.debug("create-binding", binding_id=binding_id, instance_id=instance_id)
        try:
            self._control_plane.client.create(kinds.MARIADB_USER_INSTANCE, body)
        except ResourceAlreadyExistsError:
            logger.debug("Binding composite %s already exists", binding_id)
        return password

    def binding_exists(self, binding_id: str) -> bool:
        try:
            self._control_plane.client.get(kinds.MARIADB_USER_INSTANCE, binding_id)
        except ResourceNotFoundError:
            return False
        return True

    def delete_binding(self, binding_id: str) -> None:
        """
        Delete the binding composite, then its password secret.

        The secret outlives the composite for ``deletion_delay`` seconds so
        the SQL provider can still log in to drop the user.

        Raises:
            BindingDoesNotExistError: If the binding composite does not exist
        """
        try:
            self._control_plane.client.delete(kinds.MARIADB_USER_INSTANCE, binding_id)
        except ResourceNotFoundError as e:
            raise BindingDoesNotExistError(binding_id) from e

        # TODO: replace the fixed delay once provider-sql reports user deletion on the composite status
        self._sleep(self._deletion_delay)

        secret_name = password_secret_name(binding_id)
        try:
            self._control_plane.delete_secret(secret_name)
        except ResourceNotFoundError:
            logger.info("Password secret %s was already deleted", secret_name)
