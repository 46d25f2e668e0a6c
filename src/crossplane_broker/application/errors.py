"""Translation of domain errors into broker API errors."""

from typing import Any, NamedTuple, Optional

from crossplane_broker.domain.exceptions import (
    AsyncRequiredError,
    BindingDoesNotExistError,
    BindingNotFoundError,
    BindingNotSupportedError,
    ConcurrentInstanceAccessError,
    DomainException,
    InstanceAlreadyExistsError,
    InstanceDoesNotExistError,
    InstanceInUseError,
    InstanceNotFoundError,
    InstanceNotReadyError,
    OperationNotImplementedError,
    PlanNotFoundError,
    UpdateNotPermittedError,
)
from crossplane_broker.infrastructure.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_CORRELATION_ID = "unknown"


class BrokerAPIError(Exception):
    """An error as sent to the platform.

    ``error`` is the machine readable error key of the broker API and may be
    None. ``log_key`` names the failure in logs.
    """

    def __init__(self, status_code: int, description: str, error: Optional[str] = None, log_key: str = "") -> None:
        super().__init__(description)
        self.status_code = status_code
        self.description = description
        self.error = error
        self.log_key = log_key

    def to_response(self) -> dict[str, Any]:
        """Render the error body of the broker API."""
        body: dict[str, Any] = {"description": self.description}
        if self.error:
            body["error"] = self.error
        return body


class _Mapping(NamedTuple):
    status_code: int
    error: Optional[str]
    log_key: str


# Checked in order, subclasses before their bases
_ERROR_MAPPINGS: list[tuple[type[Exception], _Mapping]] = [
    (AsyncRequiredError, _Mapping(422, "AsyncRequired", "async-required")),
    (PlanNotFoundError, _Mapping(400, None, "plan-not-found")),
    (InstanceAlreadyExistsError, _Mapping(409, None, "instance-already-exists")),
    (InstanceDoesNotExistError, _Mapping(410, None, "instance-missing")),
    (InstanceNotFoundError, _Mapping(404, None, "instance-not-found")),
    (BindingDoesNotExistError, _Mapping(410, None, "binding-missing")),
    (BindingNotFoundError, _Mapping(404, None, "binding-not-found")),
    (ConcurrentInstanceAccessError, _Mapping(422, "ConcurrencyError", "get-instance-during-update")),
    (InstanceNotReadyError, _Mapping(422, "ConcurrencyError", "instance-not-ready")),
    (InstanceInUseError, _Mapping(422, "InUseError", "deprovision-instance-in-use")),
    (UpdateNotPermittedError, _Mapping(422, None, "update-instance-failed")),
    (BindingNotSupportedError, _Mapping(422, "BindingNotSupported", "binding-not-supported")),
    (OperationNotImplementedError, _Mapping(501, "NotImplemented", "not-implemented")),
]

_INTERNAL = _Mapping(500, None, "internal-server-error")


def with_correlation_id(message: str, correlation_id: Optional[str]) -> str:
    return f'{message} (correlation-id: "{correlation_id or UNKNOWN_CORRELATION_ID}")'


def convert_error(error: Exception, correlation_id: Optional[str]) -> BrokerAPIError:
    """
    Convert any error raised by the lifecycle into a broker API error.

    Known domain errors keep their message and get their protocol status.
    Everything else becomes an internal server error. The correlation ID is
    always appended to the description.

    Args:
        error: Error raised while handling a request
        correlation_id: Correlation ID of the request

    Returns:
        BrokerAPIError: Error ready to be rendered
    """
    if isinstance(error, BrokerAPIError):
        return error

    mapping = next(
        (mapping for error_type, mapping in _ERROR_MAPPINGS if isinstance(error, error_type)),
        _INTERNAL,
    )
    message = error.message if isinstance(error, DomainException) else str(error)
    if mapping is _INTERNAL:
        logger.error(
            mapping.log_key,
            error=message,
            error_type=type(error).__name__,
            correlation_id=correlation_id,
        )
    return BrokerAPIError(
        status_code=mapping.status_code,
        description=with_correlation_id(message, correlation_id),
        error=mapping.error,
        log_key=mapping.log_key,
    )
