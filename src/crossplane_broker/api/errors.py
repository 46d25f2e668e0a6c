"""Error handling of the HTTP surface."""

import functools
from typing import Any, Callable, TypeVar

from fastapi import Request
from fastapi.responses import JSONResponse

from crossplane_broker.api.middleware import current_correlation_id
from crossplane_broker.application.errors import BrokerAPIError, convert_error
from crossplane_broker.infrastructure.logging import get_logger

F = TypeVar("F", bound=Callable[..., Any])

logger = get_logger(__name__)


def handle_broker_errors(operation: str) -> Callable[[F], F]:
    """
    Convert errors raised by a route into broker API errors.

    Args:
        operation: Name of the broker operation, used in logs
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                error = convert_error(e, current_correlation_id())
                logger.info(
                    "%s failed",
                    operation,
                    status_code=error.status_code,
                    log_key=error.log_key,
                    description=error.description,
                )
                raise error from e

        return wrapper  # type: ignore[return-value]

    return decorator


async def broker_api_error_handler(request: Request, exc: BrokerAPIError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())
