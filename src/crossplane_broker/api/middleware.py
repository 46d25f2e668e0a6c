"""Request middleware: correlation IDs and header debug logging."""

import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from crossplane_broker.infrastructure.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
)

# Checked in order, the first header present wins
CORRELATION_ID_HEADERS = (
    "X-Correlation-ID",
    "X-CorrelationID",
    "X-ForRequest-ID",
    "X-Request-ID",
    "X-Vcap-Request-Id",
)
REDACTED = "****"

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

logger = get_logger(__name__)


def current_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


def redact_headers(request: Request) -> dict[str, str]:
    """Copy request headers with the Authorization value replaced."""
    headers = dict(request.headers)
    if headers.get("authorization"):
        headers["authorization"] = REDACTED
    return headers


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Assigns every request a correlation ID and binds it to the log context."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = next(
            (request.headers[name] for name in CORRELATION_ID_HEADERS if request.headers.get(name)),
            None,
        ) or str(uuid.uuid4())

        request.state.correlation_id = correlation_id
        token = correlation_id_var.set(correlation_id)
        clear_request_context()
        bind_request_context(correlation_id)
        try:
            logger.debug(
                "debug-headers",
                headers=redact_headers(request),
                uri=str(request.url.path),
                method=request.method,
            )
            return await call_next(request)
        finally:
            correlation_id_var.reset(token)
            clear_request_context()
