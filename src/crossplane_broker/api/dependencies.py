"""FastAPI dependencies."""

from typing import Optional

from fastapi import Header, Request

from crossplane_broker._package import BROKER_API_MIN_VERSION
from crossplane_broker.application.broker import LifecycleController
from crossplane_broker.application.errors import BrokerAPIError

API_VERSION_HEADER = Header(None, alias="X-Broker-API-Version")


def get_broker(request: Request) -> LifecycleController:
    return request.app.state.broker


def require_api_version(x_broker_api_version: Optional[str] = API_VERSION_HEADER) -> str:
    """Reject requests without a supported X-Broker-API-Version header."""
    if not x_broker_api_version:
        raise BrokerAPIError(412, "X-Broker-API-Version Header not set", log_key="version-header-missing")

    major, _, minor = x_broker_api_version.partition(".")
    required = ".".join(str(part) for part in BROKER_API_MIN_VERSION)
    try:
        version = (int(major), int(minor or 0))
    except ValueError:
        version = (0, 0)
    if version[0] != BROKER_API_MIN_VERSION[0] or version < BROKER_API_MIN_VERSION:
        raise BrokerAPIError(
            412,
            f"X-Broker-API-Version Header must be {required} or a later {BROKER_API_MIN_VERSION[0]}.x version",
            log_key="version-header-check-failed",
        )
    return x_broker_api_version
