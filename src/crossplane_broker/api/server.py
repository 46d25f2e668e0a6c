"""FastAPI application factory."""

from fastapi import FastAPI

from crossplane_broker._package import __version__
from crossplane_broker.api.errors import broker_api_error_handler
from crossplane_broker.api.middleware import CorrelationIDMiddleware
from crossplane_broker.api.routers import broker as broker_router
from crossplane_broker.api.routers import custom as custom_router
from crossplane_broker.application.broker import LifecycleController
from crossplane_broker.application.errors import BrokerAPIError
from crossplane_broker.config.schema import BrokerConfig


def create_fastapi_app(config: BrokerConfig, broker: LifecycleController) -> FastAPI:
    """
    Create the broker application.

    Args:
        config: Broker configuration, used for authentication
        broker: Lifecycle controller serving the broker operations

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Crossplane Service Broker",
        description="Open Service Broker API backed by Crossplane composite resources",
        version=__version__,
    )
    app.state.config = config
    app.state.broker = broker

    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(BrokerAPIError, broker_api_error_handler)

    @app.get("/healthz", tags=["Health"])
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(broker_router.router)
    app.include_router(custom_router.router)

    return app


__all__ = ["create_fastapi_app"]
