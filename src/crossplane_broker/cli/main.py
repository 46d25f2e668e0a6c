"""CLI entry point for the broker."""

import argparse
import sys
from typing import Optional, Sequence

import uvicorn

from crossplane_broker._package import PACKAGE_NAME, __version__
from crossplane_broker.api.server import create_fastapi_app
from crossplane_broker.application.broker import LifecycleController
from crossplane_broker.application.catalog import PlanCatalog
from crossplane_broker.application.control_plane import ControlPlane
from crossplane_broker.config import BrokerConfig, load_config
from crossplane_broker.domain.exceptions import ConfigurationError
from crossplane_broker.infrastructure.downstream import DownstreamClientCache, DownstreamClientResolver
from crossplane_broker.infrastructure.kubernetes import KubernetesClientFactory
from crossplane_broker.infrastructure.logging import get_logger, setup_logging
from crossplane_broker.providers import ServiceBinderFactory
from crossplane_broker.providers.bindings import BindingManager

GRACEFUL_SHUTDOWN_TIMEOUT = 10

logger = get_logger(__name__)


def build_broker(config: BrokerConfig, client_factory: KubernetesClientFactory) -> LifecycleController:
    """
    Wire the lifecycle controller and its collaborators.

    Args:
        config: Validated broker configuration
        client_factory: Builds clients for the control plane and downstream clusters

    Returns:
        LifecycleController: Controller serving the broker operations
    """
    kinds = config.control_plane_kinds
    client = client_factory.control_plane()
    control_plane = ControlPlane(client, config.service_ids, config.namespace, kinds)

    downstream = DownstreamClientResolver(
        client,
        client_factory.from_kubeconfig,
        DownstreamClientCache(ttl=config.downstream_cache_ttl),
        control_plane_kinds=kinds,
        local_debug_client=client if config.local_debug_downstream else None,
    )
    bindings = BindingManager(control_plane, deletion_delay=config.binding_secret_deletion_delay)
    binders = ServiceBinderFactory(control_plane, downstream, bindings)
    return LifecycleController(control_plane, PlanCatalog(control_plane), binders)


def cmd_serve(settings_file: Optional[str]) -> int:
    config = load_config(settings_file)
    setup_logging(config.log_level, config.log_format)
    logger.info(
        "starting-broker",
        version=__version__,
        listen_addr=config.listen_addr,
        service_ids=config.service_ids,
        namespace=config.namespace,
    )

    client_factory = KubernetesClientFactory(
        request_timeout=config.kube_request_timeout,
        kubeconfig=config.kubeconfig,
    )
    app = create_fastapi_app(config, build_broker(config, client_factory))
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        h11_max_incomplete_event_size=config.max_header_bytes,
        timeout_graceful_shutdown=GRACEFUL_SHUTDOWN_TIMEOUT,
        log_config=None,
    )
    logger.info("broker-stopped")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PACKAGE_NAME,
        description="Open Service Broker API backed by Crossplane composite resources",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the broker HTTP server")
    serve.add_argument(
        "--config",
        default=None,
        help="Settings file (YAML, TOML or JSON). OSB_ environment variables take precedence",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # serve is the default command
    settings_file = getattr(args, "config", None)
    try:
        return cmd_serve(settings_file)
    except ConfigurationError as e:
        print(f"{PACKAGE_NAME}: {e.message}", file=sys.stderr)
        return 1


def cli_main() -> None:
    """Entry point function for console scripts."""
    sys.exit(main())


if __name__ == "__main__":
    cli_main()
