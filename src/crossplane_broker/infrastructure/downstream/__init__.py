from crossplane_broker.infrastructure.downstream.cache import DownstreamClientCache
from crossplane_broker.infrastructure.downstream.resolver import DownstreamClientResolver

__all__ = ["DownstreamClientCache", "DownstreamClientResolver"]
