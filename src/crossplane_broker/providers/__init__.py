"""Backend specific service binders and credential extractors."""

from crossplane_broker.providers.base import ServiceBinder
from crossplane_broker.providers.factory import BackendKind, ServiceBinderFactory

__all__ = ["BackendKind", "ServiceBinder", "ServiceBinderFactory"]
