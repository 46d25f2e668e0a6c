"""Open Service Broker API implementation backed by Crossplane composite resources."""

from crossplane_broker._package import __version__

__all__ = ["__version__"]
