"""Package metadata."""

PACKAGE_NAME = "crossplane-service-broker"
__version__ = "0.1.0"

BROKER_API_MIN_VERSION = (2, 14)
