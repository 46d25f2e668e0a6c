from crossplane_broker.config.loader import load_config
from crossplane_broker.config.schema import BrokerConfig

__all__ = ["BrokerConfig", "load_config"]
