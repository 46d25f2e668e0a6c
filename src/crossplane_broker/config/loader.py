"""Configuration loading with Dynaconf."""

from typing import Optional

from dynaconf import Dynaconf
from pydantic import ValidationError

from crossplane_broker.config.schema import BrokerConfig
from crossplane_broker.domain.exceptions import ConfigurationError

ENVVAR_PREFIX = "OSB"


def load_config(settings_file: Optional[str] = None) -> BrokerConfig:
    """
    Load the broker configuration.

    Values come from an optional settings file (YAML, TOML, JSON) and are
    overridden by ``OSB_`` prefixed environment variables, so
    ``OSB_SERVICE_IDS`` sets ``service_ids``.

    Args:
        settings_file: Path of a settings file

    Returns:
        BrokerConfig: Validated configuration

    Raises:
        ConfigurationError: If a value is missing or invalid
    """
    settings = Dynaconf(
        envvar_prefix=ENVVAR_PREFIX,
        settings_files=[settings_file] if settings_file else [],
        environments=False,
        load_dotenv=False,
    )
    values = {str(key).lower(): value for key, value in settings.as_dict().items()}
    try:
        return BrokerConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}", details={"errors": e.errors()}) from e
