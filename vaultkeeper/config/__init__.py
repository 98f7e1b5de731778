"""Configuration models and file loading."""

from .loader import CONF_FILE_ENV, get_config_path, load_config
from .model import (
    AuthenticationConfig,
    EndpointConfig,
    LeaseConfig,
    SecretConfig,
    VaultkeeperConfig,
)

__all__ = [
    "AuthenticationConfig",
    "CONF_FILE_ENV",
    "EndpointConfig",
    "LeaseConfig",
    "SecretConfig",
    "VaultkeeperConfig",
    "get_config_path",
    "load_config",
]
