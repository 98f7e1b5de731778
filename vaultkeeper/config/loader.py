"""Loading of the JSON configuration file."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from .model import VaultkeeperConfig

CONF_FILE_ENV = "VAULTKEEPER_CONF_FILE"
DEFAULT_CONF_FILE = "vaultkeeper.conf"


def get_config_path() -> str:
    return os.environ.get(CONF_FILE_ENV, DEFAULT_CONF_FILE)


def load_config(path: str | os.PathLike[str] | None = None) -> VaultkeeperConfig | None:
    """Load and validate the configuration file.

    Args:
        path: File to read; ``$VAULTKEEPER_CONF_FILE`` or ``vaultkeeper.conf`` when None.

    Returns:
        The validated config, or None if the file does not exist.

    Raises:
        pydantic.ValidationError: If the content does not match the model.
        ValueError: If the file is not valid JSON.
    """
    conf_path = Path(path if path is not None else get_config_path())
    if not conf_path.exists():
        logging.warning(f"📁 Config file not found: {conf_path}")
        return None
    with open(conf_path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file {conf_path} must contain a JSON object")
    config = VaultkeeperConfig.from_dict(data)
    logging.info(
        f"📄 Loaded config from {conf_path} method={config.authentication.method} secrets={len(config.secrets)}"
    )
    return config
