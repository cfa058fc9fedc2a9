"""Configuration loading for the ecobee bridge."""

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

_LOGGER = logging.getLogger(__name__)


class ConfigError(Exception):
    """Exception raised when the configuration file cannot be used."""


class BridgeConfig(BaseModel):
    """Account settings read from the configuration file."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    client_id: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)


def load_config(path: str | Path) -> BridgeConfig:
    """Load and validate a TOML configuration file.

    Args:
        path: Path to the configuration file.

    Returns:
        Validated BridgeConfig.

    Raises:
        ConfigError: If the file is missing, not valid TOML, or lacks a
            required key.

    """
    path = Path(path)
    _LOGGER.debug("Loading configuration from %s", path)

    try:
        with path.open("rb") as config_file:
            raw = tomllib.load(config_file)
    except OSError as err:
        error_msg = f"Cannot read configuration file {path}: {err}"
        raise ConfigError(error_msg) from err
    except tomllib.TOMLDecodeError as err:
        error_msg = f"Invalid TOML in {path}: {err}"
        raise ConfigError(error_msg) from err

    try:
        return BridgeConfig.model_validate(raw)
    except ValidationError as err:
        error_msg = f"Invalid configuration in {path}: {err}"
        raise ConfigError(error_msg) from err
