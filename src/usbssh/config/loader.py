"""Configuration loading from TOML files."""

import logging
import tomllib
from pathlib import Path

from pydantic import ValidationError

from usbssh.config.models import AppConfig, ConfigError
from usbssh.config.paths import get_config_path

logger = logging.getLogger(__name__)


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("config.toml"),  # Current directory
        get_config_path(),  # ~/.usbssh/config.toml (or USBSSH_HOME)
        Path("/etc/usbssh/config.toml"),  # System-wide
    ]


def find_config_path(path: Path | None = None) -> Path | None:
    """Locate the config file to load.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        The config path, or None when no default location has a file.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return config_path

    for default_path in _get_default_config_paths():
        expanded = default_path.expanduser()
        if expanded.exists():
            return expanded
    return None


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a TOML file.

    Unlike preferences, the config file is optional: every field has a
    default matching a stock Kobo layout.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        Validated AppConfig instance.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ConfigError: If the config file is not valid TOML or fails validation.
    """
    config_path = find_config_path(path)
    if config_path is None:
        logger.debug("No config file found, using defaults")
        return AppConfig()

    try:
        with config_path.open("rb") as f:
            raw_config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        config = AppConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {config_path}: {e}") from e

    logger.debug(f"Loaded config from {config_path}")
    return config
