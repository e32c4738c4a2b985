"""
Configuration loading for lambda-loader.

The configuration is a flat mapping with uppercase keys stored as YAML.
Missing keys are filled from DEFAULT_CONFIG, so files written by older
versions keep working.
"""

import os
import tempfile
from typing import Any, Callable, Dict, Optional, Union

import platformdirs
import yaml

from lambda_loader import log_utils
from lambda_loader.constants import (
    APP_NAME,
    CHECKSUM_EXTENSIONS,
    CONFIG_FILE_ENV_VAR,
    CONFIG_FILE_NAME,
    DEFAULT_CONFIG,
)
from lambda_loader.exceptions import ConfigFileError, ConfigurationError
from lambda_loader.models import ReleaseChannel

RELEASE_MODE_KEYS = ("CLIENT_RELEASE_MODE", "LOADER_RELEASE_MODE")


def get_config_dir() -> str:
    return platformdirs.user_config_dir(APP_NAME)


def get_config_file_path() -> str:
    """
    Return the configuration file path.

    LAMBDA_LOADER_CONFIG overrides the platform config directory.
    """
    override = os.environ.get(CONFIG_FILE_ENV_VAR)
    if override:
        return os.path.expanduser(override)
    return os.path.join(get_config_dir(), CONFIG_FILE_NAME)


def parse_release_mode(value: Union[str, ReleaseChannel, None]) -> ReleaseChannel:
    """
    Convert a configured release mode to a ReleaseChannel.

    Accepts "stable" or "snapshot" in any case; None means the default.

    Raises:
        ConfigurationError: For any other value.
    """
    if isinstance(value, ReleaseChannel):
        return value
    if value is None:
        return ReleaseChannel(DEFAULT_CONFIG["CLIENT_RELEASE_MODE"])
    try:
        return ReleaseChannel(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Invalid release mode: {value!r}",
            details="expected 'stable' or 'snapshot'",
        ) from None


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check the values the loader depends on.

    Raises:
        ConfigurationError: If a release mode or numeric setting is invalid.
    """
    for key in RELEASE_MODE_KEYS:
        parse_release_mode(config.get(key))

    for key in ("HTTP_TIMEOUT", "HTTP_RETRIES"):
        value = config.get(key)
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{key} must be a number, got {value!r}") from None
        if number < 0:
            raise ConfigurationError(f"{key} must not be negative, got {value!r}")

    algorithm = str(config.get("CHECKSUM_ALGORITHM", "")).lower()
    if algorithm not in CHECKSUM_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported CHECKSUM_ALGORITHM: {config.get('CHECKSUM_ALGORITHM')!r}",
            details=f"expected one of: {', '.join(sorted(CHECKSUM_EXTENSIONS))}",
        )
    config["CHECKSUM_ALGORITHM"] = algorithm
    return config


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the configuration, merged over the defaults.

    Parameters:
        path (Optional[str]): Config file to read; defaults to get_config_file_path().

    Returns:
        Dict[str, Any]: Defaults when the file does not exist, otherwise defaults updated with the file's values.

    Raises:
        ConfigFileError: If the file cannot be read or is not a YAML mapping.
        ConfigurationError: If a value is invalid.
    """
    config_path = path or get_config_file_path()
    config: Dict[str, Any] = dict(DEFAULT_CONFIG)

    if not os.path.exists(config_path):
        log_utils.logger.debug(f"No configuration at {config_path}; using defaults")
        return config

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(
            "Failed to read configuration", path=config_path, details=str(e)
        ) from e

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigFileError(
            "Configuration must be a mapping",
            path=config_path,
            details=f"got {type(loaded).__name__}",
        )

    config.update(loaded)
    return validate_config(config)


def save_config(config: Dict[str, Any], path: Optional[str] = None) -> str:
    """
    Atomically write the configuration as YAML.

    Returns:
        str: The path written.

    Raises:
        ConfigFileError: If the file cannot be written.
    """
    config_path = path or get_config_file_path()
    serializable = {
        key: (value.value if isinstance(value, ReleaseChannel) else value)
        for key, value in config.items()
    }
    temp_path = None
    try:
        os.makedirs(os.path.dirname(config_path) or ".", exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(
            dir=os.path.dirname(config_path) or ".", prefix="tmp-", suffix=".yaml"
        )
        with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(serializable, f, default_flow_style=False, sort_keys=False)
        os.replace(temp_path, config_path)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(
            "Failed to write configuration", path=config_path, details=str(e)
        ) from e
    finally:
        if temp_path and os.path.exists(temp_path):
            os.remove(temp_path)
    return config_path


def release_mode_provider(
    config: Dict[str, Any], key: str
) -> Callable[[], ReleaseChannel]:
    """Return a callable that reads `key` from `config` each time it is called."""

    def _provider() -> ReleaseChannel:
        return parse_release_mode(config.get(key))

    return _provider


def apply_logging_config(config: Dict[str, Any]) -> None:
    """Enable debug logging and/or file logging as configured."""
    if config.get("DEBUG"):
        log_utils.set_log_level("DEBUG")
    if config.get("LOG_FILE"):
        log_utils.add_file_logging(
            platformdirs.user_log_dir(APP_NAME),
            "DEBUG" if config.get("DEBUG") else "INFO",
        )
