"""Configuration management for the monitor."""

import os
import yaml
import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5000
DEFAULT_DB_NAME = "test"
DEFAULT_DRIVER = "kairos"
DEFAULT_METRIC_PATH_PREFIX = "Custom Metrics|Kairos|"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Environment variable -> configuration key
_ENV_OVERRIDES = {
    "KAIROS_MONITOR_HOST": "host",
    "KAIROS_MONITOR_PORT": "port",
    "KAIROS_MONITOR_USERNAME": "username",
    "KAIROS_MONITOR_PASSWORD": "password",
    "KAIROS_MONITOR_DB_NAME": "db-name",
    "KAIROS_MONITOR_METRIC_PATH_PREFIX": "metric-path-prefix",
    "KAIROS_MONITOR_LOG_LEVEL": "logging.level",
}

# Nested sections; a blank section in the file means "use defaults"
_SECTIONS = ("logging", "metric-sink")


def _is_set(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


class ConfigurationError(Exception):
    """Raised when the configuration file cannot be resolved or loaded."""


@dataclass
class Configuration:
    """Settings for one monitoring pass."""

    host: str
    port: int = DEFAULT_PORT
    username: Optional[str] = None
    password: Optional[str] = None
    db_name: str = DEFAULT_DB_NAME
    metric_path_prefix: str = DEFAULT_METRIC_PATH_PREFIX
    driver: str = DEFAULT_DRIVER


class Config:
    """Configuration manager for the Kairos monitor."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file (YAML)

        Raises:
            ConfigurationError: If the file is missing, unreadable or malformed
        """
        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        """Load configuration from file and environment variables."""
        if self.config_path is not None:
            self._config = self._read_file(self.config_path)

        for section in _SECTIONS:
            self._config[section] = self._section(section)

        # Override with environment variables
        self._load_env_variables()

        # Set defaults
        self._set_defaults()

    @staticmethod
    def _read_file(path: str) -> Dict[str, Any]:
        if not path or not os.path.isfile(path):
            raise ConfigurationError(f"Configuration file not found: {path!r}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except UnicodeDecodeError as e:
            raise ConfigurationError(
                f"Configuration file {path} is not valid UTF-8: {e}"
            ) from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Malformed configuration file {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {path} must contain a mapping, "
                f"got {type(data).__name__}"
            )
        return data

    def _section(self, name: str) -> Dict[str, Any]:
        """Return a nested section, treating a blank section as empty."""
        section = self._config.get(name)
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ConfigurationError(
                f"'{name}' must be a mapping, got {type(section).__name__}"
            )
        return section

    def _load_env_variables(self):
        """Load configuration from environment variables."""
        for env_name, key in _ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                logger.debug(f"Overriding {key} from {env_name}")
                self.set(key, value)

    def _set_defaults(self):
        """Set default configuration values."""
        for key, default in (
            ("metric-path-prefix", DEFAULT_METRIC_PATH_PREFIX),
            ("driver", DEFAULT_DRIVER),
        ):
            if not _is_set(self._config.get(key)):
                self._config[key] = default

        # Logging defaults
        logging_section = self._config["logging"]
        if not _is_set(logging_section.get("level")):
            logging_section["level"] = "INFO"
        if not _is_set(logging_section.get("format")):
            logging_section["format"] = DEFAULT_LOG_FORMAT

        # Sink defaults
        sink_section = self._config["metric-sink"]
        if not _is_set(sink_section.get("type")):
            sink_section["type"] = "stdout"

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Args:
            key: Configuration key (supports dot notation, e.g., 'logging.level')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

            if value is None:
                return default

        return value

    def set(self, key: str, value: Any):
        """Set configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        config = self._config

        for k in keys[:-1]:
            config = config.setdefault(k, {})

        config[keys[-1]] = value

    def to_configuration(self) -> Configuration:
        """Build the typed settings for a monitoring pass.

        Returns:
            Configuration instance with defaults applied

        Raises:
            ConfigurationError: If required settings are missing or invalid
        """
        host = self.get("host")
        if host is None or not str(host).strip():
            raise ConfigurationError("'host' is required")

        port = self.get("port")
        if port is None or str(port).strip() == "":
            port = DEFAULT_PORT
        else:
            try:
                port = int(port)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid port: {port!r}") from e

        db_name = self.get("db-name")
        if db_name is None or not str(db_name).strip():
            db_name = DEFAULT_DB_NAME

        prefix = self.get("metric-path-prefix")
        if not _is_set(prefix):
            prefix = DEFAULT_METRIC_PATH_PREFIX

        driver = self.get("driver")
        if not _is_set(driver):
            driver = DEFAULT_DRIVER

        username = self.get("username")
        password = self.get("password")

        return Configuration(
            host=str(host),
            port=port,
            username=str(username) if username is not None else None,
            password=str(password) if password is not None else None,
            db_name=str(db_name),
            metric_path_prefix=str(prefix),
            driver=str(driver),
        )


def installation_directory() -> Path:
    """Directory that relative configuration paths are resolved against."""
    home = os.getenv("KAIROS_MONITOR_HOME")
    if home:
        return Path(home)
    return Path(__file__).resolve().parent.parent


def resolve_config_path(
    filename: Optional[str], install_dir: Optional[Path] = None
) -> str:
    """Resolve the configuration file argument to a path.

    An existing path (absolute or relative to the working directory) is
    used as-is; anything else is taken relative to the installation
    directory.

    Args:
        filename: Value of the ``config-file`` task argument
        install_dir: Override for the installation directory

    Returns:
        Resolved path, or an empty string if no filename was given
    """
    if filename is None:
        return ""

    if os.path.exists(filename):
        return filename

    if not filename:
        return ""

    base = install_dir if install_dir is not None else installation_directory()
    return str(base / filename)


def load_configuration(config_path: str) -> Configuration:
    """Load and validate the settings for a monitoring pass.

    Args:
        config_path: Resolved path to the YAML configuration file

    Returns:
        Configuration instance

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid
    """
    return Config(config_path).to_configuration()
