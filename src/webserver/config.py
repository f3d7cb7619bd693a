"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, immutable configuration for the web server.

=============================================================================
WHERE VALUES COME FROM
=============================================================================

Four layers, later ones win:

    ┌──────────────────────────────────────────────────────────────────┐
    │  1. Defaults            ServerConfig()                           │
    │  2. JSON file           Config/server-config.json                │
    │  3. Environment         WEBSERVER_PORT=9000 ...                  │
    │  4. Command line        --port 9000 ...                          │
    └──────────────────────────────────────────────────────────────────┘

The JSON file uses the same keys the server has always written:

    {
      "Port": 8080,
      "DocumentRoot": "./StaticFiles",
      "LogDirectory": "./Logs"
    }

Optional extra keys: "Host", "ReadTimeout", "LogLevel".

If the file does not exist it is CREATED with the defaults, so a fresh
install leaves behind a file to edit. If it exists but cannot be read or
parsed, the error is logged and the defaults are used; the server still
starts.

=============================================================================
IMMUTABLE AND INJECTED
=============================================================================

ServerConfig is a frozen dataclass. It is built once at startup and
passed to the listener, the connection handler and the access logger.
Overrides produce a new object:

    config = dataclasses.replace(config, port=9000)

=============================================================================
"""

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = os.path.join("Config", "server-config.json")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Configuration could not be loaded or is invalid."""


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the web server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    CONTENT
    - document_root, log_directory

    NETWORK
    - host, port, backlog, buffer_size, read_timeout, max_line_length

    CONCURRENCY
    - min_workers, max_workers

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one (handy in tests)."""

    document_root: str = "./StaticFiles"
    """Directory GET requests are served from. Nothing outside it is reachable."""

    log_directory: str = "./Logs"
    """Directory for the daily access_YYYY-MM-DD.log files."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (default)
    - "127.0.0.1" - Localhost only
    """

    backlog: int = 128
    """Connections the OS queues before refusing new ones."""

    buffer_size: int = 8192
    """Chunk size used when reading request bodies."""

    read_timeout: Optional[float] = None
    """
    Seconds a single socket read may block.
    None = wait forever; a silent client then holds its worker until it
    disconnects.
    """

    max_line_length: int = 65536
    """Longest request line or header line accepted, in bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads kept alive even when idle."""

    max_workers: Optional[int] = None
    """Upper bound on worker threads. None = one worker per busy connection."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    server_name: str = "webserver/1.0"
    """Name shown in the startup banner."""

    # =========================================================================
    # JSON FILE
    # =========================================================================

    # JSON key → field name
    FILE_KEYS = {
        "Port": "port",
        "DocumentRoot": "document_root",
        "LogDirectory": "log_directory",
        "Host": "host",
        "ReadTimeout": "read_timeout",
        "LogLevel": "log_level",
    }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ServerConfig":
        """
        Build a config from the JSON file's keys.

        Unknown keys are ignored. Raises ConfigError on a value of the
        wrong type or a config that fails validate().
        """
        if not isinstance(data, Mapping):
            raise ConfigError("Configuration must be a JSON object")

        values: Dict[str, Any] = {}
        for key, name in cls.FILE_KEYS.items():
            if key in data:
                values[name] = data[key]

        config = cls()._coerce(values)
        config.validate()
        return config

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ServerConfig":
        """
        Load configuration from a JSON file.

        Raises:
            FileNotFoundError: The file does not exist.
            ConfigError: The file is not valid JSON or has bad values.
        """
        text = Path(path).read_text(encoding="utf-8")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def load_or_create(cls, path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> "ServerConfig":
        """
        Load the config file, creating it with defaults if it is missing.

        Never raises for file problems: an unreadable or invalid file is
        logged and the defaults are returned.
        """
        path = Path(path)
        config = cls()

        if not path.exists():
            try:
                config.save(path)
                logger.info(f"Created default configuration at {path}")
            except OSError as e:
                logger.error(f"Could not write default configuration to {path}: {e}")
            return config

        try:
            return cls.from_file(path)
        except (OSError, ConfigError) as e:
            logger.error(f"Error loading configuration from {path}: {e}. Using defaults.")
            return config

    def to_dict(self) -> Dict[str, Any]:
        """The three core settings, in file format."""
        return {
            "Port": self.port,
            "DocumentRoot": self.document_root,
            "LogDirectory": self.log_directory,
        }

    def save(self, path: Union[str, Path]) -> None:
        """Write to_dict() as indented JSON, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")

    # =========================================================================
    # ENVIRONMENT
    # =========================================================================

    ENV_VARS = {
        "WEBSERVER_PORT": "port",
        "WEBSERVER_DOCUMENT_ROOT": "document_root",
        "WEBSERVER_LOG_DIRECTORY": "log_directory",
        "WEBSERVER_HOST": "host",
        "WEBSERVER_READ_TIMEOUT": "read_timeout",
        "WEBSERVER_LOG_LEVEL": "log_level",
    }

    def with_env(self, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Return a copy with environment variable overrides applied.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        WEBSERVER_PORT           Port to listen on
        WEBSERVER_DOCUMENT_ROOT  Static file directory
        WEBSERVER_LOG_DIRECTORY  Access log directory
        WEBSERVER_HOST           Bind address
        WEBSERVER_READ_TIMEOUT   Socket read timeout in seconds
        WEBSERVER_LOG_LEVEL      Console logging level

        =====================================================================
        USAGE
        =====================================================================

        # From shell:
        WEBSERVER_PORT=3000 WEBSERVER_LOG_LEVEL=DEBUG python -m webserver

        =====================================================================
        """
        if environ is None:
            environ = os.environ

        values = {
            name: environ[var]
            for var, name in self.ENV_VARS.items()
            if environ.get(var, "") != ""
        }
        config = self._coerce(values)
        config.validate()
        return config

    def override(self, **values: Any) -> "ServerConfig":
        """
        Return a copy with the given fields replaced. None values are
        skipped, which is how unset command-line options arrive.
        """
        config = self._coerce({k: v for k, v in values.items() if v is not None})
        config.validate()
        return config

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def _coerce(self, values: Dict[str, Any]) -> "ServerConfig":
        """Convert raw values to each field's type and apply them."""
        known = {f.name for f in fields(self)}
        converted: Dict[str, Any] = {}

        for name, value in values.items():
            if name not in known:
                raise ConfigError(f"Unknown setting: {name}")
            try:
                converted[name] = _CONVERTERS.get(name, str)(value)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid value for {name}: {value!r}") from e

        return replace(self, **converted)

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup, so a bad value stops the server before it
        binds anything.

        Raises:
            ConfigError: Describing the first invalid value.
        """
        if not 0 <= self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not self.document_root:
            raise ConfigError("document_root must not be empty")

        if not self.log_directory:
            raise ConfigError("log_directory must not be empty")

        if self.backlog < 1:
            raise ConfigError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ConfigError("buffer_size must be >= 1")

        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ConfigError("read_timeout must be > 0")

        if self.max_line_length < 1:
            raise ConfigError("max_line_length must be >= 1")

        if self.min_workers < 0:
            raise ConfigError("min_workers must be >= 0")

        if self.max_workers is not None and self.max_workers < max(1, self.min_workers):
            raise ConfigError("max_workers must be >= min_workers and >= 1")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Invalid log_level: {self.log_level}")


def _int(value: Any) -> int:
    # bool is an int subclass; "Port": true is not a port
    if isinstance(value, bool):
        raise TypeError("expected an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError("expected an integer")
    return int(value)


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError("expected a number")
    return float(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return _int(value)


def _str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError("expected a string")
    return value


def _level(value: Any) -> str:
    return _str(value).upper()


_CONVERTERS = {
    "port": _int,
    "backlog": _int,
    "buffer_size": _int,
    "max_line_length": _int,
    "min_workers": _int,
    "max_workers": _optional_int,
    "read_timeout": _optional_float,
    "log_level": _level,
    "document_root": _str,
    "log_directory": _str,
    "host": _str,
    "server_name": _str,
}
