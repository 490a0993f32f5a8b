# pyright: reportExplicitAny=false, reportAny=false
"""Configuration models with typed access.

This module provides the Config model, the primary interface for reading
tnetctl configuration values, and one frozen model per section.
"""

from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar, Self

import pydantic
import tomli_w
from pydantic import BaseModel, ConfigDict, Field, model_validator

from tnetctl.exceptions import ConfigError

from ._defaults import DEFAULT_CONFIG
from ._loader import deep_merge, parse_env_vars, read_toml_file


class LogLevel(StrEnum):
    """Log level threshold values."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


_SECTION_CONFIG = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)


class ServerConfig(BaseModel):
    """HTTP server configuration section.

    Attributes:
        host: Interface the dashboard API binds to.
        port: TCP port of the dashboard API.
        status_interval: Upper bound in seconds between status pushes; also
            the polling interval advertised to dashboards.
    """

    model_config: ClassVar[ConfigDict] = _SECTION_CONFIG

    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(default=8080, ge=1, le=65535)
    status_interval: float = Field(default=10.0, gt=0)


class ProcessConfig(BaseModel):
    """Tunnel process configuration section.

    Attributes:
        command: Executable prefix; the kind token and instance arguments
            are appended to it.
        launch_timeout: Bound in seconds for launching a process.
        terminate_timeout: Bound in seconds for terminating a process.
        kill_after: Seconds between SIGTERM and SIGKILL.
        startup_grace: Seconds a new process must survive to count as
            launched. Zero disables the check.
        reconcile_interval: Seconds between checks for exited processes.
    """

    model_config: ClassVar[ConfigDict] = _SECTION_CONFIG

    command: tuple[str, ...] = Field(default=("tnet",), min_length=1)
    launch_timeout: float = Field(default=10.0, gt=0)
    terminate_timeout: float = Field(default=10.0, gt=0)
    kill_after: float = Field(default=5.0, ge=0)
    startup_grace: float = Field(default=0.0, ge=0)
    reconcile_interval: float = Field(default=2.0, gt=0)

    @model_validator(mode="after")
    def _grace_within_launch_timeout(self) -> Self:
        if self.startup_grace >= self.launch_timeout:
            msg = "startup_grace must be shorter than launch_timeout"
            raise ValueError(msg)
        return self

    @property
    def program(self) -> str:
        """Return the display name of the tunnel binary."""
        return Path(self.command[0]).name


class StorageConfig(BaseModel):
    """Persistence configuration section.

    Attributes:
        state_file: JSON file holding instance ids and arguments. Empty keeps
            instances in memory only.
    """

    model_config: ClassVar[ConfigDict] = _SECTION_CONFIG

    state_file: str = ""

    @property
    def state_path(self) -> Path | None:
        """Return the state file as a path, or None when persistence is off."""
        return Path(self.state_file).expanduser() if self.state_file else None


class AuthConfig(BaseModel):
    """Authorization configuration section.

    Attributes:
        token: Bearer token required by mutating and reveal endpoints. Empty
            disables authorization.
    """

    model_config: ClassVar[ConfigDict] = _SECTION_CONFIG

    token: str = Field(default="", repr=False)


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
    """

    model_config: ClassVar[ConfigDict] = _SECTION_CONFIG

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    file: str = ""


class Config(BaseModel):
    """Merged tnetctl configuration.

    Example:
        >>> config = Config.from_dict({"server": {"port": 9000}})
        >>> config.server.port
        9000
        >>> config.process.command
        ('tnet',)
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    server: ServerConfig = Field(default_factory=ServerConfig)
    process: ProcessConfig = Field(default_factory=ProcessConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create configuration from a dictionary merged over the defaults.

        Raises:
            ConfigError: If a value fails validation.
        """
        merged = deep_merge(DEFAULT_CONFIG, data)
        try:
            return cls.model_validate(merged)
        except pydantic.ValidationError as e:
            issues = "; ".join(
                f"{'.'.join(str(part) for part in detail['loc'])}: {detail['msg']}"
                for detail in e.errors(include_input=False, include_url=False)
            )
            msg = f"Invalid configuration: {issues}"
            raise ConfigError(msg) from None

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Load configuration from a single TOML file over the defaults.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigError: If a value fails validation.
        """
        return cls.from_dict(read_toml_file(path))

    @classmethod
    def load(
        cls,
        *,
        user_config_path: Path | None = None,
        config_path: Path | None = None,
        include_env: bool = True,
        cli_overrides: dict[str, Any] | None = None,
    ) -> Self:
        """Load merged configuration from all sources.

        Sources are merged in precedence order: defaults, user config file,
        explicit config file, environment, CLI overrides.

        Args:
            user_config_path: User config file; skipped if it does not exist.
            config_path: Explicit config file; must exist.
            include_env: Include TNETCTL_SECTION__KEY environment variables.
            cli_overrides: Nested dict of CLI argument overrides.

        Returns:
            Merged configuration object.

        Raises:
            FileNotFoundError: If ``config_path`` does not exist.
            ConfigLoadError: If a config file cannot be parsed.
            ConfigError: If the merged config fails validation.
        """
        data: dict[str, Any] = {}
        if user_config_path is not None and user_config_path.is_file():
            data = deep_merge(data, read_toml_file(user_config_path))
        if config_path is not None:
            data = deep_merge(data, read_toml_file(config_path))
        if include_env:
            data = deep_merge(data, parse_env_vars())
        if cli_overrides:
            data = deep_merge(data, cli_overrides)
        return cls.from_dict(data)

    def to_toml(self, *, reveal_secrets: bool = False) -> str:
        """Render the configuration as TOML.

        Args:
            reveal_secrets: Include the auth token instead of a placeholder.

        Returns:
            TOML text that `from_file` reads back.
        """
        data = self.model_dump(mode="json")
        if data["auth"]["token"] and not reveal_secrets:
            data["auth"]["token"] = "**********"
        return tomli_w.dumps(data)
