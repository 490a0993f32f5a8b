"""Configuration loading for tnetctl.

Configuration is merged from, in increasing precedence: built-in defaults,
the user config file, an explicit ``--config`` file, ``TNETCTL_SECTION__KEY``
environment variables, and CLI overrides.

Example:
    >>> from tnetctl.config import Config
    >>> Config.from_dict({}).server.status_interval
    10.0
"""

from ._defaults import DEFAULT_CONFIG
from ._discovery import CONFIG_FILE_NAME, get_user_config_path
from ._load import safe_load_config
from ._loader import (
    ENV_PREFIX,
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    AuthConfig,
    Config,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ProcessConfig,
    ServerConfig,
    StorageConfig,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_CONFIG",
    "ENV_PREFIX",
    "AuthConfig",
    "Config",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ProcessConfig",
    "ServerConfig",
    "StorageConfig",
    "deep_merge",
    "get_user_config_path",
    "parse_env_vars",
    "parse_string_value",
    "read_toml_file",
    "safe_load_config",
    "set_nested_key",
]
