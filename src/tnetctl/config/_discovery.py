"""Configuration file discovery."""

from pathlib import Path

import platformdirs

CONFIG_FILE_NAME = "tnetctl.toml"


def get_user_config_path() -> Path:
    r"""Get the platform-specific user config file path.

    - Linux: ``~/.config/tnetctl/tnetctl.toml``
    - macOS: ``~/Library/Application Support/tnetctl/tnetctl.toml``
    - Windows: ``%APPDATA%\tnetctl\tnetctl.toml``

    The path is returned regardless of whether the file exists.
    """
    return platformdirs.user_config_path("tnetctl") / CONFIG_FILE_NAME
