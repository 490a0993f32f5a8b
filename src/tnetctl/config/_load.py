"""Configuration loading for command entry points."""

import os
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Any, Never

from rich.console import Console
from rich.markup import escape

from tnetctl.exceptions import ConfigError

from ._discovery import get_user_config_path
from ._models import Config

STRICT_ENV_VAR = "TNETCTL_STRICT_CONFIG"


def _stderr() -> Console:
    return Console(stderr=True, highlight=False, soft_wrap=True)


def _abort(message: str) -> Never:
    _stderr().print(f"Error: {escape(message)}")
    raise SystemExit(1)


def safe_load_config(
    *,
    config_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
) -> tuple[Config, str | None]:
    """Load the merged configuration without raising.

    An explicit ``config_path`` that does not exist always aborts. Any other
    load or validation failure is reported on stderr and the result falls
    back to defaults plus ``cli_overrides``, unless ``TNETCTL_STRICT_CONFIG``
    is ``1``, in which case it aborts too.

    Args:
        config_path: Explicit configuration file (the ``--config`` flag).
        cli_overrides: Nested overrides taken from command-line flags.

    Returns:
        The configuration and the failure message, which is None when the
        configured sources loaded cleanly.

    Raises:
        SystemExit: With status 1 when loading aborts.
    """
    if config_path is not None and not config_path.exists():
        _abort(f"Config file not found: {config_path}")

    try:
        config = Config.load(
            user_config_path=get_user_config_path(),
            config_path=config_path,
            cli_overrides=cli_overrides,
        )
    except (ConfigError, FileNotFoundError) as e:
        if os.environ.get(STRICT_ENV_VAR) == "1":
            _abort(str(e))
        _stderr().print(f"Warning: Failed to load config: {escape(str(e))}")
        return Config.from_dict(cli_overrides or {}), str(e)

    return config, None
