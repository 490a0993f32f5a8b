# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""Config command for viewing the effective configuration."""

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter

from tnetctl.config import safe_load_config

from ._shared import ExitCode, exit_with_error

app = App(name="config", help="Show the effective configuration", help_on_error=True)


@app.default
def show(
    *,
    config: Annotated[
        Path | None, Parameter(name="--config", help="Path to config file")
    ] = None,
    reveal_secrets: Annotated[
        bool, Parameter(help="Show the auth token unmasked.")
    ] = False,
) -> None:
    """Print the merged configuration as TOML."""
    loaded_config, error = safe_load_config(config_path=config)
    if error is not None:
        exit_with_error(error, ExitCode.LOAD_ERROR)
    print(loaded_config.to_toml(reveal_secrets=reveal_secrets), end="")  # noqa: T201
