"""tnetctl CLI commands."""
# pyright: reportUnusedCallResult=false

from typing import TYPE_CHECKING

from ._args import build_app, keygen_app, parse_app
from ._config import app as config_app
from ._serve import app as serve_app
from ._shared import (
    ExitCode,
    exit_with_error,
    format_json,
    get_error_console,
    print_json,
)

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "ExitCode",
    "build_app",
    "config_app",
    "exit_with_error",
    "format_json",
    "get_error_console",
    "keygen_app",
    "parse_app",
    "print_json",
    "register_commands",
    "serve_app",
]


def register_commands(app: "App") -> None:  # noqa: UP037
    """Register all subcommands on ``app``."""
    app.command(serve_app)
    app.command(keygen_app)
    app.command(parse_app)
    app.command(build_app)
    app.command(config_app)
