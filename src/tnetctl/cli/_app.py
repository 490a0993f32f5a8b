"""The command-line interface for tnetctl."""

from cyclopts import App
from rich.console import Console

from tnetctl import __version__

from ._commands import register_commands


def _build_app(**options: object) -> App:
    app = App(
        name="tnetctl",
        help="Control plane for tunnel agents and proxies.",
        version=__version__,
        help_on_error=True,
        **options,  # pyright: ignore[reportArgumentType]
    )
    register_commands(app)
    return app


app = _build_app()


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Build an isolated CLI app, used by tests to capture output."""
    return _build_app(
        console=console or Console(),
        error_console=error_console or Console(stderr=True),
        exit_on_error=exit_on_error,
    )


def main() -> None:
    """Run the tnetctl CLI."""
    app()
