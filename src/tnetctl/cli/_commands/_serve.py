# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""Dashboard API server command."""

from pathlib import Path
from typing import Annotated, Any, Literal

from cyclopts import App, Parameter

from tnetctl.config import safe_load_config, set_nested_key

app = App(name="serve", help="Run the dashboard API server", help_on_error=True)

LogLevel = Literal["debug", "info", "warning", "error"]


def build_overrides(**values: object) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Nest dotted CLI values into a config override dict, skipping None."""
    overrides: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for key_path, value in values.items():
        if value is not None:
            set_nested_key(overrides, key_path.replace("__", "."), value)
    return overrides


@app.default
def serve(  # noqa: PLR0913
    *,
    host: Annotated[str | None, Parameter(help="Bind socket to this host.")] = None,
    port: Annotated[int | None, Parameter(help="Bind socket to this port.")] = None,
    config: Annotated[
        Path | None, Parameter(name="--config", help="Path to config file")
    ] = None,
    token: Annotated[
        str | None,
        Parameter(help="Bearer token required by mutating endpoints."),
    ] = None,
    state_file: Annotated[
        str | None,
        Parameter(help="JSON file persisting instance ids and arguments."),
    ] = None,
    log_level: Annotated[LogLevel | None, Parameter(help="Log level.")] = None,
    access_log: Annotated[bool, Parameter(help="Enable access log.")] = False,
) -> None:
    """Run the dashboard API server using uvicorn."""
    import uvicorn  # noqa: PLC0415

    from tnetctl.server import create_app  # noqa: PLC0415

    overrides = build_overrides(
        server__host=host,
        server__port=port,
        auth__token=token,
        storage__state_file=state_file,
        logging__level=log_level,
    )
    loaded_config, _ = safe_load_config(config_path=config, cli_overrides=overrides)

    uvicorn.run(
        create_app(loaded_config),
        host=loaded_config.server.host,
        port=loaded_config.server.port,
        log_level=loaded_config.logging.level.value,
        access_log=access_log,
    )
