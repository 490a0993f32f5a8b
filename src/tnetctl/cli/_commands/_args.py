# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""Argument list commands: keygen, parse and build."""

from pathlib import Path
from typing import Annotated, Literal

from cyclopts import App, Parameter

from tnetctl.args import (
    build_args,
    format_command,
    generate_crypt_key,
    mask_args,
    normalize_args,
    parse_configuration,
    parse_direct_command,
)
from tnetctl.config import safe_load_config
from tnetctl.enums import ServiceKind
from tnetctl.exceptions import ValidationError

from ._shared import ExitCode, exit_with_error, print_json

keygen_app = App(name="keygen", help="Generate a random crypt key", help_on_error=True)
parse_app = App(
    name="parse", help="Parse a direct-mode command line", help_on_error=True
)
build_app = App(
    name="build", help="Build arguments from form fields", help_on_error=True
)

ConfigOption = Annotated[
    Path | None, Parameter(name="--config", help="Path to config file")
]


def _print_args(
    kind: ServiceKind, args: list[str], *, reveal: bool, config_path: Path | None
) -> None:
    loaded_config, _ = safe_load_config(config_path=config_path)
    shown = args if reveal else mask_args(args)
    command = format_command(loaded_config.process.program, kind, shown)
    print_json({"args": shown, "command": command})


@keygen_app.default
def keygen() -> None:
    """Print a random 13-digit crypt key."""
    print(generate_crypt_key())  # noqa: T201


@parse_app.default
def parse(
    kind: ServiceKind,
    command_line: Annotated[str, Parameter(allow_leading_hyphen=True)],
    /,
    *,
    reveal: Annotated[bool, Parameter(help="Show crypt keys unmasked.")] = False,
    config: ConfigOption = None,
) -> None:
    """Tokenize a command line the way the dashboard's direct mode does.

    Args:
        kind: Instance kind the arguments are for.
        command_line: The command line, as a single argument.
        reveal: Show crypt keys unmasked.
        config: Config file naming the tunnel binary.
    """
    try:
        args = normalize_args(parse_direct_command(command_line))
    except ValidationError as e:
        exit_with_error(e, ExitCode.VALIDATION_ERROR)
    _print_args(kind, args, reveal=reveal, config_path=config)


@build_app.default
def build(  # noqa: PLR0913
    kind: ServiceKind,
    /,
    *,
    tunnel_mode: Literal["listen", "connect"] = "listen",
    tunnel_listen: str | None = None,
    tunnel_connect: str | None = None,
    crypt_key: str | None = None,
    enabled_execute: Annotated[bool, Parameter(help="Agent only.")] = False,
    mode: Annotated[
        Literal["proxy", "execute"] | None, Parameter(help="Proxy only.")
    ] = None,
    listen: Annotated[str | None, Parameter(help="Proxy only.")] = None,
    connect: Annotated[str | None, Parameter(help="Proxy only.")] = None,
    execute: Annotated[str | None, Parameter(help="Proxy only.")] = None,
    raw_pty: Annotated[bool, Parameter(help="Proxy only.")] = False,
    dump_dir: Annotated[str | None, Parameter(help="Proxy only.")] = None,
    reveal: Annotated[bool, Parameter(help="Show crypt keys unmasked.")] = False,
    config: ConfigOption = None,
) -> None:
    """Build the argument list for form fields, in dashboard order.

    Args:
        kind: Instance kind the arguments are for.
        tunnel_mode: Listen for or connect to the tunnel.
        tunnel_listen: Tunnel listen address.
        tunnel_connect: Tunnel connect address.
        crypt_key: Crypt key passed to the tunnel binary.
        enabled_execute: Allow remote command execution.
        mode: Forward TCP traffic or run a remote command.
        listen: Local listen address in proxy mode.
        connect: Address the agent connects to in proxy mode.
        execute: Shell command in execute mode.
        raw_pty: Allocate a raw PTY in execute mode.
        dump_dir: Traffic dump directory.
        reveal: Show crypt keys unmasked.
        config: Config file naming the tunnel binary.
    """
    fields: dict[str, object] = {
        "inputMode": "form",
        "tunnelMode": tunnel_mode,
        "tunnelListen": tunnel_listen,
        "tunnelConnect": tunnel_connect,
        "cryptKey": crypt_key,
        "mode": mode,
        "listen": listen,
        "connect": connect,
        "execute": execute,
        "dumpDir": dump_dir,
    }
    if enabled_execute:
        fields["enabledExecute"] = True
    if raw_pty:
        fields["rawPty"] = True

    try:
        form = parse_configuration(
            kind, {key: value for key, value in fields.items() if value is not None}
        )
        args = normalize_args(build_args(kind, form))
    except ValidationError as e:
        exit_with_error(e, ExitCode.VALIDATION_ERROR)
    _print_args(kind, args, reveal=reveal, config_path=config)
