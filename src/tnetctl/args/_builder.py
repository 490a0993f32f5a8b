"""Translate service configurations into tunnel argument lists.

Form-mode tokens are always emitted in this order:

1. ``--tunnel-listen=`` or ``--tunnel-connect=``, chosen by the tunnel mode
2. proxy mode flags: ``--listen=`` / ``--connect=``, or ``--execute=`` and
   ``--raw-pty``
3. ``--crypt-key=``
4. ``--enabled-execute`` (agent) or ``--dump-dir=`` (proxy)

Empty fields contribute no token at all.
"""

from collections.abc import Iterable

from tnetctl.enums import ServiceKind
from tnetctl.exceptions import ValidationError

from ._masking import CRYPT_KEY_PREFIX
from ._models import (
    AgentFormConfiguration,
    DirectConfiguration,
    ProxyFormConfiguration,
    ServiceConfiguration,
)
from ._tokenize import parse_direct_command, strip_kind_token


def _flag(name: str, value: str | None) -> list[str]:
    return [f"--{name}={value}"] if value else []


def _tunnel_args(config: AgentFormConfiguration | ProxyFormConfiguration) -> list[str]:
    if config.tunnel_mode == "listen":
        return _flag("tunnel-listen", config.tunnel_listen)
    return _flag("tunnel-connect", config.tunnel_connect)


def _crypt_key_args(config: AgentFormConfiguration | ProxyFormConfiguration) -> list[str]:
    return [f"{CRYPT_KEY_PREFIX}{config.crypt_key}"] if config.crypt_key else []


def build_agent_args(config: AgentFormConfiguration) -> list[str]:
    """Build the argument list for an agent form."""
    args = _tunnel_args(config)
    args += _crypt_key_args(config)
    if config.enabled_execute:
        args.append("--enabled-execute")
    return args


def build_proxy_args(config: ProxyFormConfiguration) -> list[str]:
    """Build the argument list for a proxy form."""
    args = _tunnel_args(config)
    if config.mode == "proxy":
        args += _flag("listen", config.listen)
        args += _flag("connect", config.connect)
    else:
        args += _flag("execute", config.execute)
        if config.raw_pty:
            args.append("--raw-pty")
    args += _crypt_key_args(config)
    args += _flag("dump-dir", config.dump_dir)
    return args


def build_args(kind: ServiceKind, config: ServiceConfiguration) -> list[str]:
    """Compile a configuration into the ordered argument list for ``kind``.

    Args:
        kind: The service kind the arguments are for.
        config: A validated form or direct-mode configuration.

    Returns:
        The argument list, without the kind token.

    Raises:
        ValidationError: If a direct-mode command line has an unterminated
            quote, or if a form configuration belongs to the other kind.
    """
    if isinstance(config, DirectConfiguration):
        return parse_direct_command(config.raw_command)

    if kind == ServiceKind.AGENT and isinstance(config, AgentFormConfiguration):
        return build_agent_args(config)
    if kind == ServiceKind.PROXY and isinstance(config, ProxyFormConfiguration):
        return build_proxy_args(config)

    msg = f"{type(config).__name__} cannot configure a {ServiceKind(kind).value}"
    raise ValidationError(msg, field="config")


def normalize_args(args: Iterable[str]) -> list[str]:
    """Validate a submitted argument list before it is stored.

    Empty and whitespace-only tokens are dropped and a leading kind token is
    stripped; the remaining tokens are kept verbatim.

    Args:
        args: Argument tokens from a request or from `build_args`.

    Returns:
        The argument list to store.

    Raises:
        ValidationError: If no argument is left.
    """
    tokens = strip_kind_token([arg for arg in args if arg.strip()])
    if not tokens:
        msg = "Argument list is empty"
        raise ValidationError(msg, field="args", value=[])
    return tokens
