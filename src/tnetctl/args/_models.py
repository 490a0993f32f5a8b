"""Structured service configuration submitted by the dashboard.

A configuration only lives for the duration of a create request. It is a
discriminated union on ``inputMode``: either structured form fields, whose
shape depends on the service kind, or a raw direct-mode command line.
"""

from collections.abc import Mapping
from typing import Annotated, ClassVar, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from tnetctl.enums import ServiceKind
from tnetctl.exceptions import ValidationError

TunnelMode = Literal["listen", "connect"]
ProxyMode = Literal["proxy", "execute"]


class _ConfigurationModel(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class _TunnelFields(_ConfigurationModel):
    """Fields shared by agent and proxy forms.

    Attributes:
        tunnel_mode: Whether the instance listens for or dials the tunnel.
        tunnel_listen: Tunnel listen address, used when tunnel_mode is "listen".
        tunnel_connect: Tunnel connect address, used when tunnel_mode is "connect".
        crypt_key: Optional secret passed to the tunnel binary.
    """

    input_mode: Literal["form"] = "form"
    tunnel_mode: TunnelMode = "listen"
    tunnel_listen: str | None = None
    tunnel_connect: str | None = None
    crypt_key: str | None = Field(default=None, repr=False)


class AgentFormConfiguration(_TunnelFields):
    """Form input for an agent instance."""

    enabled_execute: bool = False


class ProxyFormConfiguration(_TunnelFields):
    """Form input for a proxy instance.

    Attributes:
        mode: Forward TCP traffic ("proxy") or run a remote command ("execute").
        listen: Local listen address in proxy mode.
        connect: Address the agent connects to in proxy mode.
        execute: Shell command in execute mode.
        raw_pty: Allocate a raw PTY in execute mode.
        dump_dir: Optional traffic dump directory.
    """

    mode: ProxyMode = "proxy"
    listen: str | None = None
    connect: str | None = None
    execute: str | None = None
    raw_pty: bool = False
    dump_dir: str | None = None


class DirectConfiguration(_ConfigurationModel):
    """Raw command-line input.

    Attributes:
        raw_command: Command line parsed with the direct-mode tokenizer.
    """

    input_mode: Literal["direct"]
    raw_command: str = Field(repr=False)


FormConfiguration = AgentFormConfiguration | ProxyFormConfiguration
ServiceConfiguration = FormConfiguration | DirectConfiguration

AgentConfiguration = Annotated[
    AgentFormConfiguration | DirectConfiguration,
    Field(discriminator="input_mode"),
]
ProxyConfiguration = Annotated[
    ProxyFormConfiguration | DirectConfiguration,
    Field(discriminator="input_mode"),
]

_ADAPTERS: dict[ServiceKind, TypeAdapter[ServiceConfiguration]] = {
    ServiceKind.AGENT: TypeAdapter(AgentConfiguration),
    ServiceKind.PROXY: TypeAdapter(ProxyConfiguration),
}


def _describe_errors(error: pydantic.ValidationError) -> str:
    """Summarize pydantic errors without echoing submitted values."""
    parts: list[str] = []
    for detail in error.errors(include_input=False, include_url=False):
        location = ".".join(str(part) for part in detail["loc"]) or "configuration"
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)


def parse_configuration(
    kind: ServiceKind, data: Mapping[str, object]
) -> ServiceConfiguration:
    """Validate a raw configuration payload for the given kind.

    Args:
        kind: The service kind the configuration is for.
        data: The decoded JSON payload.

    Returns:
        The validated configuration.

    Raises:
        ValidationError: If the payload does not match the kind's schema.
    """
    try:
        return _ADAPTERS[kind].validate_python(dict(data))
    except pydantic.ValidationError as e:
        msg = f"Invalid {ServiceKind(kind).value} configuration: {_describe_errors(e)}"
        # Drop the pydantic cause: its repr embeds submitted values, crypt key included
        raise ValidationError(msg, field="config") from None
