import pydantic
import pytest

from tnetctl.args import (
    AgentFormConfiguration,
    DirectConfiguration,
    ProxyFormConfiguration,
    parse_configuration,
)
from tnetctl.enums import ServiceKind
from tnetctl.exceptions import ValidationError


class TestParseConfiguration:
    def test_agent_form_from_camel_case(self) -> None:
        config = parse_configuration(
            ServiceKind.AGENT,
            {"inputMode": "form", "tunnelListen": ":9000", "enabledExecute": True},
        )

        assert isinstance(config, AgentFormConfiguration)
        assert config.tunnel_listen == ":9000"
        assert config.enabled_execute is True

    def test_proxy_form(self) -> None:
        config = parse_configuration(
            ServiceKind.PROXY,
            {"inputMode": "form", "mode": "execute", "execute": "id", "rawPty": True},
        )

        assert isinstance(config, ProxyFormConfiguration)
        assert config.mode == "execute"
        assert config.raw_pty is True

    def test_direct_mode(self) -> None:
        config = parse_configuration(
            ServiceKind.AGENT, {"inputMode": "direct", "rawCommand": "--x"}
        )

        assert isinstance(config, DirectConfiguration)
        assert config.raw_command == "--x"

    def test_missing_input_mode_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Invalid agent configuration"):
            _ = parse_configuration(ServiceKind.AGENT, {"tunnelListen": ":1"})

    def test_proxy_fields_rejected_for_agent(self) -> None:
        with pytest.raises(ValidationError, match="Invalid agent configuration"):
            _ = parse_configuration(
                ServiceKind.AGENT, {"inputMode": "form", "rawPty": True}
            )

    def test_unknown_tunnel_mode_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = parse_configuration(
                ServiceKind.PROXY, {"inputMode": "form", "tunnelMode": "both"}
            )

    def test_error_does_not_echo_crypt_key(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            _ = parse_configuration(
                ServiceKind.AGENT,
                {"inputMode": "form", "cryptKey": "topsecret", "bogus": 1},
            )

        assert "topsecret" not in str(exc_info.value)
        assert exc_info.value.__cause__ is None

    def test_crypt_key_hidden_from_repr(self) -> None:
        config = AgentFormConfiguration(crypt_key="topsecret")

        assert "topsecret" not in repr(config)

    def test_configurations_are_frozen(self) -> None:
        config = AgentFormConfiguration()

        with pytest.raises(pydantic.ValidationError):
            config.crypt_key = "x"  # pyright: ignore[reportAttributeAccessIssue]
