import tomllib
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from tnetctl.config import Config, LogFormat, LogLevel
from tnetctl.exceptions import ConfigError

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


class TestConfigDefaults:
    def test_defaults(self) -> None:
        config = Config.from_dict({})

        assert config.server.host == "0.0.0.0"
        assert config.server.port == 8080
        assert config.server.status_interval == 10.0
        assert config.process.command == ("tnet",)
        assert config.process.program == "tnet"
        assert config.storage.state_path is None
        assert config.auth.token == ""
        assert config.logging.level == LogLevel.INFO
        assert config.logging.format == LogFormat.JSON

    def test_program_is_basename(self) -> None:
        config = Config.from_dict({"process": {"command": ["/opt/bin/tnet", "-q"]}})

        assert config.process.program == "tnet"

    def test_state_path_expands_user(self) -> None:
        config = Config.from_dict({"storage": {"state_file": "~/state.json"}})

        assert config.storage.state_path == Path("~/state.json").expanduser()


class TestConfigValidation:
    @pytest.mark.parametrize(
        "data",
        [
            {"server": {"port": 0}},
            {"server": {"port": 70000}},
            {"server": {"status_interval": 0}},
            {"process": {"command": []}},
            {"process": {"launch_timeout": -1}},
            {"process": {"startup_grace": 10, "launch_timeout": 5}},
            {"logging": {"level": "loud"}},
        ],
    )
    def test_invalid_values(self, data: dict[str, object]) -> None:
        with pytest.raises(ConfigError, match="Invalid configuration"):
            _ = Config.from_dict(data)

    def test_error_hides_token(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            _ = Config.from_dict({"auth": {"token": ["s3cr3t"]}})

        assert "s3cr3t" not in str(exc_info.value)

    def test_unknown_keys_ignored(self) -> None:
        config = Config.from_dict({"extra": 1, "server": {"nope": True}})

        assert config.server.port == 8080

    def test_token_hidden_from_repr(self) -> None:
        config = Config.from_dict({"auth": {"token": "s3cr3t"}})

        assert "s3cr3t" not in repr(config)


class TestConfigLoad:
    def test_precedence(
        self, fs: "FakeFilesystem", monkeypatch: pytest.MonkeyPatch
    ) -> None:
        user_path = Path("/home/user/.config/tnetctl/tnetctl.toml")
        explicit_path = Path("/srv/tnetctl.toml")
        _ = fs.create_file(
            user_path, contents='[server]\nport = 1000\nhost = "10.0.0.1"\n'
        )
        _ = fs.create_file(explicit_path, contents="[server]\nport = 2000\n")
        monkeypatch.setenv("TNETCTL_AUTH__TOKEN", "from-env")

        config = Config.load(
            user_config_path=user_path,
            config_path=explicit_path,
            cli_overrides={"auth": {"token": "from-cli"}},
        )

        assert config.server.host == "10.0.0.1"
        assert config.server.port == 2000
        assert config.auth.token == "from-cli"

    def test_env_over_files(
        self, fs: "FakeFilesystem", monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = Path("/srv/tnetctl.toml")
        _ = fs.create_file(path, contents="[process]\nkill_after = 1.0\n")
        monkeypatch.setenv("TNETCTL_PROCESS__KILL_AFTER", "3.5")

        config = Config.load(config_path=path)

        assert config.process.kill_after == 3.5

    def test_missing_user_config_is_skipped(self, fs: "FakeFilesystem") -> None:
        config = Config.load(user_config_path=Path("/nope.toml"), include_env=False)

        assert config == Config.from_dict({})

    def test_missing_explicit_config_raises(self, fs: "FakeFilesystem") -> None:
        with pytest.raises(FileNotFoundError):
            _ = Config.load(config_path=Path("/nope.toml"))


class TestToToml:
    def test_round_trips(self, fs: "FakeFilesystem") -> None:
        config = Config.from_dict(
            {"server": {"port": 9000}, "process": {"command": ["tnet", "-v"]}}
        )
        path = Path("/out.toml")
        _ = fs.create_file(path, contents=config.to_toml(reveal_secrets=True))

        assert Config.from_file(path) == config

    def test_masks_token(self) -> None:
        config = Config.from_dict({"auth": {"token": "s3cr3t"}})

        data = tomllib.loads(config.to_toml())

        assert data["auth"]["token"] == "**********"
        assert "s3cr3t" in config.to_toml(reveal_secrets=True)
