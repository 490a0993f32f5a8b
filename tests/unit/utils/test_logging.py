import logging
from pathlib import Path
from typing import TYPE_CHECKING

import orjson
import pytest

from tnetctl.utils import create_logger, log_level_from_string, mask_secrets

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TNETCTL_DEBUG", raising=False)
    monkeypatch.delenv("TNETCTL_LOG_LEVEL", raising=False)


class TestLogLevelFromString:
    def test_default_is_info(self) -> None:
        assert log_level_from_string() == logging.INFO

    def test_explicit_level(self) -> None:
        assert log_level_from_string("warning") == logging.WARNING

    def test_unknown_level_falls_back_to_info(self) -> None:
        assert log_level_from_string("chatty") == logging.INFO

    def test_env_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TNETCTL_LOG_LEVEL", "error")

        assert log_level_from_string() == logging.ERROR

    def test_argument_beats_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TNETCTL_LOG_LEVEL", "error")

        assert log_level_from_string("debug") == logging.DEBUG

    def test_debug_flag_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TNETCTL_DEBUG", "1")

        assert log_level_from_string("error") == logging.DEBUG


class TestCreateLogger:
    def test_json_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = create_logger()

        logger.info("Instance started", instance_id="a1", pid=10)

        record = orjson.loads(capsys.readouterr().err)
        assert record["event"] == "Instance started"
        assert record["instance_id"] == "a1"
        assert record["pid"] == 10
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_filters_below_level(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = create_logger(level="warning")

        logger.info("hidden")
        logger.warning("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err

    def test_text_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = create_logger(log_format="text")

        logger.info("Instance stopped", instance_id="a1")

        err = capsys.readouterr().err
        assert "Instance stopped" in err
        assert "instance_id=a1" in err

    def test_writes_to_file(self, fs: "FakeFilesystem") -> None:
        log_file = Path("/var/log/tnetctl/tnetctl.log")
        logger = create_logger(log_file=str(log_file))

        logger.info("Dashboard API started")

        line = log_file.read_text().strip()
        assert orjson.loads(line)["event"] == "Dashboard API started"

    def test_masks_crypt_keys(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = create_logger()

        logger.warning(
            "Launch failed",
            error="tnet: bad flag --crypt-key=hunter2",
            args=["--tunnel-listen=:9000", "--crypt-key=hunter2"],
        )

        err = capsys.readouterr().err
        assert "hunter2" not in err
        record = orjson.loads(err)
        assert record["args"] == ["--tunnel-listen=:9000", "--crypt-key=**********"]
        assert record["error"] == "tnet: bad flag --crypt-key=**********"


class TestMaskSecrets:
    def test_leaves_other_values_alone(self) -> None:
        event = {"event": "Instance started", "pid": 7, "args": ["--raw-pty"]}

        assert mask_secrets(None, "info", dict(event)) == event
