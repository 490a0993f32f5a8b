from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from rich.console import Console

from tnetctl.cli import create_app

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.fixture(autouse=True)
def user_config(
    tmp_path: Path, mocker: "MockerFixture", monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Point user config discovery at an empty temporary directory."""
    path = tmp_path / "config" / "tnetctl.toml"
    _ = mocker.patch("tnetctl.config._load.get_user_config_path", return_value=path)
    monkeypatch.delenv("TNETCTL_STRICT_CONFIG", raising=False)
    return path


@pytest.fixture
def tnetctl_cli(console: Console) -> Callable[..., int]:
    """Return a callable that runs the CLI and returns its exit code."""
    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        try:
            app(args)
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run
