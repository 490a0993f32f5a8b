import sys
from collections.abc import Callable
from pathlib import Path

import anyio
import pytest


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


def python_command(script: str) -> tuple[str, ...]:
    """Return a command prefix running ``script`` with the current interpreter.

    The supervisor appends the kind token and instance arguments, which the
    script sees as ``sys.argv[1:]``.
    """
    return (sys.executable, "-c", script)


async def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll ``predicate`` until it holds, failing after ``timeout`` seconds."""
    with anyio.fail_after(timeout):
        while not predicate():
            await anyio.sleep(0.01)
