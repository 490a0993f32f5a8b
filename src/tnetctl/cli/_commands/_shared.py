"""Output and exit helpers shared by the tnetctl commands."""

from enum import IntEnum
from typing import Never

import orjson
from rich.console import Console
from rich.markup import escape

from tnetctl.args import mask_text


class ExitCode(IntEnum):
    """Process exit status of a tnetctl command."""

    SUCCESS = 0
    # Configuration file missing or unreadable
    LOAD_ERROR = 1
    # Rejected arguments or service configuration
    VALIDATION_ERROR = 2
    INTERNAL_ERROR = 5


def format_json(data: object, *, indent: bool = True) -> str:
    """Serialize command output with orjson, two-space indented by default."""
    return orjson.dumps(data, option=orjson.OPT_INDENT_2 if indent else 0).decode()


def print_json(data: object) -> None:
    """Write ``data`` to stdout as JSON, followed by a newline."""
    print(format_json(data))  # noqa: T201


def get_error_console() -> Console:
    """Return a console that writes plain, unhighlighted text to stderr."""
    return Console(stderr=True, highlight=False)


def exit_with_error(
    error: Exception | str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Report ``error`` on stderr, crypt keys masked, and exit with ``code``.

    Raises:
        SystemExit: Always.
    """
    message = mask_text(str(error))
    (console or get_error_console()).print(
        f"[red]Error:[/red] {escape(message)}", soft_wrap=True
    )
    raise SystemExit(code)
