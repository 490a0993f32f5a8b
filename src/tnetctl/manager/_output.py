"""Console rendering of tunnel process output and lifecycle events."""

from typing import Literal, final

from rich.console import Console
from rich.style import Style
from rich.text import Text

from ._models import InstanceEvent, InstanceEventType

_LABEL_STYLE = Style(color="blue", bold=True)
_DETAIL_STYLE = Style(dim=True)

_STREAM_STYLES: dict[str, Style] = {
    "stdout": Style(),
    "stderr": Style(color="red", dim=True),
}

_EVENT_STYLES: dict[InstanceEventType, Style] = {
    InstanceEventType.CREATED: Style(color="cyan"),
    InstanceEventType.STARTED: Style(color="green", bold=True),
    InstanceEventType.STOPPED: Style(color="yellow"),
    InstanceEventType.EXITED: Style(color="red"),
    InstanceEventType.FAILED: Style(color="red", bold=True),
    InstanceEventType.DELETED: Style(color="magenta", dim=True),
}


@final
class ConsoleOutputSink:
    """Writes every instance's output to one console.

    Process lines read ``[kind:id:pid] line``; events read
    ``[kind:id] EVENT (pid=..) exit_code=.. - message``. Lines arrive
    already masked, and are printed without markup interpretation.
    """

    __slots__ = ("_console",)

    def __init__(self, console: Console | None = None) -> None:
        self._console = console if console is not None else Console(stderr=True)

    def _emit(self, label: str, *parts: tuple[str, Style]) -> None:
        text = Text(f"[{label}]", style=_LABEL_STYLE)
        for content, style in parts:
            _ = text.append(content, style=style)
        self._console.print(text, soft_wrap=True)

    async def write_line(
        self,
        label: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        """Print one line of process output under its ``kind:id:pid`` label."""
        self._emit(f"{label}:{pid}", (f" {line}", _STREAM_STYLES[stream]))

    async def write_event(self, event: InstanceEvent) -> None:
        """Print a lifecycle event."""
        style = _EVENT_STYLES.get(event.event_type, Style())
        parts: list[tuple[str, Style]] = [(f" {event.event_type.value.upper()}", style)]
        if event.pid is not None:
            parts.append((f" (pid={event.pid})", _DETAIL_STYLE))
        if event.exit_code is not None:
            parts.append((f" exit_code={event.exit_code}", _DETAIL_STYLE))
        if event.message:
            parts.append((f" - {event.message}", style))
        self._emit(f"{event.kind.value}:{event.instance_id}", *parts)
