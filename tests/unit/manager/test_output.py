import pytest
from rich.console import Console

from tnetctl.enums import ServiceKind
from tnetctl.manager import ConsoleOutputSink, InstanceEvent, InstanceEventType

pytestmark = pytest.mark.anyio


class TestConsoleOutputSink:
    async def test_write_line_prefixes_label_and_pid(self, console: Console) -> None:
        sink = ConsoleOutputSink(console)

        with console.capture() as capture:
            await sink.write_line("agent:a1", 4242, "stdout", "listening on :9000")

        assert capture.get().strip() == "[agent:a1:4242] listening on :9000"

    async def test_write_line_stderr(self, console: Console) -> None:
        sink = ConsoleOutputSink(console)

        with console.capture() as capture:
            await sink.write_line("proxy:p1", 7, "stderr", "boom")

        assert "[proxy:p1:7] boom" in capture.get()

    async def test_write_event(self, console: Console) -> None:
        sink = ConsoleOutputSink(console)
        event = InstanceEvent(
            kind=ServiceKind.AGENT,
            instance_id="a1",
            event_type=InstanceEventType.EXITED,
            timestamp="2026-01-01T00:00:00Z",
            pid=10,
            exit_code=1,
            message="exited with code 1",
        )

        with console.capture() as capture:
            await sink.write_event(event)

        assert capture.get().strip() == (
            "[agent:a1] EXITED (pid=10) exit_code=1 - exited with code 1"
        )

    async def test_write_event_without_details(self, console: Console) -> None:
        sink = ConsoleOutputSink(console)
        event = InstanceEvent(
            kind=ServiceKind.PROXY,
            instance_id="p1",
            event_type=InstanceEventType.CREATED,
            timestamp="2026-01-01T00:00:00Z",
        )

        with console.capture() as capture:
            await sink.write_event(event)

        assert capture.get().strip() == "[proxy:p1] CREATED"
