"""Shared test fixtures for tnetctl tests."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, cast

import pytest
import structlog
from rich.console import Console
from structlog.testing import CapturingLogger

from tnetctl.manager import (
    FakeProcessSupervisor,
    InstanceEvent,
    InstanceEventType,
    InstanceStore,
    LifecycleController,
)

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


@dataclass(slots=True)
class RecordingSink:
    """Output sink that keeps every line and event in memory."""

    lines: list[tuple[str, int, str, str]] = field(default_factory=list)
    events: list[InstanceEvent] = field(default_factory=list)

    async def write_line(
        self,
        label: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        self.lines.append((label, pid, stream, line))

    async def write_event(self, event: InstanceEvent) -> None:
        self.events.append(event)

    def event_types(self) -> list[InstanceEventType]:
        return [event.event_type for event in self.events]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def console() -> Console:
    return Console(
        width=70,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def log_output() -> CapturingLogger:
    return CapturingLogger()


@pytest.fixture
def logger(log_output: CapturingLogger) -> "FilteringBoundLogger":
    """Return a logger whose calls are recorded by ``log_output``."""
    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            log_output,
            processors=[],
            wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
            context_class=dict,
        ),
    )


@pytest.fixture
def supervisor() -> FakeProcessSupervisor:
    return FakeProcessSupervisor()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def store() -> InstanceStore:
    return InstanceStore()


MakeController = Callable[..., LifecycleController]


@pytest.fixture
def make_controller(
    store: InstanceStore,
    supervisor: FakeProcessSupervisor,
    sink: RecordingSink,
    logger: "FilteringBoundLogger",
) -> MakeController:
    """Return a factory for controllers over the shared fake supervisor."""

    def _make(**kwargs: float) -> LifecycleController:
        return LifecycleController(
            store,
            supervisor,
            output_sink=sink,
            logger=logger,
            **kwargs,
        )

    return _make


@pytest.fixture
def controller(make_controller: MakeController) -> LifecycleController:
    return make_controller()
