"""Instance state and lifecycle management for agents and proxies.

This package owns the authoritative state of every managed instance and the
transitions between stopped and running.

Key Components:
    - InstanceStore: In-memory instance table with optional JSON persistence
    - LifecycleController: create/start/stop/restart/delete under per-instance locks
    - SubprocessSupervisor: Launches the tunnel binary and streams its output
    - ConsoleOutputSink: Console output with ``[kind:id:pid]`` prefixes
    - FakeProcessSupervisor: In-memory supervisor for tests

Example:
    >>> import anyio
    >>> from tnetctl.enums import ServiceKind
    >>> from tnetctl.manager import (
    ...     FakeProcessSupervisor,
    ...     InstanceStore,
    ...     LifecycleController,
    ... )
    >>> async def main() -> None:
    ...     controller = LifecycleController(InstanceStore(), FakeProcessSupervisor())
    ...     instance = await controller.create_from_args(
    ...         ServiceKind.AGENT, ["--tunnel-listen=0.0.0.0:9000"]
    ...     )
    ...     await controller.stop(ServiceKind.AGENT, instance.id)
    >>> anyio.run(main)
"""

from ._controller import LifecycleController
from ._fake import FakeProcessHandle, FakeProcessSupervisor
from ._models import InstanceEvent, InstanceEventType, ServiceInstance
from ._output import ConsoleOutputSink
from ._process import SubprocessHandle, SubprocessSupervisor
from ._protocol import OutputSink, ProcessHandle, ProcessSupervisor
from ._store import InstanceStore, generate_id

__all__ = [
    "ConsoleOutputSink",
    "FakeProcessHandle",
    "FakeProcessSupervisor",
    "InstanceEvent",
    "InstanceEventType",
    "InstanceStore",
    "LifecycleController",
    "OutputSink",
    "ProcessHandle",
    "ProcessSupervisor",
    "ServiceInstance",
    "SubprocessHandle",
    "SubprocessSupervisor",
    "generate_id",
]
