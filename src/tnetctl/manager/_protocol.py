"""Protocol definitions for the lifecycle manager.

This module defines the interfaces that decouple the lifecycle controller
from process control and output handling:
- ProcessHandle: A launched process as seen by the controller
- ProcessSupervisor: Launches, terminates and probes tunnel processes
- OutputSink: Consumes process output and lifecycle events
"""

from collections.abc import Sequence  # noqa: TC003 - Used in runtime type annotations
from typing import Literal, Protocol, runtime_checkable

from tnetctl.enums import ServiceKind  # noqa: TC001

from ._models import InstanceEvent  # noqa: TC001


@runtime_checkable
class ProcessHandle(Protocol):
    """Protocol for a launched process."""

    @property
    def pid(self) -> int | None:
        """Return the OS process ID, if known."""
        ...

    @property
    def returncode(self) -> int | None:
        """Return the exit code, or None while the process is alive."""
        ...


@runtime_checkable
class ProcessSupervisor(Protocol):
    """Protocol for the external process supervisor.

    The controller only ever calls these three operations and bounds the
    async ones with its own timeouts.
    """

    async def launch(
        self,
        kind: ServiceKind,
        instance_id: str,
        args: Sequence[str],
    ) -> ProcessHandle:
        """Launch the tunnel binary for an instance.

        A launch that raises or is cancelled leaves no process running.

        Args:
            kind: Kind of the instance, passed as the subcommand.
            instance_id: Id of the instance, used to label output.
            args: Instance arguments, passed verbatim.

        Returns:
            A handle to the launched process.

        Raises:
            ProcessLaunchError: If the process cannot be launched.
        """
        ...

    async def terminate(self, handle: ProcessHandle) -> None:
        """Terminate a launched process and wait for it to exit.

        Terminating a process that already exited is a no-op.

        Raises:
            ProcessTerminateError: If the process cannot be terminated.
        """
        ...

    def is_alive(self, handle: ProcessHandle) -> bool:
        """Return whether the process behind ``handle`` is still running."""
        ...


@runtime_checkable
class OutputSink(Protocol):
    """Protocol for consuming process output lines and lifecycle events.

    Implementations receive lines that were already masked.
    """

    async def write_line(
        self,
        label: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        """Write a line of process output.

        Args:
            label: ``kind:id`` label of the instance.
            pid: Process ID of the instance's process.
            stream: Which output stream the line came from.
            line: The output line (without trailing newline).
        """
        ...

    async def write_event(self, event: InstanceEvent) -> None:
        """Write an instance lifecycle event."""
        ...
