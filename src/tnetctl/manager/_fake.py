"""Fake process supervisor for testing.

This module provides a FakeProcessSupervisor class that implements the
ProcessSupervisor protocol without spawning real processes.
"""

# Sequence needed at runtime for method signatures
from collections.abc import Sequence
from dataclasses import dataclass, field

import anyio

from tnetctl.enums import ServiceKind
from tnetctl.exceptions import ProcessLaunchError, ProcessTerminateError

from ._protocol import ProcessHandle


@dataclass(slots=True)
class FakeProcessHandle:
    """Handle to a fake process.

    The process is alive until `exit` is called or it is terminated.
    """

    kind: ServiceKind
    instance_id: str
    args: tuple[str, ...]
    pid: int | None
    returncode: int | None = None

    def exit(self, code: int = 0) -> None:
        """Simulate the process exiting on its own."""
        self.returncode = code


@dataclass(slots=True)
class FakeProcessSupervisor:
    """Fake process supervisor for testing.

    Records every call and lets tests inject failures and delays:
    - launches/terminations record handles in call order
    - fail_launch / fail_terminate make the next calls raise
    - launch_delay / terminate_delay make calls sleep, to exercise timeouts
      and concurrency
    - terminate_leaves_alive makes failed terminations keep the process alive

    Example:
        >>> supervisor = FakeProcessSupervisor()
        >>> supervisor.fail_launch = True
    """

    fail_launch: bool = False
    fail_terminate: bool = False
    terminate_leaves_alive: bool = True
    launch_delay: float = 0.0
    terminate_delay: float = 0.0
    exit_code_on_terminate: int = -15
    launches: list[FakeProcessHandle] = field(default_factory=list)
    terminations: list[FakeProcessHandle] = field(default_factory=list)
    _next_pid: int = field(default=1000)

    @property
    def live(self) -> list[FakeProcessHandle]:
        """Return the handles whose process has not exited."""
        return [handle for handle in self.launches if handle.returncode is None]

    async def launch(
        self,
        kind: ServiceKind,
        instance_id: str,
        args: Sequence[str],
    ) -> FakeProcessHandle:
        """Record a launch and return a live handle.

        Raises:
            ProcessLaunchError: If ``fail_launch`` is set.
        """
        if self.launch_delay:
            await anyio.sleep(self.launch_delay)
        kind = ServiceKind(kind)
        if self.fail_launch:
            msg = f"Failed to launch {kind.value} {instance_id}: executable not found"
            raise ProcessLaunchError(msg, kind=kind.value, instance_id=instance_id)

        self._next_pid += 1
        handle = FakeProcessHandle(
            kind=kind,
            instance_id=instance_id,
            args=tuple(args),
            pid=self._next_pid,
        )
        self.launches.append(handle)
        return handle

    async def terminate(self, handle: ProcessHandle) -> None:
        """Record a termination and mark the process exited.

        Raises:
            ProcessTerminateError: If ``fail_terminate`` is set.
        """
        if not isinstance(handle, FakeProcessHandle):
            msg = f"Unsupported process handle: {type(handle).__name__}"
            raise TypeError(msg)
        if self.terminate_delay:
            await anyio.sleep(self.terminate_delay)
        if handle.returncode is not None:
            return
        if self.fail_terminate:
            if not self.terminate_leaves_alive:
                handle.exit(self.exit_code_on_terminate)
            msg = f"Failed to terminate {handle.kind.value}:{handle.instance_id}"
            raise ProcessTerminateError(
                msg, kind=handle.kind.value, instance_id=handle.instance_id
            )

        handle.exit(self.exit_code_on_terminate)
        self.terminations.append(handle)

    def is_alive(self, handle: ProcessHandle) -> bool:
        """Return whether the fake process has not exited."""
        return handle.returncode is None
