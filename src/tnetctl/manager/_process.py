"""Subprocess-backed process supervisor.

This module provides the SubprocessSupervisor class that launches the
tunnel binary for an instance, streams its output, and terminates it.
"""

import signal
import subprocess
from collections.abc import Sequence  # noqa: TC003 - Used in runtime type annotations
from typing import Literal, final

import anyio
import anyio.abc
from anyio.streams.text import TextReceiveStream

from tnetctl.args import mask_text
from tnetctl.enums import ServiceKind
from tnetctl.exceptions import ProcessLaunchError, ProcessTerminateError

from ._protocol import OutputSink, ProcessHandle  # noqa: TC001


@final
class SubprocessHandle:
    """A tunnel process launched by SubprocessSupervisor."""

    __slots__ = ("args", "instance_id", "kind", "process")

    def __init__(
        self,
        kind: ServiceKind,
        instance_id: str,
        args: Sequence[str],
        process: anyio.abc.Process,
    ) -> None:
        self.kind = kind
        self.instance_id = instance_id
        self.args = tuple(args)
        self.process = process

    @property
    def label(self) -> str:
        """Return the ``kind:id`` label used to prefix output."""
        return f"{self.kind.value}:{self.instance_id}"

    @property
    def pid(self) -> int | None:
        """Return the OS process ID."""
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        """Return the exit code, or None while the process is alive."""
        return self.process.returncode


@final
class SubprocessSupervisor:
    """Launches the tunnel binary as ``[*command, kind, *args]``.

    Output of every launched process is streamed, masked, to the output sink
    by a task running in ``task_group``. The task group must outlive every
    process launched through this supervisor; `terminate_all` should be
    awaited before the group exits.
    """

    __slots__ = (
        "_command",
        "_handles",
        "_output_sink",
        "_startup_grace",
        "_task_group",
        "_terminate_timeout",
    )

    def __init__(  # noqa: PLR0913
        self,
        task_group: anyio.abc.TaskGroup,
        *,
        command: Sequence[str] = ("tnet",),
        output_sink: OutputSink | None = None,
        terminate_timeout: float = 5.0,
        startup_grace: float = 0.0,
    ) -> None:
        """Initialize the supervisor.

        Args:
            task_group: Task group that runs the output streaming tasks.
            command: Executable prefix; the kind token and arguments follow it.
            output_sink: Sink for process output. Output is discarded if None.
            terminate_timeout: Seconds to wait after SIGTERM before SIGKILL.
            startup_grace: Seconds to wait after launch before confirming the
                process did not exit immediately. Zero skips the check.
        """
        self._task_group = task_group
        self._command = tuple(command)
        self._output_sink = output_sink
        self._terminate_timeout = terminate_timeout
        self._startup_grace = startup_grace
        self._handles: dict[int, SubprocessHandle] = {}

    @property
    def command(self) -> tuple[str, ...]:
        """Return the executable prefix."""
        return self._command

    async def _write_line(
        self,
        handle: SubprocessHandle,
        stream_name: Literal["stdout", "stderr"],
        raw_line: str,
    ) -> None:
        if self._output_sink is None or handle.pid is None:
            return
        line = mask_text(raw_line.rstrip("\r"), handle.args)
        try:  # noqa: SIM105
            await self._output_sink.write_line(handle.label, handle.pid, stream_name, line)
        except Exception:  # noqa: BLE001, S110
            # Output sink errors should not crash streaming
            pass

    async def _stream_output(
        self,
        handle: SubprocessHandle,
        stream: TextReceiveStream,
        stream_name: Literal["stdout", "stderr"],
    ) -> None:
        pending = ""
        try:
            async for chunk in stream:
                *lines, pending = (pending + chunk).split("\n")
                for raw_line in lines:
                    await self._write_line(handle, stream_name, raw_line)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            # Stream closed, which is expected on process exit
            pass
        if pending:
            await self._write_line(handle, stream_name, pending)

    async def _supervise(self, handle: SubprocessHandle) -> None:
        """Stream a process's output until it exits."""
        process = handle.process
        try:
            async with anyio.create_task_group() as tg:
                if process.stdout is not None:
                    tg.start_soon(
                        self._stream_output,
                        handle,
                        TextReceiveStream(process.stdout, errors="replace"),
                        "stdout",
                    )
                if process.stderr is not None:
                    tg.start_soon(
                        self._stream_output,
                        handle,
                        TextReceiveStream(process.stderr, errors="replace"),
                        "stderr",
                    )
                _ = await process.wait()
        finally:
            with anyio.CancelScope(shield=True):
                await process.aclose()
            _ = self._handles.pop(id(handle), None)

    async def launch(
        self,
        kind: ServiceKind,
        instance_id: str,
        args: Sequence[str],
    ) -> SubprocessHandle:
        """Launch the tunnel binary for an instance.

        Raises:
            ProcessLaunchError: If the executable cannot be started, or it
                exits within the startup grace period.
        """
        kind = ServiceKind(kind)
        command = [*self._command, kind.value, *args]
        try:
            process = await anyio.open_process(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            msg = f"Failed to launch {kind.value} {instance_id}: {e}"
            raise ProcessLaunchError(
                mask_text(msg, args), kind=kind.value, instance_id=instance_id, cause=e
            ) from None

        handle = SubprocessHandle(kind, instance_id, args, process)
        self._handles[id(handle)] = handle
        self._task_group.start_soon(self._supervise, handle)

        try:
            if self._startup_grace > 0:
                with anyio.move_on_after(self._startup_grace):
                    _ = await process.wait()
                if process.returncode is not None:
                    msg = (
                        f"{kind.value} {instance_id} exited immediately "
                        f"with code {process.returncode}"
                    )
                    raise ProcessLaunchError(
                        msg, kind=kind.value, instance_id=instance_id
                    )
        except BaseException:
            # No handle reaches the caller, so the process must not outlive launch
            with anyio.CancelScope(shield=True):
                await self._kill(process)
            raise

        return handle

    async def _kill(self, process: anyio.abc.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            pass
        _ = await process.wait()

    async def terminate(self, handle: ProcessHandle) -> None:
        """Terminate a process gracefully.

        Sends SIGTERM and waits for graceful shutdown. If the process
        doesn't exit within the timeout, sends SIGKILL.

        Raises:
            ProcessTerminateError: If the process cannot be signalled.
        """
        if not isinstance(handle, SubprocessHandle):
            msg = f"Unsupported process handle: {type(handle).__name__}"
            raise TypeError(msg)

        process = handle.process
        if process.returncode is not None:
            return

        try:
            process.send_signal(signal.SIGTERM)

            with anyio.move_on_after(self._terminate_timeout):
                _ = await process.wait()

            if process.returncode is None:
                process.kill()
                _ = await process.wait()

        except ProcessLookupError:
            # Process already exited
            pass

        except OSError as e:
            msg = f"Failed to terminate {handle.label}: {e}"
            raise ProcessTerminateError(
                msg, kind=handle.kind.value, instance_id=handle.instance_id, cause=e
            ) from e

    def is_alive(self, handle: ProcessHandle) -> bool:
        """Return whether the process has not exited yet."""
        return handle.returncode is None

    async def terminate_all(self) -> None:
        """Terminate every process still running."""
        for handle in list(self._handles.values()):
            await self.terminate(handle)
