import os
import signal
from pathlib import Path

import anyio
import pytest

from tests.conftest import RecordingSink
from tests.integration.conftest import python_command, wait_until
from tnetctl.enums import InstanceStatus, ServiceKind
from tnetctl.exceptions import ProcessLaunchError, ProcessTimeoutError
from tnetctl.manager import (
    InstanceStore,
    LifecycleController,
    SubprocessHandle,
    SubprocessSupervisor,
)

pytestmark = pytest.mark.anyio

ECHO_THEN_SLEEP = (
    "import sys, time\n"
    "print('ready', *sys.argv[1:], flush=True)\n"
    "print('warn', file=sys.stderr, flush=True)\n"
    "time.sleep(30)\n"
)
IGNORE_SIGTERM = (
    "import signal, time\n"
    "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
    "print('ready', flush=True)\n"
    "time.sleep(30)\n"
)
EXIT_WITH_3 = "import sys; sys.exit(3)"
RECORD_PID_THEN_SLEEP = (
    "import os, time\n"
    "with open({path!r}, \"a\") as f:\n"
    "    f.write(f\"{{os.getpid()}}\\n\")\n"
    "time.sleep(30)\n"
)


def pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


class TestSubprocessSupervisor:
    async def test_launch_streams_masked_output(self, sink: RecordingSink) -> None:
        async with anyio.create_task_group() as tg:
            supervisor = SubprocessSupervisor(
                tg, command=python_command(ECHO_THEN_SLEEP), output_sink=sink
            )
            handle = await supervisor.launch(
                ServiceKind.AGENT, "a1", ["--crypt-key=s3cr3t", "--x"]
            )
            await wait_until(lambda: len(sink.lines) >= 2)

            assert supervisor.is_alive(handle)
            await supervisor.terminate(handle)

        label, pid, _, _ = sink.lines[0]
        assert label == "agent:a1"
        assert pid == handle.pid
        streams = {(stream, line) for _, _, stream, line in sink.lines}
        assert ("stdout", "ready agent --crypt-key=********** --x") in streams
        assert ("stderr", "warn") in streams
        assert "s3cr3t" not in str(sink.lines)

    async def test_terminate_sends_sigterm(self) -> None:
        async with anyio.create_task_group() as tg:
            supervisor = SubprocessSupervisor(tg, command=python_command(ECHO_THEN_SLEEP))
            handle = await supervisor.launch(ServiceKind.PROXY, "p1", ["--x"])

            await supervisor.terminate(handle)

        assert handle.returncode == -signal.SIGTERM
        assert not supervisor.is_alive(handle)

    async def test_terminate_kills_after_timeout(self, sink: RecordingSink) -> None:
        async with anyio.create_task_group() as tg:
            supervisor = SubprocessSupervisor(
                tg,
                command=python_command(IGNORE_SIGTERM),
                output_sink=sink,
                terminate_timeout=0.2,
            )
            handle = await supervisor.launch(ServiceKind.AGENT, "a1", [])
            await wait_until(lambda: bool(sink.lines))

            await supervisor.terminate(handle)

        assert handle.returncode == -signal.SIGKILL

    async def test_terminate_exited_process_is_noop(self) -> None:
        async with anyio.create_task_group() as tg:
            supervisor = SubprocessSupervisor(tg, command=python_command(EXIT_WITH_3))
            handle = await supervisor.launch(ServiceKind.AGENT, "a1", [])
            await wait_until(lambda: handle.returncode is not None)

            await supervisor.terminate(handle)

        assert handle.returncode == 3

    async def test_terminate_rejects_foreign_handle(self) -> None:
        async with anyio.create_task_group() as tg:
            supervisor = SubprocessSupervisor(tg)

            with pytest.raises(TypeError, match="Unsupported process handle"):
                await supervisor.terminate(object())  # pyright: ignore[reportArgumentType]

    async def test_missing_executable(self) -> None:
        async with anyio.create_task_group() as tg:
            supervisor = SubprocessSupervisor(tg, command=("/nonexistent/tnet",))

            with pytest.raises(ProcessLaunchError, match="Failed to launch agent a1"):
                _ = await supervisor.launch(
                    ServiceKind.AGENT, "a1", ["--crypt-key=s3cr3t"]
                )

    async def test_startup_grace_detects_immediate_exit(self) -> None:
        async with anyio.create_task_group() as tg:
            supervisor = SubprocessSupervisor(
                tg, command=python_command(EXIT_WITH_3), startup_grace=2.0
            )

            with pytest.raises(ProcessLaunchError, match="exited immediately with code 3"):
                _ = await supervisor.launch(ServiceKind.PROXY, "p1", [])

    async def test_terminate_all(self) -> None:
        async with anyio.create_task_group() as tg:
            supervisor = SubprocessSupervisor(tg, command=python_command(ECHO_THEN_SLEEP))
            handles = [
                await supervisor.launch(ServiceKind.AGENT, f"a{n}", []) for n in range(3)
            ]

            await supervisor.terminate_all()

        assert all(isinstance(h, SubprocessHandle) for h in handles)
        assert all(h.returncode is not None for h in handles)


class TestControllerWithSubprocesses:
    async def test_lifecycle(self, sink: RecordingSink) -> None:
        store = InstanceStore()
        async with anyio.create_task_group() as tg:
            supervisor = SubprocessSupervisor(
                tg, command=python_command(ECHO_THEN_SLEEP), output_sink=sink
            )
            controller = LifecycleController(store, supervisor, output_sink=sink)

            instance = await controller.create_from_args(
                ServiceKind.AGENT, ["--tunnel-listen=127.0.0.1:0"]
            )
            assert instance.status == InstanceStatus.RUNNING
            assert instance.pid is not None

            instance = await controller.restart(ServiceKind.AGENT, instance.id)
            assert instance.status == InstanceStatus.RUNNING

            instance = await controller.stop(ServiceKind.AGENT, instance.id)
            assert instance.status == InstanceStatus.STOPPED
            assert instance.last_exit_code == -signal.SIGTERM

            await controller.delete(ServiceKind.AGENT, instance.id)
            await controller.shutdown()

        assert store.list(ServiceKind.AGENT) == []

    async def test_reconcile_records_exit(self, sink: RecordingSink) -> None:
        store = InstanceStore()
        async with anyio.create_task_group() as tg:
            supervisor = SubprocessSupervisor(
                tg, command=python_command(EXIT_WITH_3), output_sink=sink
            )
            controller = LifecycleController(store, supervisor, output_sink=sink)
            instance = await controller.create_from_args(ServiceKind.PROXY, ["--x"])

            async def exited() -> bool:
                return await controller.reconcile() > 0

            with anyio.fail_after(5):
                while not await exited():
                    await anyio.sleep(0.01)

        assert instance.status == InstanceStatus.STOPPED
        assert instance.last_exit_code == 3
        assert instance.error == "exited with code 3"

    async def test_launch_timeout_leaves_no_process(
        self, sink: RecordingSink, tmp_path: Path
    ) -> None:
        pid_file = tmp_path / "pids"
        store = InstanceStore()
        async with anyio.create_task_group() as tg:
            supervisor = SubprocessSupervisor(
                tg,
                command=python_command(RECORD_PID_THEN_SLEEP.format(path=str(pid_file))),  # noqa: E501
                output_sink=sink,
                startup_grace=10.0,
            )
            controller = LifecycleController(
                store, supervisor, output_sink=sink, launch_timeout=2.0
            )

            with pytest.raises(ProcessTimeoutError):
                _ = await controller.create_from_args(ServiceKind.AGENT, ["--x"])

            (instance,) = store.list(ServiceKind.AGENT)
            assert instance.status == InstanceStatus.UNKNOWN
            assert instance.pid is None
            pids = [int(pid) for pid in pid_file.read_text().split()]
            assert len(pids) == 1
            assert not pid_alive(pids[0])

            instance = await controller.stop(ServiceKind.AGENT, instance.id)
            assert instance.status == InstanceStatus.STOPPED
            await controller.shutdown()
