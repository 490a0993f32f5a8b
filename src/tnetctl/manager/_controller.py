"""Lifecycle controller for agent and proxy instances.

This module provides the LifecycleController class that drives instances
through the stopped/running state machine against an external process
supervisor, keeping the InstanceStore consistent with the last completed
supervisor call.
"""

from collections.abc import Iterable, Mapping  # noqa: TC003 - Used in runtime type annotations
from typing import TYPE_CHECKING, cast, final

import anyio
import pendulum

from tnetctl.args import build_args, mask_text, normalize_args, parse_configuration
from tnetctl.enums import InstanceStatus, ServiceKind
from tnetctl.exceptions import (
    InstanceNotFoundError,
    ProcessError,
    ProcessLaunchError,
    ProcessTerminateError,
    ProcessTimeoutError,
)
from tnetctl.utils import create_logger

from ._models import InstanceEvent, InstanceEventType, ServiceInstance
from ._protocol import OutputSink, ProcessHandle, ProcessSupervisor  # noqa: TC001
from ._store import InstanceStore  # noqa: TC001

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from tnetctl.args import ServiceConfiguration

InstanceKey = tuple[ServiceKind, str]


def _get_timestamp() -> str:
    """Get current timestamp in ISO 8601 format."""
    return pendulum.now("UTC").to_iso8601_string()


@final
class _PendingStart:
    """Outcome of an in-flight start, shared by overlapping start requests."""

    __slots__ = ("_done", "_error", "_instance")

    def __init__(self) -> None:
        self._done = anyio.Event()
        self._error: Exception | None = None
        self._instance: ServiceInstance | None = None

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def resolve(
        self,
        instance: ServiceInstance | None = None,
        error: Exception | None = None,
    ) -> None:
        self._instance = instance
        self._error = error
        self._done.set()

    async def wait(self) -> ServiceInstance:
        await self._done.wait()
        if self._error is not None:
            raise self._error
        return cast("ServiceInstance", self._instance)


@final
class LifecycleController:
    """Drives create/start/stop/restart/delete for managed instances.

    Every transition for a given ``(kind, id)`` runs under that key's lock,
    which is held for the supervisor call and the store update together.
    Transitions for different keys proceed independently.

    Start and restart force a fresh process: any existing process for the
    instance is terminated first. Overlapping start requests for the same key
    share the outcome of a single launch.

    Supervisor calls are bounded by ``launch_timeout`` and
    ``terminate_timeout``. When a bound is exceeded the instance becomes
    ``unknown`` and ProcessTimeoutError is raised; `reconcile` later resolves
    the status from the supervisor's ``is_alive``.
    """

    __slots__ = (
        "_changed",
        "_handles",
        "_launch_timeout",
        "_locks",
        "_logger",
        "_output_sink",
        "_pending_starts",
        "_reconcile_interval",
        "_store",
        "_supervisor",
        "_terminate_timeout",
        "_version",
    )

    def __init__(  # noqa: PLR0913
        self,
        store: InstanceStore,
        supervisor: ProcessSupervisor,
        *,
        output_sink: OutputSink | None = None,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
        launch_timeout: float = 10.0,
        terminate_timeout: float = 10.0,
        reconcile_interval: float = 2.0,
    ) -> None:
        """Initialize the controller.

        Args:
            store: The authoritative instance table.
            supervisor: Launches and terminates tunnel processes.
            output_sink: Sink for lifecycle events. Events are dropped if None.
            logger: Structured logger. A stderr logger is created if None.
            launch_timeout: Bound in seconds for a supervisor launch.
            terminate_timeout: Bound in seconds for a supervisor terminate.
            reconcile_interval: Seconds between background reconciliations.
        """
        self._store = store
        self._supervisor = supervisor
        self._output_sink = output_sink
        self._logger = logger if logger is not None else create_logger()
        self._launch_timeout = launch_timeout
        self._terminate_timeout = terminate_timeout
        self._reconcile_interval = reconcile_interval
        self._handles: dict[InstanceKey, ProcessHandle] = {}
        self._locks: dict[InstanceKey, anyio.Lock] = {}
        self._pending_starts: dict[InstanceKey, _PendingStart] = {}
        self._changed: anyio.Event | None = None
        self._version = 0

    @property
    def store(self) -> InstanceStore:
        """Return the instance store."""
        return self._store

    @property
    def version(self) -> int:
        """Return a counter incremented on every status change."""
        return self._version

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _key(self, kind: ServiceKind, instance_id: str) -> InstanceKey:
        return (ServiceKind(kind), instance_id)

    def _lock(self, key: InstanceKey) -> anyio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = anyio.Lock()
            self._locks[key] = lock
        return lock

    def _log(self, instance: ServiceInstance) -> "FilteringBoundLogger":  # noqa: UP037
        return self._logger.bind(
            kind=instance.kind.value,
            instance_id=instance.id,
            status=instance.status.value,
            args=instance.masked_args,
        )

    def _notify(self) -> None:
        """Publish a status change to `wait_for_change` callers."""
        self._version += 1
        if self._changed is not None:
            self._changed.set()
            self._changed = None

    async def wait_for_change(self, timeout: float) -> bool:
        """Wait until the next status change.

        Args:
            timeout: Maximum seconds to wait.

        Returns:
            True if a change happened, False if the timeout elapsed first.
        """
        if self._changed is None:
            self._changed = anyio.Event()
        changed = self._changed
        with anyio.move_on_after(timeout):
            await changed.wait()
            return True
        return False

    async def _emit(
        self,
        instance: ServiceInstance,
        event_type: InstanceEventType,
        *,
        message: str | None = None,
        exit_code: int | None = None,
    ) -> None:
        """Emit a lifecycle event to the output sink."""
        self._notify()
        if self._output_sink is None:
            return
        event = InstanceEvent(
            kind=instance.kind,
            instance_id=instance.id,
            event_type=event_type,
            timestamp=_get_timestamp(),
            pid=instance.pid,
            exit_code=exit_code,
            message=message,
        )
        try:  # noqa: SIM105
            await self._output_sink.write_event(event)
        except Exception:  # noqa: BLE001, S110
            # Output sink errors should not affect lifecycle transitions
            pass

    async def _launch_locked(self, key: InstanceKey, instance: ServiceInstance) -> None:
        """Launch a process for ``instance``; the key's lock must be held.

        Raises:
            ProcessLaunchError: If the supervisor rejects the launch.
            ProcessTimeoutError: If the launch exceeds ``launch_timeout``.
        """
        kind, instance_id = key
        try:
            with anyio.fail_after(self._launch_timeout):
                handle = await self._supervisor.launch(kind, instance_id, instance.args)
        except TimeoutError:
            msg = f"Launch of {kind.value} {instance_id} timed out after {self._launch_timeout}s"
            _ = self._store.set_status(
                kind, instance_id, InstanceStatus.UNKNOWN, pid=None, error=msg
            )
            self._log(instance).warning("Launch timed out", timeout=self._launch_timeout)
            await self._emit(instance, InstanceEventType.FAILED, message=msg)
            raise ProcessTimeoutError(
                msg,
                kind=kind.value,
                instance_id=instance_id,
                operation="launch",
                timeout=self._launch_timeout,
            ) from None
        except ProcessError as e:
            msg = mask_text(str(e), instance.args)
            _ = self._store.set_status(
                kind, instance_id, InstanceStatus.STOPPED, pid=None, error=msg
            )
            self._log(instance).warning("Launch failed", error=msg)
            await self._emit(instance, InstanceEventType.FAILED, message=msg)
            raise ProcessLaunchError(
                msg, kind=kind.value, instance_id=instance_id, cause=e
            ) from None

        self._handles[key] = handle
        _ = self._store.set_status(
            kind,
            instance_id,
            InstanceStatus.RUNNING,
            pid=handle.pid,
            started_at=_get_timestamp(),
            stopped_at=None,
            last_exit_code=None,
            error=None,
        )
        self._log(instance).info("Instance started", pid=handle.pid)
        await self._emit(instance, InstanceEventType.STARTED)

    async def _terminate_locked(
        self,
        key: InstanceKey,
        instance: ServiceInstance,
        handle: ProcessHandle,
    ) -> None:
        """Terminate the process for ``instance``; the key's lock must be held.

        Raises:
            ProcessTerminateError: If the supervisor fails to terminate. The
                instance is stopped anyway when the process turns out dead.
            ProcessTimeoutError: If termination exceeds ``terminate_timeout``.
        """
        kind, instance_id = key
        try:
            with anyio.fail_after(self._terminate_timeout):
                await self._supervisor.terminate(handle)
        except TimeoutError:
            msg = (
                f"Termination of {kind.value} {instance_id} timed out "
                f"after {self._terminate_timeout}s"
            )
            _ = self._store.set_status(
                kind, instance_id, InstanceStatus.UNKNOWN, error=msg
            )
            self._log(instance).warning(
                "Termination timed out", timeout=self._terminate_timeout
            )
            await self._emit(instance, InstanceEventType.FAILED, message=msg)
            raise ProcessTimeoutError(
                msg,
                kind=kind.value,
                instance_id=instance_id,
                operation="terminate",
                timeout=self._terminate_timeout,
            ) from None
        except ProcessError as e:
            msg = mask_text(str(e), instance.args)
            if self._supervisor.is_alive(handle):
                _ = self._store.set_status(
                    kind, instance_id, InstanceStatus.RUNNING, error=msg
                )
            else:
                _ = self._handles.pop(key, None)
                _ = self._store.set_status(
                    kind,
                    instance_id,
                    InstanceStatus.STOPPED,
                    pid=None,
                    stopped_at=_get_timestamp(),
                    last_exit_code=handle.returncode,
                    error=msg,
                )
            self._log(instance).warning("Termination failed", error=msg)
            await self._emit(instance, InstanceEventType.FAILED, message=msg)
            raise ProcessTerminateError(
                msg, kind=kind.value, instance_id=instance_id, cause=e
            ) from None

        _ = self._handles.pop(key, None)
        pid = instance.pid
        _ = self._store.set_status(
            kind,
            instance_id,
            InstanceStatus.STOPPED,
            pid=None,
            stopped_at=_get_timestamp(),
            last_exit_code=handle.returncode,
        )
        self._log(instance).info("Instance stopped", pid=pid)
        await self._emit(
            instance,
            InstanceEventType.STOPPED,
            message="Stopped by request",
            exit_code=handle.returncode,
        )

    async def _restart_locked(self, key: InstanceKey) -> ServiceInstance:
        instance = self._store.get(*key)
        handle = self._handles.get(key)
        if handle is not None:
            await self._terminate_locked(key, instance, handle)
        await self._launch_locked(key, instance)
        return instance

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, kind: ServiceKind, instance_id: str) -> ServiceInstance:
        """Get an instance by id.

        Raises:
            InstanceNotFoundError: If no instance has that id in ``kind``.
        """
        return self._store.get(kind, instance_id)

    async def list_instances(self, kind: ServiceKind) -> list[ServiceInstance]:
        """Reconcile exited processes, then list the instances of ``kind``."""
        _ = await self.reconcile()
        return self._store.list(kind)

    async def snapshot(self) -> dict[str, list[dict[str, object]]]:
        """Return display-safe views of every instance, keyed by plural kind."""
        _ = await self.reconcile()
        return {
            kind.plural: [instance.to_public_dict() for instance in self._store.list(kind)]
            for kind in ServiceKind
        }

    def reveal(self, kind: ServiceKind, instance_id: str) -> tuple[str, ...]:
        """Return the unmasked argument list of an instance.

        This is the only path that discloses crypt keys; every call is logged.

        Raises:
            InstanceNotFoundError: If no instance has that id in ``kind``.
        """
        instance = self._store.get(kind, instance_id)
        self._log(instance).info("Unmasked arguments revealed")
        return instance.args

    # =========================================================================
    # Transitions
    # =========================================================================

    async def create(
        self,
        kind: ServiceKind,
        config: "ServiceConfiguration | Mapping[str, object]",  # noqa: UP037
    ) -> ServiceInstance:
        """Create an instance from a service configuration and start it.

        Args:
            kind: Kind of the new instance.
            config: A validated configuration, or a raw payload to validate.

        Returns:
            The new instance.

        Raises:
            ValidationError: If the configuration is invalid or yields no
                arguments.
            ProcessError: If the launch fails. The instance is kept, stopped.
        """
        if isinstance(config, Mapping):
            config = parse_configuration(kind, config)
        return await self.create_from_args(kind, build_args(kind, config))

    async def create_from_args(
        self, kind: ServiceKind, args: Iterable[str]
    ) -> ServiceInstance:
        """Create an instance from an argument list and start it.

        The instance is persisted before the launch is attempted, so a failed
        launch never drops the submitted arguments.

        Returns:
            The new instance.

        Raises:
            ValidationError: If no argument is left after normalization.
            ProcessError: If the launch fails. The instance is kept, stopped.
        """
        kind = ServiceKind(kind)
        normalized = normalize_args(args)
        instance_id = self._store.create(kind, normalized)
        await self._store.flush()

        instance = self._store.get(kind, instance_id)
        self._log(instance).info("Instance created")
        await self._emit(instance, InstanceEventType.CREATED)

        key = self._key(kind, instance_id)
        async with self._lock(key):
            await self._launch_locked(key, instance)
        return instance

    async def start(self, kind: ServiceKind, instance_id: str) -> ServiceInstance:
        """Start an existing instance with a fresh process.

        Any process already running for the instance is terminated first.
        Overlapping calls for the same instance share one launch and its
        outcome.

        Returns:
            The started instance.

        Raises:
            InstanceNotFoundError: If no instance has that id in ``kind``.
            ProcessError: If termination or launch fails.
        """
        key = self._key(kind, instance_id)
        _ = self._store.get(*key)

        pending = self._pending_starts.get(key)
        if pending is not None:
            return await pending.wait()

        pending = _PendingStart()
        self._pending_starts[key] = pending
        try:
            async with self._lock(key):
                instance = await self._restart_locked(key)
        except Exception as e:
            pending.resolve(error=e)
            raise
        else:
            pending.resolve(instance=instance)
            return instance
        finally:
            if not pending.done:
                msg = f"Start of {key[0].value} {instance_id} was cancelled"
                pending.resolve(
                    error=ProcessError(msg, kind=key[0].value, instance_id=instance_id)
                )
            _ = self._pending_starts.pop(key, None)

    async def restart(self, kind: ServiceKind, instance_id: str) -> ServiceInstance:
        """Restart an instance; identical in effect to `start`."""
        return await self.start(kind, instance_id)

    async def stop(self, kind: ServiceKind, instance_id: str) -> ServiceInstance:
        """Stop an instance.

        Stopping an instance without a process is a no-op that leaves it
        stopped.

        Returns:
            The stopped instance.

        Raises:
            InstanceNotFoundError: If no instance has that id in ``kind``.
            ProcessError: If termination fails or times out.
        """
        key = self._key(kind, instance_id)
        async with self._lock(key):
            instance = self._store.get(*key)
            handle = self._handles.get(key)
            if handle is not None:
                await self._terminate_locked(key, instance, handle)
            elif instance.status != InstanceStatus.STOPPED:
                _ = self._store.set_status(*key, InstanceStatus.STOPPED, pid=None)
                self._log(instance).info("Instance marked stopped")
                self._notify()
            return instance

    async def delete(self, kind: ServiceKind, instance_id: str) -> None:
        """Stop an instance if needed, then remove it.

        A failed stop is logged and does not prevent removal.

        Raises:
            InstanceNotFoundError: If no instance has that id in ``kind``.
        """
        key = self._key(kind, instance_id)
        async with self._lock(key):
            instance = self._store.get(*key)
            handle = self._handles.get(key)
            if handle is not None:
                try:
                    await self._terminate_locked(key, instance, handle)
                except ProcessError as e:
                    self._log(instance).warning(
                        "Stop before delete failed", error=str(e)
                    )

            _ = self._handles.pop(key, None)
            _ = self._store.remove(*key)
            await self._store.flush()
            self._log(instance).info("Instance deleted")
            await self._emit(instance, InstanceEventType.DELETED)
        _ = self._locks.pop(key, None)

    # =========================================================================
    # Reconciliation
    # =========================================================================

    async def reconcile(self) -> int:
        """Align instance status with the supervisor's view of each process.

        Processes that exited on their own turn their instance ``stopped``,
        recording the exit code, and an error for non-zero codes. An
        ``unknown`` instance whose process is alive becomes ``running``.
        Instances with a transition in flight are skipped, and so are
        handles already resolved by an overlapping call or a delete.

        Returns:
            The number of instances whose status changed.
        """
        changed = 0
        for key, handle in list(self._handles.items()):
            # Re-checked on every iteration since event emission yields
            if self._handles.get(key) is not handle:
                continue
            lock = self._locks.get(key)
            if lock is not None and lock.locked():
                continue

            try:
                instance = self._store.get(*key)
            except InstanceNotFoundError:
                _ = self._handles.pop(key, None)
                continue
            if self._supervisor.is_alive(handle):
                if instance.status != InstanceStatus.RUNNING:
                    _ = self._store.set_status(
                        *key, InstanceStatus.RUNNING, pid=handle.pid, error=None
                    )
                    self._log(instance).info("Instance confirmed running")
                    self._notify()
                    changed += 1
                continue

            _ = self._handles.pop(key, None)
            exit_code = handle.returncode
            error = None if exit_code == 0 else f"exited with code {exit_code}"
            _ = self._store.set_status(
                *key,
                InstanceStatus.STOPPED,
                pid=None,
                stopped_at=_get_timestamp(),
                last_exit_code=exit_code,
                error=error,
            )
            self._log(instance).info("Instance exited", exit_code=exit_code)
            await self._emit(
                instance,
                InstanceEventType.EXITED,
                message=error or "Exited normally",
                exit_code=exit_code,
            )
            changed += 1
        return changed

    async def run(self) -> None:
        """Reconcile periodically until cancelled."""
        while True:
            await anyio.sleep(self._reconcile_interval)
            _ = await self.reconcile()

    async def shutdown(self) -> None:
        """Terminate every instance that still has a process.

        Failures are logged; the remaining instances are still terminated.
        """
        with anyio.CancelScope(shield=True):
            for key in list(self._handles):
                async with self._lock(key):
                    handle = self._handles.get(key)
                    if handle is None:
                        continue
                    instance = self._store.get(*key)
                    try:
                        await self._terminate_locked(key, instance, handle)
                    except ProcessError as e:
                        self._log(instance).warning(
                            "Stop during shutdown failed", error=str(e)
                        )
