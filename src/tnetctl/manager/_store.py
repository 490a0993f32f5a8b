"""In-memory instance table with optional JSON persistence.

Instances are partitioned by kind into two independent namespaces. Within a
namespace, listing order is insertion order.
"""

import os
import uuid
from collections.abc import Iterable  # noqa: TC003 - Used in runtime type annotations
from pathlib import Path  # noqa: TC003
from typing import final

import anyio.to_thread
import orjson

from tnetctl.enums import InstanceStatus, ServiceKind
from tnetctl.exceptions import ConfigLoadError, InstanceNotFoundError

from ._models import ServiceInstance

ID_LENGTH = 8

# Sentinel for "leave this field unchanged" in set_status
_UNSET: object = object()


def generate_id() -> str:
    """Generate a short opaque instance id."""
    return uuid.uuid4().hex[:ID_LENGTH]


@final
class InstanceStore:
    """Authoritative table of service instances.

    The store is the only writer of instance status. Arguments are written
    once at creation and never changed afterwards.

    When ``state_file`` is set, instance ids and arguments (not status) are
    written to it by `flush` and restored, as stopped instances, by `load`.
    """

    __slots__ = ("_instances", "_state_file")

    def __init__(self, state_file: Path | None = None) -> None:
        """Initialize an empty store.

        Args:
            state_file: Optional JSON file used for persistence.
        """
        self._state_file = state_file
        self._instances: dict[ServiceKind, dict[str, ServiceInstance]] = {
            kind: {} for kind in ServiceKind
        }

    @property
    def state_file(self) -> Path | None:
        """Return the persistence file, if any."""
        return self._state_file

    def _namespace(self, kind: ServiceKind) -> dict[str, ServiceInstance]:
        return self._instances[ServiceKind(kind)]

    def create(
        self,
        kind: ServiceKind,
        args: Iterable[str],
        *,
        instance_id: str | None = None,
    ) -> str:
        """Insert a new stopped instance.

        Args:
            kind: Namespace for the instance.
            args: The compiled argument list.
            instance_id: Explicit id, used when restoring persisted state.

        Returns:
            The id of the new instance.
        """
        namespace = self._namespace(kind)
        new_id = instance_id or generate_id()
        while instance_id is None and new_id in namespace:
            new_id = generate_id()

        namespace[new_id] = ServiceInstance(
            id=new_id,
            kind=ServiceKind(kind),
            args=tuple(args),
        )
        return new_id

    def get(self, kind: ServiceKind, instance_id: str) -> ServiceInstance:
        """Get an instance by id.

        Raises:
            InstanceNotFoundError: If no instance has that id in ``kind``.
        """
        instance = self._namespace(kind).get(instance_id)
        if instance is None:
            msg = f"{ServiceKind(kind).value} with ID {instance_id} not found"
            raise InstanceNotFoundError(msg, kind=str(kind), instance_id=instance_id)
        return instance

    def list(self, kind: ServiceKind) -> list[ServiceInstance]:
        """Return the instances of ``kind`` in insertion order."""
        return list(self._namespace(kind).values())

    def set_status(  # noqa: PLR0913
        self,
        kind: ServiceKind,
        instance_id: str,
        status: InstanceStatus,
        *,
        pid: int | None | object = _UNSET,
        started_at: str | None | object = _UNSET,
        stopped_at: str | None | object = _UNSET,
        last_exit_code: int | None | object = _UNSET,
        error: str | None | object = _UNSET,
    ) -> ServiceInstance:
        """Update the status and runtime metadata of an instance in place.

        Keyword fields left unset keep their current value.

        Returns:
            The updated instance.

        Raises:
            InstanceNotFoundError: If no instance has that id in ``kind``.
        """
        instance = self.get(kind, instance_id)
        instance.status = InstanceStatus(status)
        if pid is not _UNSET:
            instance.pid = pid  # pyright: ignore[reportAttributeAccessIssue]
        if started_at is not _UNSET:
            instance.started_at = started_at  # pyright: ignore[reportAttributeAccessIssue]
        if stopped_at is not _UNSET:
            instance.stopped_at = stopped_at  # pyright: ignore[reportAttributeAccessIssue]
        if last_exit_code is not _UNSET:
            instance.last_exit_code = last_exit_code  # pyright: ignore[reportAttributeAccessIssue]
        if error is not _UNSET:
            instance.error = error  # pyright: ignore[reportAttributeAccessIssue]
        return instance

    def remove(self, kind: ServiceKind, instance_id: str) -> ServiceInstance:
        """Remove an instance.

        Returns:
            The removed instance.

        Raises:
            InstanceNotFoundError: If no instance has that id in ``kind``.
        """
        instance = self.get(kind, instance_id)
        del self._namespace(kind)[instance_id]
        return instance

    # =========================================================================
    # Persistence
    # =========================================================================

    def to_dict(self) -> "dict[str, list[dict[str, object]]]":
        """Serialize ids and arguments, grouped by kind."""
        return {
            kind.value: [
                {"id": instance.id, "args": list(instance.args)}
                for instance in namespace.values()
            ]
            for kind, namespace in self._instances.items()
        }

    def _write_state(self, payload: bytes) -> None:
        if self._state_file is None:
            return
        self._state_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._state_file.with_suffix(self._state_file.suffix + ".tmp")
        # The file holds unmasked arguments, crypt keys included
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        tmp_path.replace(self._state_file)

    async def flush(self) -> None:
        """Write ids and arguments to the state file, if configured."""
        if self._state_file is None:
            return
        payload = orjson.dumps(self.to_dict(), option=orjson.OPT_INDENT_2)
        await anyio.to_thread.run_sync(self._write_state, payload)

    def _read_state(self) -> bytes | None:
        if self._state_file is None or not self._state_file.exists():
            return None
        return self._state_file.read_bytes()

    async def load(self) -> int:
        """Restore persisted instances as stopped.

        Returns:
            The number of instances restored.

        Raises:
            ConfigLoadError: If the state file exists but cannot be parsed.
        """
        raw = await anyio.to_thread.run_sync(self._read_state)
        if raw is None:
            return 0

        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            msg = f"Failed to parse state file: {e}"
            raise ConfigLoadError(msg, path=self._state_file) from e

        if not isinstance(data, dict):
            msg = "State file must contain a JSON object"
            raise ConfigLoadError(msg, path=self._state_file)

        restored = 0
        for kind in ServiceKind:
            entries = data.get(kind.value, [])
            if not isinstance(entries, list):
                continue
            for entry in entries:
                if not isinstance(entry, dict):
                    continue
                instance_id = entry.get("id")
                args = entry.get("args")
                if not isinstance(instance_id, str) or not isinstance(args, list):
                    continue
                if instance_id in self._namespace(kind):
                    continue
                self.create(kind, [str(arg) for arg in args], instance_id=instance_id)
                restored += 1
        return restored
