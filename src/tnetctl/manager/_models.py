"""Data models for managed service instances.

This module defines the core data types for instance management:
- ServiceInstance: Authoritative state of one agent or proxy
- InstanceEventType: Types of lifecycle events
- InstanceEvent: Immutable event records
"""

from dataclasses import dataclass, field
from enum import StrEnum

from tnetctl.args import mask_args
from tnetctl.enums import InstanceStatus, ServiceKind


class InstanceEventType(StrEnum):
    """Types of instance lifecycle events.

    - CREATED: Instance added to the store
    - STARTED: Process launched for the instance
    - STOPPED: Process terminated by request
    - EXITED: Process exited on its own
    - FAILED: A supervisor call failed or timed out
    - DELETED: Instance removed from the store
    """

    CREATED = "created"
    STARTED = "started"
    STOPPED = "stopped"
    EXITED = "exited"
    FAILED = "failed"
    DELETED = "deleted"


@dataclass(frozen=True, slots=True)
class InstanceEvent:
    """Immutable instance lifecycle event.

    Attributes:
        kind: Kind of the instance that generated the event.
        instance_id: Id of the instance that generated the event.
        event_type: Type of lifecycle event.
        timestamp: ISO 8601 formatted timestamp.
        pid: Process ID if applicable.
        exit_code: Exit code if the process terminated.
        message: Optional human-readable message, never carrying secrets.
    """

    kind: ServiceKind
    instance_id: str
    event_type: InstanceEventType
    timestamp: str
    pid: int | None = None
    exit_code: int | None = None
    message: str | None = None


@dataclass(slots=True)
class ServiceInstance:
    """A managed agent or proxy.

    ``id``, ``kind`` and ``args`` are fixed at creation. The remaining fields
    are written by the InstanceStore on behalf of the lifecycle controller.

    Attributes:
        id: Opaque unique identifier within the kind's namespace.
        kind: Agent or proxy.
        args: Exact argument list passed to the tunnel binary, without the
            kind token.
        status: Current lifecycle status.
        pid: Process ID of the running process, if any.
        started_at: ISO 8601 timestamp of the last successful launch.
        stopped_at: ISO 8601 timestamp of the last stop or exit.
        last_exit_code: Exit code of the last process, if known.
        error: Last failure message, already masked.
    """

    id: str
    kind: ServiceKind
    args: tuple[str, ...]
    status: InstanceStatus = InstanceStatus.STOPPED
    pid: int | None = None
    started_at: str | None = None
    stopped_at: str | None = None
    last_exit_code: int | None = None
    error: str | None = field(default=None)

    @property
    def masked_args(self) -> list[str]:
        """Return the argument list with crypt keys redacted."""
        return mask_args(self.args)

    def to_public_dict(self) -> dict[str, object]:
        """Return a display-safe view of the instance.

        Returns:
            Dictionary with masked ``args``; safe to render or log.
        """
        return {
            "id": self.id,
            "kind": self.kind.value,
            "status": self.status.value,
            "args": self.masked_args,
            "pid": self.pid,
            "started_at": self.started_at,
            "stopped_at": self.stopped_at,
            "last_exit_code": self.last_exit_code,
            "error": self.error,
        }
