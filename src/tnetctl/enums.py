"""Enumeration types for tnetctl."""

from enum import StrEnum


class ServiceKind(StrEnum):
    """Kinds of managed service instances.

    The value doubles as the subcommand token passed to the tunnel binary.
    """

    AGENT = "agent"
    PROXY = "proxy"

    @property
    def plural(self) -> str:
        """Return the collection name used in API paths."""
        return "agents" if self == ServiceKind.AGENT else "proxies"


class InstanceStatus(StrEnum):
    """Lifecycle status of a managed instance.

    - STOPPED: No process is associated with the instance
    - RUNNING: The supervisor confirmed a live process
    - UNKNOWN: The last supervisor call timed out; the outcome is indeterminate
    """

    STOPPED = "stopped"
    RUNNING = "running"
    UNKNOWN = "unknown"
