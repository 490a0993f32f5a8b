"""tnetctl exceptions."""

from pathlib import Path  # noqa: TC003 - Used in runtime type annotations


class TnetctlError(Exception):
    """Base exception for tnetctl errors."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(TnetctlError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


# =============================================================================
# Argument Exceptions
# =============================================================================


class ValidationError(TnetctlError, ValueError):
    """Raised when user input cannot be turned into an argument list.

    Attributes:
        field: The input field that failed validation.
        value: The offending value, already masked for display.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: object = None,
    ) -> None:
        """Initialize with error message and validation context.

        Args:
            message: Human-readable error message.
            field: The input field that failed validation.
            value: The offending value, already masked for display.
        """
        super().__init__(message)
        self.field: str | None = field
        self.value: object = value


# =============================================================================
# Lifecycle Exceptions
# =============================================================================


class InstanceNotFoundError(TnetctlError, KeyError):
    """Raised when an operation references an unknown instance id.

    Attributes:
        kind: The namespace that was searched.
        instance_id: The id that was not found.
    """

    def __init__(self, message: str, *, kind: str, instance_id: str) -> None:
        """Initialize with error message and lookup context.

        Args:
            message: Human-readable error message.
            kind: The namespace that was searched.
            instance_id: The id that was not found.
        """
        super().__init__(message)
        self.kind: str = kind
        self.instance_id: str = instance_id

    def __str__(self) -> str:
        # KeyError quotes its argument; keep plain messages for API responses
        return str(self.args[0]) if self.args else ""


class ProcessError(TnetctlError):
    """Raised when the process supervisor rejects a launch or termination.

    Attributes:
        kind: Kind of the affected instance.
        instance_id: Id of the affected instance.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str,
        instance_id: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and instance context.

        Args:
            message: Human-readable error message.
            kind: Kind of the affected instance.
            instance_id: Id of the affected instance.
            cause: The underlying exception, if any.
        """
        super().__init__(message)
        self.kind: str = kind
        self.instance_id: str = instance_id
        self.cause: Exception | None = cause


class ProcessLaunchError(ProcessError):
    """Raised when a process cannot be launched."""


class ProcessTerminateError(ProcessError):
    """Raised when a process cannot be terminated."""


class ProcessTimeoutError(ProcessError):
    """Raised when a supervisor call exceeds its time bound.

    The outcome of the call is indeterminate.

    Attributes:
        operation: The supervisor operation that timed out ("launch", "terminate").
        timeout: The bound in seconds that was exceeded.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str,
        instance_id: str,
        operation: str,
        timeout: float,
    ) -> None:
        """Initialize with error message and timeout context.

        Args:
            message: Human-readable error message.
            kind: Kind of the affected instance.
            instance_id: Id of the affected instance.
            operation: The supervisor operation that timed out.
            timeout: The bound in seconds that was exceeded.
        """
        super().__init__(message, kind=kind, instance_id=instance_id)
        self.operation: str = operation
        self.timeout: float = timeout
