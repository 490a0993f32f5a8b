"""Request and response models for the dashboard API."""

from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tnetctl.manager import ServiceInstance  # noqa: TC001


class APIResponse(BaseModel):
    """Envelope shared by every dashboard API response.

    Attributes:
        success: Whether the operation succeeded.
        data: Operation payload on success, if any.
        error: Masked error message on failure.
    """

    success: bool
    data: Any = None  # pyright: ignore[reportExplicitAny]
    error: str | None = None


class InstanceView(BaseModel):
    """Display-safe view of an instance; ``args`` are masked."""

    id: str
    kind: str
    status: str
    args: list[str]
    pid: int | None = None
    started_at: str | None = None
    stopped_at: str | None = None
    last_exit_code: int | None = None
    error: str | None = None

    @classmethod
    def from_instance(cls, instance: ServiceInstance) -> Self:
        """Build a view from a store instance."""
        return cls.model_validate(instance.to_public_dict())


class RevealView(BaseModel):
    """Unmasked arguments and the reconstructed command line of an instance."""

    id: str
    args: list[str]
    command: str


class StartRequest(BaseModel):
    """Body of a create request.

    Exactly one of ``args`` (a literal argument list) or ``config`` (a form
    or direct-mode configuration, discriminated by ``inputMode``) is given.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    args: list[str] | None = Field(default=None, repr=False)
    config: dict[str, Any] | None = Field(default=None, repr=False)  # pyright: ignore[reportExplicitAny]

    @model_validator(mode="after")
    def _exactly_one_source(self) -> Self:
        if (self.args is None) == (self.config is None):
            msg = "Exactly one of 'args' or 'config' is required"
            raise ValueError(msg)
        return self
