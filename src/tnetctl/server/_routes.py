"""FastAPI endpoints for agent and proxy instances.

Both kinds expose the same surface under ``/api/agents`` and
``/api/proxies``; instance ids are scoped to their kind.
"""

# pyright: reportUnusedFunction=false
# FastAPI route handlers are registered via decorators, not direct calls

from collections.abc import Awaitable, Callable
from typing import Annotated, Never

from fastapi import APIRouter, Depends, HTTPException, Query, status
from starlette.requests import HTTPConnection

from tnetctl.args import format_command, mask_text
from tnetctl.enums import ServiceKind
from tnetctl.exceptions import (
    InstanceNotFoundError,
    ProcessError,
    ProcessTimeoutError,
    TnetctlError,
    ValidationError,
)
from tnetctl.manager import LifecycleController, ServiceInstance

from ._schemas import APIResponse, InstanceView, RevealView, StartRequest

InstanceIdQuery = Annotated[str | None, Query(alias="id")]


def get_controller(connection: HTTPConnection) -> LifecycleController:
    """Return the lifecycle controller of the running application."""
    controller: LifecycleController = connection.app.state.controller
    return controller


Controller = Annotated[LifecycleController, Depends(get_controller)]


def status_code_for(error: TnetctlError) -> int:
    """Map an error to the HTTP status code of its response."""
    if isinstance(error, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, InstanceNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, ProcessTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(error, ProcessError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _raise_api_error(action: str, kind: ServiceKind, cause: TnetctlError) -> Never:
    """Raise an HTTP error carrying a masked failure message.

    Raises:
        HTTPException: Always, with the status code mapped from ``cause``.
    """
    raise HTTPException(
        status_code=status_code_for(cause),
        detail=mask_text(f"Failed to {action} {kind.value}: {cause}"),
    ) from cause


def _require_id(kind: ServiceKind, instance_id: str | None) -> str:
    if not instance_id:
        msg = f"Missing {kind.value} ID"
        raise ValidationError(msg, field="id")
    return instance_id


def _instance_response(instance: ServiceInstance) -> APIResponse:
    return APIResponse(
        success=True, data=InstanceView.from_instance(instance).model_dump()
    )


def create_instances_router(  # noqa: PLR0915
    kind: ServiceKind,
    *,
    program: str,
    require_auth: Callable[..., Awaitable[None]],
) -> APIRouter:
    """Create the router for one instance kind.

    Args:
        kind: The instance kind served by the router.
        program: Display name of the tunnel binary in revealed commands.
        require_auth: Dependency guarding mutating and reveal endpoints.

    Returns:
        A FastAPI APIRouter with list, start, restart, stop, delete and
        reveal endpoints.
    """
    router = APIRouter(prefix=f"/api/{kind.plural}", tags=[kind.plural])
    guarded = [Depends(require_auth)]

    @router.get("", response_model=APIResponse)
    async def list_instances(controller: Controller) -> APIResponse:
        """List instances with masked arguments, in creation order."""
        instances = await controller.list_instances(kind)
        return APIResponse(
            success=True,
            data=[InstanceView.from_instance(i).model_dump() for i in instances],
        )

    @router.post("/start", response_model=APIResponse, dependencies=guarded)
    async def start_instance(
        controller: Controller,
        body: StartRequest | None = None,
        instance_id: InstanceIdQuery = None,
    ) -> APIResponse:
        """Create and start an instance, or start an existing one by id."""
        try:
            if instance_id:
                instance = await controller.start(kind, instance_id)
            elif body is None:
                msg = "Request body with 'args' or 'config' is required"
                raise ValidationError(msg, field="body")
            elif body.args is not None:
                instance = await controller.create_from_args(kind, body.args)
            else:
                instance = await controller.create(kind, body.config or {})
        except TnetctlError as e:
            _raise_api_error("start", kind, e)
        return _instance_response(instance)

    @router.post("/restart", response_model=APIResponse, dependencies=guarded)
    async def restart_instance(
        controller: Controller, instance_id: InstanceIdQuery = None
    ) -> APIResponse:
        """Restart an instance with a fresh process."""
        try:
            instance = await controller.restart(kind, _require_id(kind, instance_id))
        except TnetctlError as e:
            _raise_api_error("restart", kind, e)
        return _instance_response(instance)

    @router.post("/stop", response_model=APIResponse, dependencies=guarded)
    async def stop_instance(
        controller: Controller, instance_id: InstanceIdQuery = None
    ) -> APIResponse:
        """Stop an instance; stopping a stopped instance is a no-op."""
        try:
            instance = await controller.stop(kind, _require_id(kind, instance_id))
        except TnetctlError as e:
            _raise_api_error("stop", kind, e)
        return _instance_response(instance)

    @router.post("/delete", response_model=APIResponse, dependencies=guarded)
    async def delete_instance(
        controller: Controller, instance_id: InstanceIdQuery = None
    ) -> APIResponse:
        """Stop an instance if needed and remove it."""
        try:
            await controller.delete(kind, _require_id(kind, instance_id))
        except TnetctlError as e:
            _raise_api_error("delete", kind, e)
        return APIResponse(success=True)

    @router.post("/reveal", response_model=APIResponse, dependencies=guarded)
    async def reveal_instance(
        controller: Controller, instance_id: InstanceIdQuery = None
    ) -> APIResponse:
        """Return the unmasked arguments and full command of an instance."""
        try:
            valid_id = _require_id(kind, instance_id)
            args = list(controller.reveal(kind, valid_id))
        except TnetctlError as e:
            _raise_api_error("reveal", kind, e)
        view = RevealView(id=valid_id, args=args, command=format_command(program, kind, args))
        return APIResponse(success=True, data=view.model_dump())

    return router
