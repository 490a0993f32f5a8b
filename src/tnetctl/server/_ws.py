"""WebSocket channel pushing instance status to dashboards."""

# pyright: reportUnusedFunction=false

import anyio
from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketDisconnect

from tnetctl.manager import LifecycleController  # noqa: TC001

from ._routes import Controller


async def _push_status(
    websocket: WebSocket, controller: LifecycleController, interval: float
) -> None:
    try:
        while True:
            snapshot = await controller.snapshot()
            version = controller.version
            await websocket.send_json(
                {"type": "status", "interval": interval, **snapshot}
            )
            if controller.version == version:
                _ = await controller.wait_for_change(interval)
    except WebSocketDisconnect:
        pass


def create_status_router(*, interval: float) -> APIRouter:
    """Create the router for ``/api/ws/status``.

    A masked snapshot of both namespaces is sent on connect, after every
    status change, and at least every ``interval`` seconds. A ``ping`` text
    frame is answered with ``pong``.

    Args:
        interval: Maximum seconds between two snapshots.

    Returns:
        A FastAPI APIRouter with the status WebSocket endpoint.
    """
    router = APIRouter(prefix="/api/ws", tags=["status"])

    @router.websocket("/status")
    async def status_updates(websocket: WebSocket, controller: Controller) -> None:
        await websocket.accept()
        async with anyio.create_task_group() as tg:
            tg.start_soon(_push_status, websocket, controller, interval)
            try:
                while True:
                    if await websocket.receive_text() == "ping":
                        await websocket.send_text("pong")
            except WebSocketDisconnect:
                pass
            tg.cancel_scope.cancel()

    return router
