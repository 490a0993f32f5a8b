"""Dashboard HTTP API.

Key Components:
    - create_app: FastAPI application factory with lifespan-managed controller
    - create_instances_router: list/start/restart/stop/delete/reveal per kind
    - create_status_router: WebSocket status push
    - APIResponse: ``{success, data, error}`` response envelope
"""

from ._app import create_app
from ._auth import create_auth_dependency
from ._routes import create_instances_router, get_controller, status_code_for
from ._schemas import APIResponse, InstanceView, RevealView, StartRequest
from ._ws import create_status_router

__all__ = [
    "APIResponse",
    "InstanceView",
    "RevealView",
    "StartRequest",
    "create_app",
    "create_auth_dependency",
    "create_instances_router",
    "create_status_router",
    "get_controller",
    "status_code_for",
]
