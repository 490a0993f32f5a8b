"""Dashboard API application factory."""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import anyio
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tnetctl.args import generate_crypt_key, mask_text
from tnetctl.config import Config
from tnetctl.enums import ServiceKind
from tnetctl.manager import (
    ConsoleOutputSink,
    InstanceStore,
    LifecycleController,
    OutputSink,
    ProcessSupervisor,
    SubprocessSupervisor,
)
from tnetctl.utils import create_logger

from ._auth import create_auth_dependency
from ._routes import create_instances_router
from ._schemas import APIResponse
from ._ws import create_status_router

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from structlog.typing import FilteringBoundLogger


def _error_response(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=APIResponse(success=False, error=message).model_dump(),
        headers=headers,
    )


def _describe_request_errors(error: RequestValidationError) -> str:
    """Summarize request validation errors without echoing submitted values."""
    parts: list[str] = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ()))
        parts.append(f"{location}: {detail.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid request"


def _install_error_handlers(app: FastAPI, logger: "FilteringBoundLogger") -> None:  # noqa: UP037
    async def handle_http_error(
        _request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail), exc.headers)

    async def handle_request_error(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        message = mask_text(f"Invalid request: {_describe_request_errors(exc)}")
        return _error_response(status.HTTP_400_BAD_REQUEST, message)

    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error",
            path=request.url.path,
            error_type=type(exc).__name__,
        )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
        )

    app.add_exception_handler(StarletteHTTPException, handle_http_error)  # pyright: ignore[reportArgumentType]
    app.add_exception_handler(RequestValidationError, handle_request_error)  # pyright: ignore[reportArgumentType]
    app.add_exception_handler(Exception, handle_unexpected_error)


def create_app(
    config: Config | None = None,
    *,
    supervisor: ProcessSupervisor | None = None,
    output_sink: OutputSink | None = None,
    logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
) -> FastAPI:
    """Create the dashboard API application.

    The lifespan restores persisted instances, runs the reconciliation loop,
    and terminates every running instance on shutdown.

    Args:
        config: Application configuration. Defaults are used if None.
        supervisor: Process supervisor. A SubprocessSupervisor running
            ``config.process.command`` is created if None.
        output_sink: Sink for process output and lifecycle events. A console
            sink is used if None.
        logger: Structured logger. Built from ``config.logging`` if None.

    Returns:
        The FastAPI application.
    """
    config = config if config is not None else Config()
    if logger is None:
        logger = create_logger(
            level=config.logging.level.value,
            log_format=config.logging.format.value,
            log_file=config.logging.file,
        )
    sink: OutputSink = output_sink if output_sink is not None else ConsoleOutputSink()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> "AsyncGenerator[None, None]":  # noqa: UP037
        store = InstanceStore(config.storage.state_path)
        restored = await store.load()

        async with anyio.create_task_group() as tg:
            process_supervisor = supervisor
            if process_supervisor is None:
                process_supervisor = SubprocessSupervisor(
                    tg,
                    command=config.process.command,
                    output_sink=sink,
                    terminate_timeout=config.process.kill_after,
                    startup_grace=config.process.startup_grace,
                )
            controller = LifecycleController(
                store,
                process_supervisor,
                output_sink=sink,
                logger=logger,
                launch_timeout=config.process.launch_timeout,
                terminate_timeout=config.process.terminate_timeout,
                reconcile_interval=config.process.reconcile_interval,
            )
            app.state.controller = controller
            tg.start_soon(controller.run)
            logger.info(
                "Dashboard API started",
                restored=restored,
                command=list(config.process.command),
            )
            try:
                yield
            finally:
                await controller.shutdown()
                if isinstance(process_supervisor, SubprocessSupervisor):
                    await process_supervisor.terminate_all()
                tg.cancel_scope.cancel()
                logger.info("Dashboard API stopped")

    app = FastAPI(title="tnetctl", docs_url=None, redoc_url="/api-docs", lifespan=lifespan)
    _install_error_handlers(app, logger)

    require_auth = create_auth_dependency(config.auth.token)
    for kind in ServiceKind:
        app.include_router(
            create_instances_router(
                kind, program=config.process.program, require_auth=require_auth
            )
        )
    app.include_router(create_status_router(interval=config.server.status_interval))

    @app.get("/api/health", response_model=APIResponse)
    async def health() -> APIResponse:  # pyright: ignore[reportUnusedFunction]
        """Report that the API is serving."""
        return APIResponse(success=True, data={"status": "healthy"})

    @app.get("/api/crypt-key", response_model=APIResponse)
    async def crypt_key() -> APIResponse:  # pyright: ignore[reportUnusedFunction]
        """Generate a random 13-digit crypt key for a new instance."""
        return APIResponse(success=True, data={"crypt_key": generate_crypt_key()})

    return app
