"""FastAPI Application - Hangar booking API entry point."""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hangar.config.settings import get_settings
from hangar.core.exceptions import HangarError
from hangar.handlers.booking import http_status_for
from hangar.handlers.booking import router as booking_router
from hangar.services.observability import instrument_fastapi, setup_tracing
from hangar.utils.logger import bind_request_context, get_logger, setup_logging

settings = get_settings()
setup_logging(settings.log_level, json_logs=not settings.is_development)

logger = get_logger(__name__)


async def _close_clients() -> None:
    # Só fecha o que alguma rota chegou a criar
    from hangar.core import idempotency
    from hangar.services import evolution, notifications

    if notifications._dispatcher is not None:
        await notifications._dispatcher.drain()
    if evolution._evolution_client is not None:
        await evolution._evolution_client.close()
    if idempotency._idempotency_manager is not None:
        await idempotency._idempotency_manager.close()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Tracing on startup; flush WhatsApp tasks and close clients on shutdown."""
    tracing = setup_tracing()
    logger.info(
        "application_starting",
        environment=settings.app_env,
        port=settings.api_port,
        tracing=tracing,
        notifications=settings.enable_notifications,
    )

    yield

    logger.info("application_shutting_down")
    try:
        await _close_clients()
    except Exception as e:
        logger.warning("cleanup_error", error=str(e))


app = FastAPI(
    title="Hangar Booking API",
    description="Agenda pública e ciclo de vida de agendamentos do Hangar",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["*"],
)

instrument_fastapi(app)

app.include_router(booking_router)


@app.middleware("http")
async def request_context(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """One request id per call, echoed back and bound to every log line."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    bind_request_context(request_id=request_id, path=request.url.path)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(HangarError)
async def hangar_error_handler(request: Request, exc: HangarError) -> JSONResponse:
    """Domain errors that escaped a route (e.g. ConfigurationError)."""
    status_code = http_status_for(exc)
    logger.error(
        "unhandled_domain_error",
        code=exc.code,
        error=exc.message,
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


@app.get("/health")
async def health_check() -> dict:
    """Liveness check with the active feature flags."""
    return {
        "status": "healthy",
        "environment": settings.app_env,
        "version": app.version,
        "tracing": settings.enable_tracing,
        "notifications": settings.enable_notifications,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "hangar.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
