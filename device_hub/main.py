from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from device_hub import __version__
from device_hub.api.routes import devices, health
from device_hub.core.config import Settings, get_settings
from device_hub.exceptions import DiscoveryError
from device_hub.services.device_registry import DeviceRegistry
from device_hub.services.discovery import DiscoveryResponder

logger = logging.getLogger("device_hub")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _validation_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        field = ".".join(loc[1:]) if len(loc) > 1 else ".".join(loc)
        errors.append({"field": field, "message": error.get("msg", "Invalid value")})
    return errors


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request payload.", "errors": _validation_errors(exc)},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    registry: DeviceRegistry = app.state.registry
    registry.start()

    responder: DiscoveryResponder | None = None
    if settings.discovery_enabled:
        responder = DiscoveryResponder(
            host=settings.discovery_host,
            port=settings.discovery_port,
            request_message=settings.discovery_request,
            response_message=settings.discovery_response,
        )
        try:
            responder.start()
        except DiscoveryError:
            logger.exception("Discovery responder disabled")
            responder = None
    app.state.discovery = responder

    yield

    if responder is not None:
        responder.stop()
    registry.stop()


def create_app(settings: Settings | None = None, registry: DeviceRegistry | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry if registry is not None else DeviceRegistry(
        heartbeat_ttl_ms=settings.heartbeat_ttl_ms,
        cleanup_interval_ms=settings.cleanup_interval_ms,
    )
    app.state.discovery = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(devices.router, prefix=settings.api_prefix)
    return app


app = create_app()
