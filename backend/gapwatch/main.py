from contextlib import asynccontextmanager
import logging

from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from gapwatch.api.metrics import router as metrics_router
from gapwatch.api.pages import router as pages_router
from gapwatch.api.v1.routes import router as api_router
from gapwatch.api.v1.shared.dependencies import get_open_bus_client
from gapwatch.core.config import get_settings
from gapwatch.core.telemetry import configure_tracing, instrument_app
from gapwatch.services.session_store import get_valkey_client

logger = logging.getLogger(__name__)
REQUEST_ID_HEADER = "X-Request-Id"


def _install_request_id_middleware(app: FastAPI) -> None:
    """Ensure each response includes a stable X-Request-Id header."""

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER, str(uuid4()))
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    settings = get_settings()

    configure_tracing(settings)

    yield

    if get_open_bus_client.cache_info().currsize:
        await get_open_bus_client().aclose()
    if get_valkey_client.cache_info().currsize:
        await get_valkey_client().aclose()
    logger.info("GapWatch shut down")


def create_app() -> FastAPI:
    """Application factory for FastAPI."""
    settings = get_settings()
    app = FastAPI(
        title="GapWatch API",
        description=(
            "Backend service comparing planned GTFS rides with observed SIRI "
            "rides and keeping each session's search shareable via its URL."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    instrument_app(app, settings)
    _install_request_id_middleware(app)

    allow_origins = settings.cors_allow_origins
    allow_origin_regex = settings.cors_allow_origin_regex
    if allow_origins or allow_origin_regex:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allow_origins,
            allow_origin_regex=allow_origin_regex,
            allow_credentials=bool(allow_origins),
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(metrics_router)
    app.include_router(api_router, prefix="/api/v1")
    # Catch-all page routes go last so they never shadow the API.
    app.include_router(pages_router)

    return app


app = create_app()
