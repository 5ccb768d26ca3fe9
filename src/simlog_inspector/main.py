"""simlog-inspector HTTP service entry point.

Initializes the FastAPI application with:
- structlog configuration from settings
- The inspection router under /api/v1
- Mapping of inspector errors to HTTP error responses
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from simlog_inspector import __version__
from simlog_inspector.api.routes import get_settings, inspector_error_handler, router
from simlog_inspector.errors import InspectorError
from simlog_inspector.observability import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging on startup and log shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None
    """
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.json_logs)
    logger.info(
        "Inspector startup complete",
        service=settings.service_name,
        log_dir=str(settings.log_dir),
        tick_order=settings.tick_order,
    )

    yield

    logger.info("Inspector shutdown complete", service=settings.service_name)


app: FastAPI = FastAPI(title="simlog-inspector", version=__version__, lifespan=lifespan)
app.add_exception_handler(InspectorError, inspector_error_handler)
app.include_router(router, prefix="/api/v1")


@app.get("/health", tags=["Health"])
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok", "version": __version__}
