"""
MS Portfolio BS application.

Wires configuration, structured logging, the shared MongoDB client and the
portfolio routes together. The client is opened once in the lifespan,
shared by every request through ``app.state`` and closed on shutdown.
Startup is aborted when the store cannot be reached.
"""

import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.openapi.docs import get_swagger_ui_html
from pydantic import ValidationError

from ms_portfolio_bs import api
from ms_portfolio_bs.config import Settings, get_settings
from ms_portfolio_bs.database import close_client, connect_to_mongodb
from ms_portfolio_bs.errors import PortfolioServiceError
from ms_portfolio_bs.logging_config import LoggingMiddleware, get_logger, setup_logging
from ms_portfolio_bs.repository import PortfolioRepository
from ms_portfolio_bs.schemas import StatusResponse

logger = get_logger(__name__)

API_TITLE = "MS Portfolio BS API"
API_DESCRIPTION = "This is a simple API for managing portfolios"
API_VERSION = "1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    logger.info("Starting MS Portfolio BS", database=settings.mongo_db, collection=settings.mongo_collection)
    try:
        client = await connect_to_mongodb(
            settings.mongo_uri,
            server_selection_timeout_ms=settings.mongo_server_selection_timeout_ms,
        )
    except PortfolioServiceError as e:
        logger.critical(
            f"Error connecting to MongoDB: {e}",
            error_type=type(e).__name__
        )
        raise RuntimeError(f"Application startup failed: {e}") from e

    app.state.mongo_client = client
    app.state.repository = PortfolioRepository(
        client[settings.mongo_db][settings.mongo_collection],
        trace_enabled=settings.enable_database_tracing,
    )

    try:
        yield
    finally:
        logger.info("Shutting down MS Portfolio BS")
        close_client(app.state.mongo_client)
        app.state.mongo_client = None
        app.state.repository = None


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application. Logging is left to the caller."""
    settings = settings or get_settings()

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        lifespan=lifespan,
        docs_url="/swagger",
        openapi_url="/swagger/openapi.json",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    app.add_middleware(LoggingMiddleware)
    app.include_router(api.router, prefix=settings.base_path)

    @app.get("/", response_model=StatusResponse, tags=["health"])
    async def root():
        """Liveness check."""
        return StatusResponse(message="OK")

    @app.get("/swagger/index.html", include_in_schema=False)
    async def swagger_index():
        return get_swagger_ui_html(openapi_url=app.openapi_url, title=f"{app.title} - Swagger UI")

    return app


def app_factory() -> FastAPI:
    """
    Configure logging from settings and build the application.

    For ``uvicorn --factory ms_portfolio_bs.main:app_factory``.
    """
    settings = get_settings()
    setup_logging(log_level=settings.log_level)
    return create_app(settings)


def run() -> None:
    """Console entry point. Exits non-zero when configuration is missing."""
    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        logger.critical("MONGO_URI is not set in environment or .env file", error=str(e))
        sys.exit(1)

    app = app_factory()

    logger.info("Starting HTTP server", host=settings.http_host, port=settings.http_port)
    uvicorn.run(app, host=settings.http_host, port=settings.http_port, log_config=None)


if __name__ == "__main__":
    run()
