"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from asset_catalog.api.dependencies import get_materializer
from asset_catalog.api.exceptions import register_exception_handlers
from asset_catalog.api.middleware import RequestLoggingMiddleware
from asset_catalog.api.routers import assets, catalog, connections, health, users
from asset_catalog.config import get_settings, validate_config
from asset_catalog.logging_config import configure_logging, get_logger

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging()
    logger.info("Starting Data Asset Catalog", environment=settings.environment)

    # Validate configuration (strict mode in production)
    validate_config(settings, strict=settings.is_production)
    logger.info("Configuration validated")

    materializer = get_materializer()
    table_set = await materializer.table_store.load()
    logger.info("Flat-file tables loaded", **table_set.summary())

    yield

    # Shutdown
    logger.info("Shutting down Data Asset Catalog")


API_DESCRIPTION = """
# Data Asset Catalog API

Read-only access to a unified catalog of data assets.

## Sources

- **Flat-file tables**: nine CSV tables (assets, columns, tags, glossary terms,
  lineage, users, bookmarks and their link tables) joined in memory
- **Snowflake**: live metadata from `INFORMATION_SCHEMA` and
  `SNOWFLAKE.ACCOUNT_USAGE.OBJECT_DEPENDENCIES`

Every asset is returned in the same shape whichever source it came from.
Select the source with the `source` query parameter of `GET /assets`.
"""

OPENAPI_TAGS = [
    {
        "name": "health",
        "description": "Health check endpoints for monitoring"
    },
    {
        "name": "assets",
        "description": "Data assets - list, inspect, lineage, and sample rows"
    },
    {
        "name": "catalog",
        "description": "Flat-file cache control and load status"
    },
    {
        "name": "connections",
        "description": "Warehouse connection testing"
    },
    {
        "name": "users",
        "description": "Catalog users and their bookmarked assets"
    },
]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description=API_DESCRIPTION,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )

    # Request logging (runs early to capture all requests)
    app.add_middleware(RequestLoggingMiddleware)

    # CORS (runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
    app.include_router(assets.router, prefix=settings.api_prefix)
    app.include_router(catalog.router, prefix=settings.api_prefix)
    app.include_router(connections.router, prefix=settings.api_prefix)
    app.include_router(users.router, prefix=settings.api_prefix)

    # Register exception handlers
    register_exception_handlers(app)

    return app


# Create the app instance
app = create_app()
