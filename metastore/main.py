"""
FastAPI application factory — entry point for the VideosPlus metadata API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from metastore.api.v1.router import v1_router
from metastore.config import settings
from metastore.dependencies import build_catalog_service
from metastore.middleware.error_handler import (
    ErrorHandlerMiddleware,
    RequestIdMiddleware,
    register_error_handlers,
)
from metastore.services.catalog_service import CatalogService


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    catalog: CatalogService = app.state.catalog
    await catalog.initialize()
    await catalog.bootstrap(settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)

    yield

    await catalog.close()


def create_app(catalog: CatalogService | None = None) -> FastAPI:
    app = FastAPI(
        title="VideosPlus Metadata API",
        description="Catalog, users, sessions and site configuration for VideosPlus.",
        version="2.0.0",
        lifespan=lifespan,
    )
    app.state.catalog = catalog or build_catalog_service(settings)

    # ── Middleware (order matters — outermost first) ──────
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    # ── API Routes ───────────────────────────────────────
    app.include_router(v1_router)

    # ── Static file serving for locally stored objects ───
    media_path = settings.STORAGE_LOCAL_PATH
    if settings.STORAGE_BACKEND == "local" and media_path.exists():
        app.mount("/media", StaticFiles(directory=str(media_path)), name="media")

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "metastore.main:create_app",
        factory=True,
        host=settings.BACKEND_HOST,
        port=settings.BACKEND_PORT,
        reload=True,
    )
