"""Aggregates all v1 API routers into a single router."""

from fastapi import APIRouter

from metastore.api.v1.auth import router as auth_router
from metastore.api.v1.backup import router as backup_router
from metastore.api.v1.health import router as health_router
from metastore.api.v1.site_config import router as site_config_router
from metastore.api.v1.videos import router as videos_router

v1_router = APIRouter(prefix="/api/v1")

v1_router.include_router(auth_router)
v1_router.include_router(backup_router)
v1_router.include_router(health_router)
v1_router.include_router(site_config_router)
v1_router.include_router(videos_router)
