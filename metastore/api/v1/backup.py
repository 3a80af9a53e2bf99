"""Backup and restore routes."""

from dataclasses import asdict

from fastapi import APIRouter, Body, Depends

from metastore.dependencies import get_catalog_service, get_current_user
from metastore.schemas.user import User
from metastore.services.catalog_service import CatalogService

router = APIRouter(tags=["backup"])


@router.post("/backup")
async def create_backup(
    user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    pointer = await catalog.backup()
    return {"success": True, **pointer}


@router.post("/restore")
async def restore(
    bundle: dict | None = Body(default=None),
    user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Restore the posted bundle, or the latest uploaded backup when no body is sent."""
    if bundle is None:
        result = await catalog.restore_latest()
    else:
        result = await catalog.restore(bundle)
    return {"success": True, **asdict(result)}


@router.get("/backup/status")
async def backup_status(
    user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return await catalog.backup_status()
