"""Site configuration routes."""

from fastapi import APIRouter, Depends

from metastore.dependencies import get_catalog_service, get_current_user
from metastore.schemas.site_config import SiteConfig, SiteConfigUpdate
from metastore.schemas.user import User
from metastore.services.catalog_service import CatalogService

router = APIRouter(prefix="/site-config", tags=["site-config"])


@router.get("", response_model=SiteConfig)
async def get_site_config(catalog: CatalogService = Depends(get_catalog_service)):
    return await catalog.get_site_config()


@router.put("", response_model=SiteConfig)
async def update_site_config(
    payload: SiteConfigUpdate,
    user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return await catalog.update_site_config(payload)
