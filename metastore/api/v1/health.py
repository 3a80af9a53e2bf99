"""Health check endpoints."""

from fastapi import APIRouter, Depends

from metastore.dependencies import get_catalog_service
from metastore.services.catalog_service import CatalogService

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check(catalog: CatalogService = Depends(get_catalog_service)):
    return {"status": "ok", "sourceOfTruth": catalog.source_of_truth}
