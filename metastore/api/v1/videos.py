"""Video API routes — list, get, create, update, delete, count views."""

from fastapi import APIRouter, Depends, HTTPException, status

from metastore.dependencies import get_catalog_service, get_current_user
from metastore.schemas.user import User
from metastore.schemas.video import Video, VideoCreate, VideoUpdate
from metastore.services.catalog_service import CatalogService

router = APIRouter(prefix="/videos", tags=["videos"])


@router.get("", response_model=list[Video])
async def list_videos(
    include_inactive: bool = False,
    catalog: CatalogService = Depends(get_catalog_service),
):
    return await catalog.get_all_videos(include_inactive=include_inactive)


@router.get("/{video_id}", response_model=Video)
async def get_video(video_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    video = await catalog.get_video(video_id)
    if not video:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return video


@router.post("", response_model=Video, status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: VideoCreate,
    user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return await catalog.create_video(payload)


@router.put("/{video_id}", response_model=Video)
async def update_video(
    video_id: str,
    payload: VideoUpdate,
    user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    video = await catalog.update_video(video_id, payload)
    if not video:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return video


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    success = await catalog.delete_video(video_id)
    if not success:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return {"success": True, "message": "Video deleted"}


@router.get("/{video_id}/urls")
async def get_video_urls(video_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    urls = await catalog.get_video_urls(video_id)
    if urls is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return urls


@router.post("/{video_id}/views")
async def increment_views(video_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    views = await catalog.increment_video_views(video_id)
    if views is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return {"views": views}
