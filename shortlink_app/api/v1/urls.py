from typing import List, Optional

from fastapi import APIRouter, Depends, status
from shortlink_app.schemas.url import URLCreate, URLUpdate, StatusUpdate, URLResponse, URLStats
from shortlink_app.services.url_service import URLService
from shortlink_app.dependencies import get_url_service, get_current_user_id

router = APIRouter(prefix="/urls", tags=["urls"])

# NotFoundError / UnauthorizedError / InvalidArgumentError are mapped to
# HTTP responses by the exception handlers registered in main.py


@router.post("/", response_model=URLResponse, status_code=status.HTTP_201_CREATED)
async def create_short_url(
    url_data: URLCreate,
    user_id: Optional[str] = Depends(get_current_user_id),
    url_service: URLService = Depends(get_url_service)
):
    """Create a short URL (returns the existing one for a repeated URL)"""
    return await url_service.create_url(url_data.original_url, user_id)


@router.get("/", response_model=List[URLResponse])
async def list_my_urls(
    user_id: Optional[str] = Depends(get_current_user_id),
    url_service: URLService = Depends(get_url_service)
):
    """List the caller's URLs"""
    return await url_service.get_by_user(user_id)


@router.get("/id/{url_id}", response_model=URLResponse)
async def get_url_by_id(
    url_id: int,
    user_id: Optional[str] = Depends(get_current_user_id),
    url_service: URLService = Depends(get_url_service)
):
    return await url_service.get_by_id(url_id, user_id)


@router.put("/id/{url_id}", response_model=URLResponse)
async def update_url(
    url_id: int,
    url_data: URLUpdate,
    user_id: Optional[str] = Depends(get_current_user_id),
    url_service: URLService = Depends(get_url_service)
):
    """Point the short code at a new URL"""
    return await url_service.update_by_id(url_id, url_data.original_url, user_id)


@router.patch("/id/{url_id}/status", response_model=URLResponse)
async def update_url_status(
    url_id: int,
    status_data: StatusUpdate,
    user_id: Optional[str] = Depends(get_current_user_id),
    url_service: URLService = Depends(get_url_service)
):
    """Activate or deactivate a short URL"""
    return await url_service.set_status(url_id, status_data.status, user_id)


@router.post("/id/{url_id}/refresh", response_model=URLResponse)
async def refresh_url_cache(
    url_id: int,
    user_id: Optional[str] = Depends(get_current_user_id),
    url_service: URLService = Depends(get_url_service)
):
    """Reload the URL from the database into the cache"""
    return await url_service.refresh_cache(url_id, user_id)


@router.delete("/id/{url_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_url_by_id(
    url_id: int,
    user_id: Optional[str] = Depends(get_current_user_id),
    url_service: URLService = Depends(get_url_service)
):
    await url_service.delete_by_id(url_id, user_id)


@router.get("/code/{short_code}", response_model=URLResponse)
async def get_url_info(
    short_code: str,
    user_id: Optional[str] = Depends(get_current_user_id),
    url_service: URLService = Depends(get_url_service)
):
    return await url_service.get_by_short_code(short_code, user_id)


@router.get("/code/{short_code}/stats", response_model=URLStats)
async def get_url_stats(
    short_code: str,
    user_id: Optional[str] = Depends(get_current_user_id),
    url_service: URLService = Depends(get_url_service)
):
    return await url_service.get_stats(short_code, user_id)


@router.delete("/code/{short_code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_url_by_short_code(
    short_code: str,
    user_id: Optional[str] = Depends(get_current_user_id),
    url_service: URLService = Depends(get_url_service)
):
    await url_service.delete_by_short_code(short_code, user_id)
