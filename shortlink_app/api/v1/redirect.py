from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse
from shortlink_app.services.url_service import URLService
from shortlink_app.dependencies import get_url_service

router = APIRouter(tags=["redirect"])


@router.get("/r/{short_code}")
async def redirect_to_original_url(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """
    Redirect to the original URL.

    Flow:
    1. Resolve short code (shortcode_mapping -> id -> record, cache first)
    2. Refuse inactive URLs (same 404 as unknown codes)
    3. Atomically count the click in the database, refresh the cache
    4. 302 to the original URL

    Public endpoint - no ownership check.
    """
    original_url = await url_service.resolve_and_increment(short_code)
    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)
