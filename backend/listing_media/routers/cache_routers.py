# backend/listing_media/routers/cache_routers.py
"""
Cache administration endpoints.
"""

from fastapi import APIRouter, Query

from ..dependencies import MediaServiceDep
from ..utils.response_helpers import ResponseFormatter
from ..utils.router_helpers import handle_exceptions

router = APIRouter(tags=["cache"])


@router.get("/cache/stats")
@handle_exceptions("get cache stats")
async def get_cache_stats(media_service: MediaServiceDep):
    stats = await media_service.get_cache_stats()
    return ResponseFormatter.success("Cache statistics retrieved", data=stats)


@router.delete("/cache")
@handle_exceptions("clear cache")
async def clear_cache(
    media_service: MediaServiceDep,
    expired_only: bool = Query(False, description="Only drop expired entries"),
):
    removed = await media_service.clear_cache(expired_only=expired_only)
    return ResponseFormatter.success("Cache cleared", data={"removed": removed})
