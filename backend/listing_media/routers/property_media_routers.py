# backend/listing_media/routers/property_media_routers.py
"""
Per-property media HTTP endpoints: cached listing and cascade purge.
"""

from fastapi import APIRouter, Path, Query

from ..dependencies import MediaServiceDep
from ..enums import MediaListingKind
from ..utils.response_helpers import ResponseFormatter
from ..utils.router_helpers import handle_exceptions

router = APIRouter(tags=["property-media"])


@router.get("/properties/{property_id}/media")
@handle_exceptions("list property media")
async def list_property_media(
    media_service: MediaServiceDep,
    property_id: int = Path(..., ge=1),
    kind: MediaListingKind = Query(MediaListingKind.ALL),
):
    listing = await media_service.list_property_media(property_id, kind)
    return ResponseFormatter.success(
        "Property media retrieved successfully", data=listing.model_dump(mode="json")
    )


@router.delete("/properties/{property_id}/media")
@handle_exceptions("purge property media")
async def purge_property_media(
    media_service: MediaServiceDep,
    property_id: int = Path(..., ge=1),
):
    """Delete every stored image and video of a property"""
    result = await media_service.purge_property_media(property_id)
    message = (
        "Property media deleted successfully"
        if not result["failed"]
        else "Some property media could not be deleted"
    )
    return ResponseFormatter.success(message, data=result)
