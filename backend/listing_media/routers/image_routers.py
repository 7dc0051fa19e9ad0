# backend/listing_media/routers/image_routers.py
"""
Image upload HTTP endpoints.

Role: Image upload, deletion and metadata endpoints
Responsibilities: Multipart/base64 intake, status codes, response envelope
Interactions: Uses MediaService for all business logic
"""
# NOTE: THIS FILE SHOULD NOT CONTAIN ANY BUSINESS LOGIC.

from typing import List, Optional

from fastapi import APIRouter, File, Form, Query, UploadFile, status
from fastapi.responses import JSONResponse

from ..dependencies import MediaServiceDep, SettingsDep
from ..models.media_model import Base64ImageUploadRequest, DeletePathRequest
from ..utils.response_helpers import ResponseFormatter
from ..utils.router_helpers import (
    handle_exceptions,
    read_image_upload,
    read_image_uploads,
)

router = APIRouter(tags=["images"])


@router.post("/images/upload", status_code=status.HTTP_201_CREATED)
@handle_exceptions("upload image")
async def upload_image(
    media_service: MediaServiceDep,
    settings: SettingsDep,
    image: UploadFile = File(...),
    property_id: Optional[int] = Form(None, ge=1),
    folder: Optional[str] = Form(None, max_length=255),
):
    """Upload one image and store every quality tier"""
    upload = await read_image_upload(image, settings.image_max_size_bytes)
    result = await media_service.upload_image(upload, property_id, folder)

    return ResponseFormatter.success(
        "Image uploaded successfully", data=result.model_dump(mode="json")
    )


@router.post("/images/upload-multiple")
@handle_exceptions("upload images")
async def upload_multiple_images(
    media_service: MediaServiceDep,
    settings: SettingsDep,
    images: Optional[List[UploadFile]] = File(None),
    bracketed_images: Optional[List[UploadFile]] = File(None, alias="images[]"),
    property_id: Optional[int] = Form(None, ge=1),
    folder: Optional[str] = Form(None, max_length=255),
):
    """Upload several images sent as 'images' or 'images[]'; results are itemized"""
    uploads = await read_image_uploads(
        (images or []) + (bracketed_images or []), settings.image_max_size_bytes
    )
    batch = await media_service.upload_images(uploads, property_id, folder)

    if batch.total_uploaded == 0:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ResponseFormatter.error(
                "No images were uploaded",
                error_code="UPLOAD_FAILED",
                errors=batch.to_response()["errors"],
            ),
        )

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=ResponseFormatter.success(
            f"{batch.total_uploaded} image(s) uploaded successfully",
            data=batch.to_response(),
        ),
    )


@router.post("/images/upload-base64", status_code=status.HTTP_201_CREATED)
@handle_exceptions("upload base64 image")
async def upload_base64_image(
    request: Base64ImageUploadRequest, media_service: MediaServiceDep
):
    """Upload an image sent as a base64 data URI"""
    result = await media_service.upload_base64_image(request)

    return ResponseFormatter.success(
        "Image uploaded successfully", data=result.model_dump(mode="json")
    )


@router.delete("/images")
@handle_exceptions("delete image")
async def delete_image(request: DeletePathRequest, media_service: MediaServiceDep):
    """Delete one stored image"""
    data = await media_service.delete_image(request.path)
    return ResponseFormatter.success("Image deleted successfully", data=data)


@router.get("/images/info")
@handle_exceptions("get image info")
async def get_image_info(
    media_service: MediaServiceDep,
    path: str = Query(..., min_length=1, max_length=1024),
):
    """Metadata of one stored image"""
    info = await media_service.get_image_info(path)
    return ResponseFormatter.success(
        "Image info retrieved successfully", data=info.model_dump(mode="json")
    )
