# backend/listing_media/routers/video_routers.py
"""
Video upload HTTP endpoints.

Videos are stored unchanged; validation failures answer 400.
"""
# NOTE: THIS FILE SHOULD NOT CONTAIN ANY BUSINESS LOGIC.

from typing import List, Optional

from fastapi import APIRouter, File, Form, UploadFile, status
from fastapi.responses import JSONResponse

from ..dependencies import MediaServiceDep, SettingsDep
from ..models.media_model import DeletePathRequest
from ..utils.response_helpers import ResponseFormatter
from ..utils.router_helpers import handle_exceptions, read_media_upload

router = APIRouter(tags=["videos"])


@router.post("/videos/upload", status_code=status.HTTP_201_CREATED)
@handle_exceptions("upload video")
async def upload_video(
    media_service: MediaServiceDep,
    settings: SettingsDep,
    video: UploadFile = File(...),
    property_id: int = Form(..., ge=1),
):
    upload = await read_media_upload(video, settings.video_max_size_bytes)
    result = await media_service.upload_video(upload, property_id)
    return ResponseFormatter.success(
        "Video uploaded successfully", data=result.model_dump(mode="json")
    )


@router.post("/videos/upload-multiple")
@handle_exceptions("upload videos")
async def upload_multiple_videos(
    media_service: MediaServiceDep,
    settings: SettingsDep,
    videos: Optional[List[UploadFile]] = File(None),
    bracketed_videos: Optional[List[UploadFile]] = File(None, alias="videos[]"),
    property_id: int = Form(..., ge=1),
):
    uploads = [
        await read_media_upload(video, settings.video_max_size_bytes)
        for video in (videos or []) + (bracketed_videos or [])
    ]
    batch = await media_service.upload_videos(uploads, property_id)

    if batch.total_uploaded == 0:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ResponseFormatter.error(
                "No videos were uploaded",
                error_code="UPLOAD_FAILED",
                errors=batch.to_response()["errors"],
            ),
        )

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=ResponseFormatter.success(
            f"{batch.total_uploaded} video(s) uploaded successfully",
            data=batch.to_response(),
        ),
    )


@router.delete("/videos")
@handle_exceptions("delete video")
async def delete_video(request: DeletePathRequest, media_service: MediaServiceDep):
    data = await media_service.delete_video(request.path)
    return ResponseFormatter.success("Video deleted successfully", data=data)
