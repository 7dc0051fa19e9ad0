# backend/listing_media/routers/chunked_upload_routers.py
"""
Chunked video upload HTTP endpoints.

Large videos are sent as numbered chunks against a session opened by the
initiate call and stored once the complete call assembles them.
"""
# NOTE: THIS FILE SHOULD NOT CONTAIN ANY BUSINESS LOGIC.

from fastapi import APIRouter, File, Form, UploadFile, status

from ..dependencies import ChunkedUploadServiceDep, SettingsDep
from ..models.media_model import ChunkedUploadInitRequest
from ..utils.response_helpers import ResponseFormatter
from ..utils.router_helpers import handle_exceptions, read_media_upload

router = APIRouter(tags=["chunked-uploads"])


@router.post("/videos/chunked", status_code=status.HTTP_201_CREATED)
@handle_exceptions("initiate chunked upload")
async def initiate_chunked_upload(
    request: ChunkedUploadInitRequest,
    chunked_upload_service: ChunkedUploadServiceDep,
):
    session = await chunked_upload_service.initiate(request)
    return ResponseFormatter.success(
        "Chunked upload initiated", data=session.model_dump(mode="json")
    )


@router.post("/videos/chunked/{upload_id}/chunks")
@handle_exceptions("upload chunk")
async def upload_chunk(
    upload_id: str,
    chunked_upload_service: ChunkedUploadServiceDep,
    settings: SettingsDep,
    chunk: UploadFile = File(...),
    chunk_number: int = Form(..., ge=0),
):
    upload = await read_media_upload(chunk, settings.chunk_max_size_bytes)
    progress = await chunked_upload_service.upload_chunk(upload_id, chunk_number, upload)
    return ResponseFormatter.success(
        f"Chunk {chunk_number} uploaded", data=progress.model_dump(mode="json")
    )


@router.get("/videos/chunked/{upload_id}")
@handle_exceptions("get chunked upload progress")
async def get_chunked_upload_progress(
    upload_id: str, chunked_upload_service: ChunkedUploadServiceDep
):
    progress = await chunked_upload_service.get_progress(upload_id)
    return ResponseFormatter.success(
        "Upload progress retrieved", data=progress.model_dump(mode="json")
    )


@router.post("/videos/chunked/{upload_id}/complete", status_code=status.HTTP_201_CREATED)
@handle_exceptions("complete chunked upload")
async def complete_chunked_upload(
    upload_id: str, chunked_upload_service: ChunkedUploadServiceDep
):
    result = await chunked_upload_service.complete(upload_id)
    return ResponseFormatter.success(
        "Video uploaded successfully", data=result.model_dump(mode="json")
    )


@router.delete("/videos/chunked/{upload_id}")
@handle_exceptions("cancel chunked upload")
async def cancel_chunked_upload(
    upload_id: str, chunked_upload_service: ChunkedUploadServiceDep
):
    cancelled = await chunked_upload_service.cancel(upload_id)
    return ResponseFormatter.success(
        "Chunked upload cancelled",
        data={"upload_id": upload_id, "cancelled": cancelled},
    )
