# backend/listing_media/models/media_model.py
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..enums import ChunkedUploadStatus, ImageFormat, ValidationErrorCode


class QualityTier(BaseModel):
    """One fixed resize/quality target"""

    name: str = Field(..., min_length=1, description="Tier name, e.g. 'thumbnail'")
    width: int = Field(..., gt=0, description="Target box width in pixels")
    height: int = Field(..., gt=0, description="Target box height in pixels")
    quality: int = Field(..., ge=1, le=100, description="Encoder quality 1-100")
    aspect: str = Field(default="3:2", description="Target aspect ratio label")
    format: ImageFormat = Field(default=ImageFormat.WEBP, description="Output format")


class ValidationIssue(BaseModel):
    code: ValidationErrorCode
    message: str
    field: str = "file"
    fatal: bool = True


class UploadedMedia(BaseModel):
    """Transient upload input, discarded after processing"""

    content: bytes = Field(..., repr=False)
    filename: str
    mime_type: str = ""
    extension: str = ""
    size: int = Field(..., ge=0)


class UploadedImage(UploadedMedia):
    # Read from the decoded header; None when the header is unreadable
    width: Optional[int] = None
    height: Optional[int] = None


class ImageVariant(BaseModel):
    tier: str
    path: str
    url: str
    size: int = Field(..., ge=0)
    quality: int
    width: int
    height: int
    format: ImageFormat
    progressive: bool = False


class EncodedVariant(BaseModel):
    """Variant bytes produced by the generator, not yet stored"""

    tier: str
    content: bytes = Field(..., repr=False)
    quality: int
    width: int
    height: int
    format: ImageFormat
    progressive: bool = False

    @property
    def extension(self) -> str:
        return "jpg" if self.format == ImageFormat.JPEG else self.format.value

    @property
    def mime_type(self) -> str:
        return f"image/{self.format.value}"


class StorageWriteResult(BaseModel):
    success: bool
    path: str
    public_url: Optional[str] = None
    error: Optional[str] = None


class FileInfo(BaseModel):
    path: str
    url: str
    size: int = 0
    mime_type: Optional[str] = None
    last_modified: Optional[str] = None


class UploadedImageResult(BaseModel):
    """All variants of one successfully processed image"""

    original_name: str
    mime_type: str
    size: int
    variants: Dict[str, ImageVariant]
    warnings: List[ValidationIssue] = Field(default_factory=list)


class UploadedVideoResult(BaseModel):
    original_name: str
    path: str
    url: str
    mime_type: str
    size: int


class BatchItemError(BaseModel):
    file: str
    error: str
    details: Optional[List[ValidationIssue]] = None


class BatchUploadResult(BaseModel):
    """Itemized outcome of a multi-file upload"""

    uploaded: List[BaseModel] = Field(default_factory=list)
    errors: List[BatchItemError] = Field(default_factory=list)

    @property
    def total_uploaded(self) -> int:
        return len(self.uploaded)

    @property
    def total_errors(self) -> int:
        return len(self.errors)

    def to_response(self) -> dict:
        return {
            "uploaded": [item.model_dump(mode="json") for item in self.uploaded],
            "errors": [item.model_dump(mode="json") for item in self.errors],
            "total_uploaded": self.total_uploaded,
            "total_errors": self.total_errors,
        }


class ChunkedUploadSession(BaseModel):
    """Stored metadata of a chunked upload session"""

    upload_id: str
    filename: str
    mime_type: str
    filesize: int
    chunk_size: int
    total_chunks: int
    property_id: int
    created_at: float = Field(..., description="Unix timestamp of initiation")


class ChunkedUploadProgress(BaseModel):
    upload_id: str
    filename: str
    uploaded_chunks: int
    total_chunks: int
    progress: float = Field(..., description="Percentage of chunks received")
    status: ChunkedUploadStatus


class PropertyMediaListing(BaseModel):
    property_id: int
    images: List[FileInfo] = Field(default_factory=list)
    videos: List[FileInfo] = Field(default_factory=list)


# =============================================================================
# REQUEST MODELS
# =============================================================================


class Base64ImageUploadRequest(BaseModel):
    image_data: str = Field(..., description="data:image/<fmt>;base64,<payload>")
    property_id: Optional[int] = Field(None, ge=1)
    folder: Optional[str] = Field(None, max_length=255)
    filename: Optional[str] = Field(None, max_length=255)

    model_config = ConfigDict(str_strip_whitespace=True)


class DeletePathRequest(BaseModel):
    path: str = Field(..., min_length=1, max_length=1024)


class ChunkedUploadInitRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    mime_type: str = Field(..., min_length=1, max_length=100)
    filesize: int = Field(..., ge=1, description="Total size of the assembled file")
    chunk_size: int = Field(..., ge=1, description="Size of every chunk but the last")
    total_chunks: int = Field(..., ge=1)
    property_id: int = Field(..., ge=1)

    model_config = ConfigDict(str_strip_whitespace=True)
