"""
Gallery API endpoints.

Thin mapping from HTTP to the gallery service:
- POST   /api/upload                 store one image
- GET    /api/images                 one page of images, newest first
- DELETE /api/images/{key}           remove an image (idempotent)
- GET    /api/images/{key}/metadata  stored metadata for one image

Keys may contain '/' (they always do: images/<id>.png), so the key
parameters use the path converter. JSON fields are camelCase because
that is what the browser client consumes.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, File, Query, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...core.gallery.errors import GalleryError, NotFound, ValidationError
from ..dependencies import GalleryServiceDep, SettingsDep
from ..errors import ErrorResponse, gallery_error_response

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class CamelModel(BaseModel):
    """Base model that serializes field names as camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadResponse(CamelModel):
    """Response after a successful upload."""
    success: bool = Field(True, description="Always true on success")
    url: str = Field(description="Public URL of the stored image")
    key: str = Field(description="Storage key of the image")
    file_name: str = Field(description="Generated file name (last key segment)")


class ImageItem(CamelModel):
    """One image in a gallery page."""
    key: str = Field(description="Storage key")
    url: str = Field(description="Public URL")
    last_modified: datetime = Field(description="When the store wrote the object")
    size: int = Field(description="Size in bytes")


class ImagePageResponse(CamelModel):
    """One page of the gallery."""
    images: list[ImageItem] = Field(description="Images on this page, newest first")
    total_count: int = Field(description="Images under the prefix")
    total_pages: int = Field(description="Pages at the requested page size")
    current_page: int = Field(description="Page returned (1-based)")
    has_more: bool = Field(description="Whether a later page exists")


class DeleteResponse(CamelModel):
    """Response after deleting an image."""
    success: bool = Field(True, description="Always true on success")
    message: str = Field(description="Status message")


class MetadataResponse(CamelModel):
    """Stored metadata for one image."""
    key: str = Field(description="Storage key")
    size: int = Field(description="Size in bytes")
    last_modified: datetime = Field(description="When the store wrote the object")
    content_type: Optional[str] = Field(None, description="MIME type given at upload")
    metadata: dict[str, str] = Field(default_factory=dict, description="Custom metadata written at upload")


STORAGE_FAILURE = {500: {"model": ErrorResponse, "description": "Storage failure"}}

UPLOAD_RESPONSES = {
    400: {"model": ErrorResponse, "description": "No file, not an image, or too large"},
    **STORAGE_FAILURE,
}


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def parse_int_param(value: Optional[str]) -> Optional[int]:
    """
    Parse a query parameter as an int.

    Missing or non-numeric values return None so the caller's default
    applies. Callers treat 0 the same way; negative values are clamped
    to 1 later by the aggregator.
    """
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload an image",
    description="Store one image (multipart field 'image') under a freshly generated key",
    responses=UPLOAD_RESPONSES,
)
async def upload_image(
    gallery: GalleryServiceDep,
    settings: SettingsDep,
    image: Annotated[Optional[UploadFile], File(description="Image file (image/*)")] = None,
):
    """
    Upload an image.

    At most one byte beyond the size limit is read, which is enough to
    reject oversized files without buffering the whole body.
    """
    if image is None:
        logger.warning("Upload without file")
        return gallery_error_response(ValidationError("No file provided"), settings)

    data = await image.read(gallery.max_upload_mb * 1024 * 1024 + 1)

    try:
        result = await gallery.upload_image(
            data=data,
            original_name=image.filename,
            content_type=image.content_type,
        )
    except ValidationError as e:
        logger.warning(
            "Upload rejected",
            extra={
                "original_name": image.filename,
                "content_type": image.content_type,
                "reason": e.message,
            }
        )
        return gallery_error_response(e, settings)
    except GalleryError as e:
        logger.error(
            "Upload error",
            extra={"original_name": image.filename, "error": e.message, "details": e.details}
        )
        return gallery_error_response(e, settings, error="Failed to upload image")

    return UploadResponse(
        url=result.url,
        key=result.key,
        file_name=result.file_name,
    )


@router.get(
    "/images",
    response_model=ImagePageResponse,
    status_code=status.HTTP_200_OK,
    summary="List images",
    description="Recency-ordered, paginated listing of images under a prefix",
    responses=STORAGE_FAILURE,
)
async def list_images(
    gallery: GalleryServiceDep,
    settings: SettingsDep,
    page: Annotated[Optional[str], Query(description="1-based page number")] = None,
    limit: Annotated[Optional[str], Query(description="Images per page")] = None,
    prefix: Annotated[Optional[str], Query(description="Key prefix to list")] = None,
):
    """
    Get one page of images.

    Every request enumerates the whole prefix, so results always reflect
    the bucket at request time.
    """
    try:
        result = await gallery.list_images(
            page=parse_int_param(page) or 1,
            page_size=parse_int_param(limit) or None,
            prefix=prefix or None,
        )
    except GalleryError as e:
        logger.error(
            "Get images error",
            extra={"prefix": prefix, "error": e.message, "details": e.details}
        )
        return gallery_error_response(e, settings, error="Failed to fetch images")

    return ImagePageResponse(
        images=[
            ImageItem(
                key=item.key,
                url=item.url,
                last_modified=item.last_modified,
                size=item.size,
            )
            for item in result.items
        ],
        total_count=result.total_count,
        total_pages=result.total_pages,
        current_page=result.current_page,
        has_more=result.has_more,
    )


@router.get(
    "/images/{key:path}/metadata",
    response_model=MetadataResponse,
    status_code=status.HTTP_200_OK,
    summary="Get image metadata",
    description="Size, timestamp, content type and custom metadata as stored",
    responses={
        404: {"model": ErrorResponse, "description": "No such image"},
        **STORAGE_FAILURE,
    },
)
async def get_image_metadata(
    key: str,
    gallery: GalleryServiceDep,
    settings: SettingsDep,
):
    """Look up stored metadata; a missing key answers 404."""
    try:
        metadata = await gallery.get_metadata(key)
    except GalleryError as e:
        logger.error(
            "Metadata error",
            extra={"key": key, "error": e.message, "details": e.details}
        )
        return gallery_error_response(
            e,
            settings,
            error="Image not found" if isinstance(e, NotFound) else "Failed to get image metadata",
        )

    return MetadataResponse(
        key=metadata.key,
        size=metadata.size,
        last_modified=metadata.last_modified,
        content_type=metadata.content_type,
        metadata=metadata.metadata,
    )


@router.delete(
    "/images/{key:path}",
    response_model=DeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete an image",
    description="Remove an image. Deleting a missing image succeeds.",
    responses=STORAGE_FAILURE,
)
async def delete_image(
    key: str,
    gallery: GalleryServiceDep,
    settings: SettingsDep,
):
    """Delete an image by key."""
    try:
        await gallery.delete_image(key)
    except GalleryError as e:
        logger.error(
            "Delete error",
            extra={"key": key, "error": e.message, "details": e.details}
        )
        return gallery_error_response(e, settings, error="Failed to delete image")

    return DeleteResponse(message="Image deleted successfully")

