"""
Botanica Backend — Image Upload Routes
========================================

What:  POST /api/admin/images (upload) and DELETE /api/admin/images?url= (remove).
How:   Reads the multipart file, hands declared type + bytes to ImageService.
       The returned public URL is what the client puts in plants.image_url.
"""

import logging

from fastapi import APIRouter, Depends, File, Query, UploadFile

from botanica.auth import require_admin
from botanica.exceptions import ValidationError
from botanica.schemas.common import ErrorResponse, MessageResponse
from botanica.schemas.image import ImageUploadResponse
from botanica.services.image_service import image_service
from botanica.services.session_context import Session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Images"])


@router.post(
    "/images",
    status_code=201,
    response_model=ImageUploadResponse,
    responses={
        400: {"description": "Invalid file type, too large, or not an image", "model": ErrorResponse},
        401: {"description": "Not signed in", "model": ErrorResponse},
        403: {"description": "Not an administrator", "model": ErrorResponse},
        503: {"description": "Bucket missing or refused", "model": ErrorResponse},
        504: {"description": "Upload timed out", "model": ErrorResponse},
    },
    summary="Upload a plant image",
    description="JPEG, PNG or WebP up to 5 MB. Stored resized to at most 1200 px wide as JPEG.",
)
async def upload_image(
    file: UploadFile = File(..., description="Plant image (JPEG, PNG or WebP, max 5 MB)"),
    admin: Session = Depends(require_admin),
) -> ImageUploadResponse:
    # Declared size first so oversized bodies are rejected before reading
    if file.size is not None:
        image_service.validate(file.content_type, file.size)
    content = await file.read()
    logger.info("Image upload from %s: %s (%d bytes)", admin.email, file.filename, len(content))
    return await image_service.upload(file.content_type, content)


@router.delete(
    "/images",
    response_model=MessageResponse,
    responses={400: {"description": "URL outside the image bucket", "model": ErrorResponse}},
    summary="Remove an uploaded image by its public URL",
)
async def delete_image(
    url: str = Query(..., min_length=1, max_length=1000),
    admin: Session = Depends(require_admin),
) -> MessageResponse:
    if image_service.path_from_url(url) is None:
        raise ValidationError("Invalid image URL format", field="url")
    removed = await image_service.delete_by_url(url)
    return MessageResponse(message="Image removed." if removed else "Image could not be removed.")
