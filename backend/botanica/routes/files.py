"""
Botanica Backend — Public Image Files
=======================================

What:  GET /api/files/{bucket}/{path}: serves objects from the local bucket.
       This is the target of every public URL LocalObjectStorage hands out.
"""

import logging
import mimetypes

from fastapi import APIRouter
from fastapi.responses import FileResponse

from botanica.exceptions import NotFoundError
from botanica.schemas.common import ErrorResponse
from botanica.services.local_storage import object_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["Files"])


@router.get(
    "/{bucket}/{path:path}",
    response_class=FileResponse,
    responses={404: {"description": "No such object", "model": ErrorResponse}},
    summary="Serve a stored image",
)
async def serve_file(bucket: str, path: str) -> FileResponse:
    if bucket != object_storage.bucket:
        raise NotFoundError(resource="file", resource_id=f"{bucket}/{path}")
    target = object_storage.resolve(path)
    if target is None or not target.is_file():
        raise NotFoundError(resource="file", resource_id=f"{bucket}/{path}")

    media_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
    # Object names are unique per upload, so content never changes
    return FileResponse(
        target,
        media_type=media_type,
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )
