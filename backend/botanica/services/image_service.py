"""
Botanica Backend — Plant Image Pipeline
=========================================

What:  Validates, resizes and stores plant images; deletes them by public URL.
Who:   POST/DELETE /api/admin/images.

Upload pipeline:
    ┌──────────┐   ┌──────────────┐   ┌───────────┐   ┌──────────┐   ┌────────────┐
    │ Validate │──▶│ Decode and   │──▶│ Bucket    │──▶│ Upload   │──▶│ Public URL │
    │ type/size│   │ resize (PIL) │   │ pre-flight│   │ (≤ 60 s) │   │            │
    └──────────┘   └──────────────┘   └───────────┘   └──────────┘   └────────────┘

    The declared content type and the byte size are checked before anything
    touches the storage backend. Decoding with Pillow then proves the bytes
    really are an image, whatever the client declared.

Object names:
    <folder>/<epoch-ms>-<8 random [a-z0-9]>.jpg
    Resized output is always JPEG, so the extension is always .jpg.
"""

import asyncio
import io
import logging
import secrets
import string
import time
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from botanica.config import settings
from botanica.exceptions import FileStorageError, UploadTimeoutError, ValidationError
from botanica.schemas.image import ImageUploadResponse
from botanica.services.local_storage import object_storage
from botanica.services.storage_base import ObjectStorage

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")

_NAME_ALPHABET = string.ascii_lowercase + string.digits
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_file_size(size: int) -> str:
    """
    Human-readable size with up to two decimals.

    >>> format_file_size(0)
    '0 Bytes'
    >>> format_file_size(2_621_440)
    '2.5 MB'
    """
    if size <= 0:
        return "0 Bytes"
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(_SIZE_UNITS) - 1:
        exponent += 1
    value = round(size / (1024 ** exponent), 2)
    if value == int(value):
        value = int(value)
    return f"{value} {_SIZE_UNITS[exponent]}"


def resize_image(data: bytes, max_width: int, quality: int) -> Tuple[bytes, int, int]:
    """
    Decode, downscale to at most `max_width` pixels wide, and re-encode as JPEG.

    Blocking (CPU-bound); callers run it in a worker thread.

    Raises:
        ValidationError: the bytes are not a decodable image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGB":
                img = img.convert("RGB")
            width, height = img.size
            if width > max_width:
                height = max(1, round(height * max_width / width))
                width = max_width
                img = img.resize((width, height), Image.Resampling.LANCZOS)
            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=quality, optimize=True)
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError(
            message="The uploaded file could not be read as an image.",
            field="file",
            context={"error": str(e)},
        )
    return buffer.getvalue(), width, height


class ImageService:
    """
    Configuration comes from settings unless overridden (tests inject a
    storage double and smaller limits).
    """

    def __init__(
        self,
        storage: Optional[ObjectStorage] = None,
        folder: Optional[str] = None,
        max_size: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        max_width: Optional[int] = None,
        quality: Optional[int] = None,
    ):
        self.storage = storage or object_storage
        self.folder = (folder or settings.storage_folder).strip("/")
        self.max_size = max_size or settings.max_upload_size
        self.timeout_seconds = timeout_seconds or settings.upload_timeout_seconds
        self.max_width = max_width or settings.image_max_width
        self.quality = quality or settings.image_quality

    def validate(self, content_type: Optional[str], size: int) -> None:
        """Reject unsupported declared types and oversized files. No I/O."""
        declared = (content_type or "").split(";")[0].strip().lower()
        if declared not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                message="Invalid file type. Only JPEG, PNG, and WebP are allowed.",
                field="file",
                context={"content_type": declared, "allowed": list(ALLOWED_CONTENT_TYPES)},
            )
        if size > self.max_size:
            raise ValidationError(
                message=f"File too large. Maximum size is {format_file_size(self.max_size)}.",
                field="file",
                context={"size": size, "size_label": format_file_size(size), "max_size": self.max_size},
            )

    def generate_path(self) -> str:
        suffix = "".join(secrets.choice(_NAME_ALPHABET) for _ in range(8))
        return f"{self.folder}/{int(time.time() * 1000)}-{suffix}.jpg"

    async def upload(self, content_type: Optional[str], data: bytes) -> ImageUploadResponse:
        """
        Run the full pipeline and return the public URL of the stored image.

        Raises:
            ValidationError:             bad declared type, too large, or undecodable
            StorageBucketNotFoundError:  pre-flight found no bucket
            StoragePermissionError:      pre-flight was refused
            UploadTimeoutError:          storage did not finish within the timeout
            FileStorageError:            any other storage failure
        """
        self.validate(content_type, len(data))

        resized, width, height = await asyncio.to_thread(
            resize_image, data, self.max_width, self.quality
        )
        logger.info(
            "Image resized: %s → %s (%dx%d)",
            format_file_size(len(data)), format_file_size(len(resized)), width, height,
        )

        # Pre-flight raises the bucket-specific errors
        await self.storage.list(self.folder, limit=1)

        path = self.generate_path()
        try:
            await asyncio.wait_for(
                self.storage.upload(path, resized, "image/jpeg"),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error("Upload of %s timed out after %.0fs", path, self.timeout_seconds)
            await self._discard(path)
            raise UploadTimeoutError(self.timeout_seconds)

        return ImageUploadResponse(
            url=self.storage.public_url(path),
            path=path,
            size=len(resized),
            size_label=format_file_size(len(resized)),
            original_size_label=format_file_size(len(data)),
            width=width,
            height=height,
        )

    def path_from_url(self, url: str) -> Optional[str]:
        """Bucket-relative path from a public URL, or None if the URL is not ours."""
        marker = f"/{self.storage.bucket}/"
        if not url or marker not in url:
            return None
        path = url.split(marker, 1)[1].split("?", 1)[0]
        return path or None

    async def delete_by_url(self, url: str) -> bool:
        """
        Remove the object a public URL points at.

        Returns False (and logs) for URLs outside the bucket or failed removals;
        image removal never blocks the plant write it accompanies.
        """
        path = self.path_from_url(url)
        if path is None:
            logger.warning("Not a %s URL, nothing to delete: %s", self.storage.bucket, url)
            return False
        try:
            await self.storage.remove([path])
        except FileStorageError as e:
            logger.error("Failed to delete image %s: %s", path, e.message)
            return False
        return True

    async def _discard(self, path: str) -> None:
        try:
            await self.storage.remove([path])
        except FileStorageError as e:
            logger.warning("Could not remove partial upload %s: %s", path, e.message)


image_service = ImageService()
