"""
Botanica Backend — Local Volume Object Storage
================================================

What:  ObjectStorage backed by a directory tree: <storage_root>/<bucket>/<path>.
How:   aiofiles for reads/writes and directory operations, so disk I/O does
       not block the event loop.
Who:   The module-level `object_storage` singleton is used by ImageService,
       the files route and the health route.

Layout:
    storage/
    └── plant-images/            ← bucket
        └── plants/              ← folder
            ├── 1718000000000-k3j9x0ab.jpg
            └── 1718000000123-p01zzq7m.jpg

Security:
    Every bucket-relative path is resolved and must stay inside the bucket
    directory; anything else is treated as a missing object.
"""

import errno
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

import aiofiles
import aiofiles.os

from botanica.config import settings
from botanica.exceptions import (
    FileStorageError,
    StorageBucketNotFoundError,
    StoragePermissionError,
)
from botanica.services.storage_base import ObjectStorage

logger = logging.getLogger(__name__)


class LocalObjectStorage(ObjectStorage):

    def __init__(
        self,
        root: Optional[str] = None,
        bucket: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ):
        super().__init__(bucket or settings.storage_bucket)
        self.root = Path(root or settings.storage_root).resolve()
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")

    @property
    def bucket_dir(self) -> Path:
        return self.root / self.bucket

    async def create_bucket(self) -> None:
        """Create the bucket directory if missing (idempotent)."""
        await aiofiles.os.makedirs(self.bucket_dir, exist_ok=True)
        logger.info("Bucket ready at %s", self.bucket_dir)

    def resolve(self, path: str) -> Optional[Path]:
        """Absolute path for a bucket-relative object path, or None if it escapes the bucket."""
        bucket_dir = self.bucket_dir.resolve()
        candidate = (bucket_dir / path).resolve()
        if candidate == bucket_dir or bucket_dir not in candidate.parents:
            return None
        return candidate

    async def _require_bucket(self) -> None:
        if not await aiofiles.os.path.isdir(self.bucket_dir):
            raise StorageBucketNotFoundError(self.bucket)
        if not os.access(self.bucket_dir, os.R_OK | os.W_OK | os.X_OK):
            raise StoragePermissionError(self.bucket)

    def _translate(self, e: OSError, path: str) -> FileStorageError:
        if e.errno in (errno.EACCES, errno.EPERM):
            return StoragePermissionError(self.bucket, context={"path": path})
        logger.error("Storage I/O failed for %s/%s: %s", self.bucket, path, e)
        return FileStorageError(
            message="Failed to save uploaded image. Please try again.",
            context={"path": path, "os_error": str(e)},
        )

    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        await self._require_bucket()
        target = self.resolve(path)
        if target is None:
            raise FileStorageError(message="Invalid object path", context={"path": path})
        if await aiofiles.os.path.exists(target):
            raise FileStorageError(
                message="An image with this name already exists. Please try again.",
                context={"path": path},
            )
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise self._translate(e, path)
        logger.info("Stored %s/%s (%d bytes, %s)", self.bucket, path, len(data), content_type)

    async def list(self, prefix: str, limit: int = 100) -> List[str]:
        await self._require_bucket()
        folder = self.resolve(prefix)
        if folder is None or not await aiofiles.os.path.isdir(folder):
            return []
        try:
            names = sorted(await aiofiles.os.listdir(folder))
        except OSError as e:
            raise self._translate(e, prefix)
        prefix = prefix.strip("/")
        return [f"{prefix}/{name}" for name in names[:limit]]

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/api/files/{self.bucket}/{path.lstrip('/')}"

    async def remove(self, paths: Sequence[str]) -> None:
        await self._require_bucket()
        for path in paths:
            target = self.resolve(path)
            if target is None:
                raise FileStorageError(message="Invalid object path", context={"path": path})
            try:
                await aiofiles.os.remove(target)
            except FileNotFoundError:
                logger.debug("Remove: object already gone: %s", path)
            except OSError as e:
                raise self._translate(e, path)
            else:
                logger.info("Removed %s/%s", self.bucket, path)


object_storage = LocalObjectStorage()
