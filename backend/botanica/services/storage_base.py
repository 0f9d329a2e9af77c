"""
Botanica Backend — Abstract Object Storage Interface
======================================================

What:  The bucket-scoped blob store contract the image pipeline depends on.
How:   Concrete stores implement upload / list / public_url / remove.
       check_bucket() is shared: it runs the same pre-flight listing the
       upload path uses and reports the outcome instead of raising.
Who:   ImageService (uploads, deletes), the health route (diagnostics).

Implementations:
    - LocalObjectStorage: a directory per bucket on a local volume, served
      back through GET /api/files/{bucket}/{path}
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from botanica.exceptions import (
    FileStorageError,
    StorageBucketNotFoundError,
    StoragePermissionError,
)


@dataclass
class BucketCheck:
    status: str  # accessible, missing, forbidden, unavailable
    message: Optional[str] = None
    object_count: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "accessible"


class ObjectStorage(ABC):
    """
    Contract:
        - Paths are bucket-relative, '/'-separated ("plants/1700000000000-ab12cd34.jpg")
        - upload() never overwrites an existing object
        - Missing bucket  → StorageBucketNotFoundError
        - Access refused  → StoragePermissionError
        - Anything else   → FileStorageError
    """

    def __init__(self, bucket: str):
        self.bucket = bucket

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        ...

    @abstractmethod
    async def list(self, prefix: str, limit: int = 100) -> List[str]:
        """Object paths under `prefix`, at most `limit` of them."""
        ...

    @abstractmethod
    def public_url(self, path: str) -> str:
        ...

    @abstractmethod
    async def remove(self, paths: Sequence[str]) -> None:
        ...

    async def check_bucket(self, folder: str) -> BucketCheck:
        """Pre-flight diagnostics: can the bucket be listed right now?"""
        try:
            objects = await self.list(folder, limit=1)
        except StorageBucketNotFoundError as e:
            return BucketCheck(status="missing", message=e.message)
        except StoragePermissionError as e:
            return BucketCheck(status="forbidden", message=e.message)
        except FileStorageError as e:
            return BucketCheck(status="unavailable", message=e.message)
        return BucketCheck(status="accessible", object_count=len(objects))
