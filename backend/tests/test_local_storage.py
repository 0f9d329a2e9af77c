"""
Botanica Backend — Local Object Storage Tests
===============================================

What:  LocalObjectStorage against a temporary directory.
"""

import pytest

from botanica.exceptions import FileStorageError, StorageBucketNotFoundError
from botanica.services.local_storage import LocalObjectStorage


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(root=str(tmp_path), bucket="plant-images", public_base_url="http://cdn.test/")


class TestPaths:

    def test_resolve_inside_bucket(self, storage):
        resolved = storage.resolve("plants/a.jpg")
        assert resolved == storage.bucket_dir.resolve() / "plants" / "a.jpg"

    def test_resolve_rejects_traversal(self, storage):
        assert storage.resolve("../secrets.txt") is None
        assert storage.resolve("plants/../../x") is None

    def test_resolve_rejects_bucket_root(self, storage):
        assert storage.resolve("") is None

    def test_public_url(self, storage):
        assert storage.public_url("plants/a.jpg") == "http://cdn.test/api/files/plant-images/plants/a.jpg"


class TestOperations:

    @pytest.mark.asyncio
    async def test_upload_list_remove(self, storage):
        await storage.create_bucket()
        await storage.upload("plants/b.jpg", b"bbb", "image/jpeg")
        await storage.upload("plants/a.jpg", b"aaa", "image/jpeg")

        assert await storage.list("plants") == ["plants/a.jpg", "plants/b.jpg"]
        assert await storage.list("plants", limit=1) == ["plants/a.jpg"]

        await storage.remove(["plants/a.jpg", "plants/missing.jpg"])
        assert await storage.list("plants") == ["plants/b.jpg"]

    @pytest.mark.asyncio
    async def test_upload_never_overwrites(self, storage):
        await storage.create_bucket()
        await storage.upload("plants/a.jpg", b"first", "image/jpeg")
        with pytest.raises(FileStorageError):
            await storage.upload("plants/a.jpg", b"second", "image/jpeg")
        assert storage.resolve("plants/a.jpg").read_bytes() == b"first"

    @pytest.mark.asyncio
    async def test_list_empty_folder(self, storage):
        await storage.create_bucket()
        assert await storage.list("plants") == []

    @pytest.mark.asyncio
    async def test_missing_bucket_raises(self, storage):
        with pytest.raises(StorageBucketNotFoundError):
            await storage.list("plants")


class TestBucketCheck:

    @pytest.mark.asyncio
    async def test_accessible(self, storage):
        await storage.create_bucket()
        check = await storage.check_bucket("plants")
        assert check.ok
        assert check.status == "accessible"

    @pytest.mark.asyncio
    async def test_missing(self, storage):
        check = await storage.check_bucket("plants")
        assert not check.ok
        assert check.status == "missing"
        assert "not found" in check.message
