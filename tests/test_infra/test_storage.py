"""Tests for blob storage clients."""

from unittest.mock import MagicMock, patch

import pytest

from qrbatch.infra.storage import LocalStorageClient, StorageClient, TenantPathError


class TestTenantPathValidation:
    @pytest.fixture
    def client(self, tmp_path) -> LocalStorageClient:
        return LocalStorageClient(root=tmp_path, public_base_url="http://files.test")

    def test_accepts_own_prefix(self, client):
        client.validate_tenant_path("tenant-a/batches/b-1/codes.csv", "tenant-a")

    @pytest.mark.parametrize(
        "blob_path",
        [
            "tenant-b/batches/b-1/codes.csv",
            "tenant-ab/batches/b-1/codes.csv",
            "tenant-a/../tenant-b/codes.csv",
            "codes.csv",
        ],
    )
    def test_rejects_foreign_paths(self, client, blob_path):
        with pytest.raises(TenantPathError):
            client.validate_tenant_path(blob_path, "tenant-a")


class TestLocalStorageClient:
    @pytest.fixture
    def client(self, tmp_path) -> LocalStorageClient:
        return LocalStorageClient(root=tmp_path, public_base_url="http://files.test/")

    @pytest.mark.asyncio
    async def test_upload_writes_file_and_returns_url(self, client, tmp_path):
        url = await client.upload_bytes(
            b"hello", "tenant-a/batches/b-1/codes.csv", "tenant-a", "text/csv"
        )

        assert url == "http://files.test/tenant-a/batches/b-1/codes.csv"
        assert (tmp_path / "tenant-a/batches/b-1/codes.csv").read_bytes() == b"hello"

    @pytest.mark.asyncio
    async def test_second_upload_overwrites(self, client, tmp_path):
        path = "tenant-a/batches/b-1/report.pdf"

        await client.upload_bytes(b"first", path, "tenant-a")
        await client.upload_bytes(b"second", path, "tenant-a")

        assert (tmp_path / path).read_bytes() == b"second"

    @pytest.mark.asyncio
    async def test_upload_outside_tenant_rejected(self, client, tmp_path):
        with pytest.raises(TenantPathError):
            await client.upload_bytes(b"x", "tenant-b/batches/b-1/codes.csv", "tenant-a")

        assert not (tmp_path / "tenant-b").exists()


class TestStorageClient:
    @pytest.mark.asyncio
    async def test_upload_uses_bucket_blob(self):
        blob = MagicMock()
        blob.public_url = "https://storage.googleapis.com/bucket/tenant-a/x.csv"
        bucket = MagicMock()
        bucket.blob.return_value = blob

        with patch("qrbatch.infra.storage.storage.Client") as client_class:
            client_class.return_value.bucket.return_value = bucket
            client = StorageClient(bucket_name="bucket")

            url = await client.upload_bytes(b"data", "tenant-a/x.csv", "tenant-a", "text/csv")

        bucket.blob.assert_any_call("tenant-a/x.csv")
        blob.upload_from_string.assert_called_once_with(b"data", content_type="text/csv")
        assert url == blob.public_url

    @pytest.mark.asyncio
    async def test_upload_validates_tenant_before_network(self):
        with patch("qrbatch.infra.storage.storage.Client") as client_class:
            client = StorageClient(bucket_name="bucket")

            with pytest.raises(TenantPathError):
                await client.upload_bytes(b"data", "tenant-b/x.csv", "tenant-a")

        client_class.assert_not_called()
