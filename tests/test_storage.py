"""
Тесты хранилищ документов
"""
import json

import httpx
import pytest

from certengine.exceptions import StorageError
from certengine.storage import LocalBlobStore, SupabaseBlobStore, build_blob_store


class TestLocalBlobStore:
    """Тесты локального хранилища"""

    @pytest.fixture
    def store(self, tmp_path):
        return LocalBlobStore(str(tmp_path / "storage"), "http://localhost:8000/files/")

    @pytest.mark.asyncio
    async def test_upload_requires_bucket(self, store):
        with pytest.raises(StorageError):
            await store.upload("certificates", "a.pdf", b"%PDF")

    @pytest.mark.asyncio
    async def test_upload_and_read(self, store):
        await store.ensure_bucket("certificates")

        path = await store.upload("certificates", "a.pdf", b"%PDF-1")

        assert path == "a.pdf"
        assert store.read("certificates", "a.pdf") == b"%PDF-1"
        assert await store.get_public_url("certificates", "a.pdf") == \
            "http://localhost:8000/files/certificates/a.pdf"

    @pytest.mark.asyncio
    async def test_overwrite(self, store):
        await store.create_bucket("certificates")
        await store.upload("certificates", "a.pdf", b"1")

        await store.upload("certificates", "a.pdf", b"2", overwrite=True)
        assert store.read("certificates", "a.pdf") == b"2"

        with pytest.raises(StorageError):
            await store.upload("certificates", "a.pdf", b"3", overwrite=False)

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.create_bucket("certificates")
        await store.upload("certificates", "a.pdf", b"1")

        await store.delete("certificates", ["a.pdf", "missing.pdf"])

        assert store.read("certificates", "a.pdf") is None

    @pytest.mark.asyncio
    async def test_path_traversal_rejected(self, store):
        await store.create_bucket("certificates")

        with pytest.raises(StorageError):
            await store.upload("certificates", "../escape.pdf", b"1")

    @pytest.mark.asyncio
    async def test_list_buckets(self, store):
        await store.ensure_bucket("certificates")
        await store.ensure_bucket("certificates")
        await store.create_bucket("archive")

        assert await store.list_buckets() == ["archive", "certificates"]


class TestSupabaseBlobStore:
    """Тесты клиента Supabase Storage"""

    @pytest.fixture
    def requests(self):
        return []

    def make_store(self, requests, handler):
        def recorder(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        return SupabaseBlobStore(
            "https://project.supabase.co/", "service-key",
            transport=httpx.MockTransport(recorder),
        )

    @pytest.mark.asyncio
    async def test_upload(self, requests):
        store = self.make_store(requests, lambda r: httpx.Response(200, json={"Key": "certificates/a.pdf"}))

        path = await store.upload("certificates", "c-1_CERT-FRS-202506-482913_generated.pdf", b"%PDF")

        request = requests[0]
        assert path == "c-1_CERT-FRS-202506-482913_generated.pdf"
        assert request.method == "POST"
        assert request.url.path == "/storage/v1/object/certificates/c-1_CERT-FRS-202506-482913_generated.pdf"
        assert request.headers["x-upsert"] == "true"
        assert request.headers["content-type"] == "application/pdf"
        assert request.headers["authorization"] == "Bearer service-key"
        assert request.content == b"%PDF"

    @pytest.mark.asyncio
    async def test_upload_error_status(self, requests):
        store = self.make_store(requests, lambda r: httpx.Response(400, json={"error": "Bucket not found"}))

        with pytest.raises(StorageError, match="400"):
            await store.upload("certificates", "a.pdf", b"%PDF")

    @pytest.mark.asyncio
    async def test_transport_error(self, requests):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        store = self.make_store(requests, handler)

        with pytest.raises(StorageError):
            await store.upload("certificates", "a.pdf", b"%PDF")

    @pytest.mark.asyncio
    async def test_public_url(self, requests):
        store = self.make_store(requests, lambda r: httpx.Response(200))

        url = await store.get_public_url("certificates", "a b.pdf")

        assert url == "https://project.supabase.co/storage/v1/object/public/certificates/a%20b.pdf"
        assert requests == []

    @pytest.mark.asyncio
    async def test_delete(self, requests):
        store = self.make_store(requests, lambda r: httpx.Response(200, json=[]))

        await store.delete("certificates", ["a.pdf"])

        request = requests[0]
        assert request.method == "DELETE"
        assert request.url.path == "/storage/v1/object/certificates"
        assert json.loads(request.content) == {"prefixes": ["a.pdf"]}

    @pytest.mark.asyncio
    async def test_ensure_bucket_creates_missing(self, requests):
        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, json=[{"id": "avatars", "name": "avatars"}])
            return httpx.Response(200, json={"name": "certificates"})

        store = self.make_store(requests, handler)

        await store.ensure_bucket("certificates")

        assert [r.method for r in requests] == ["GET", "POST"]
        assert json.loads(requests[1].content)["id"] == "certificates"

    @pytest.mark.asyncio
    async def test_ensure_bucket_existing(self, requests):
        store = self.make_store(requests, lambda r: httpx.Response(200, json=[{"name": "certificates"}]))

        await store.ensure_bucket("certificates")

        assert len(requests) == 1

    def test_requires_credentials(self):
        with pytest.raises(StorageError):
            SupabaseBlobStore("", "key")
        with pytest.raises(StorageError):
            SupabaseBlobStore("https://project.supabase.co", None)


def test_build_blob_store(settings):
    assert isinstance(build_blob_store(settings), LocalBlobStore)

    supabase_settings = settings.model_copy(update={
        "storage_backend": "supabase",
        "supabase_url": "https://project.supabase.co",
        "supabase_service_key": "key",
    })
    assert isinstance(build_blob_store(supabase_settings), SupabaseBlobStore)
