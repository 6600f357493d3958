from pathlib import Path

import httpx
import pytest

from mediasync.core.errors import BlobUploadFailure
from mediasync.services.blob_store import LocalBlobStore, SupabaseBlobStore, generate_blob_key


def test_generate_blob_key_keeps_extension() -> None:
    key = generate_blob_key(42, "new", 3, "Holiday.JPG")

    prefix, suffix = key[: len("42-new-3-")], key[len("42-new-3-"):]
    assert prefix == "42-new-3-"
    assert suffix.endswith(".jpg")
    assert len(suffix) == 12 + len(".jpg")


def test_generate_blob_key_is_unique() -> None:
    keys = {generate_blob_key(1, "new", 0, "a.png") for _ in range(50)}

    assert len(keys) == 50


def test_local_put_and_remove(tmp_path: Path) -> None:
    store = LocalBlobStore(root=tmp_path / "uploads", url_prefix="/uploads/")

    url = store.put(b"hello", "1-new-0-abc.png")

    assert url == "/uploads/1-new-0-abc.png"
    assert (tmp_path / "uploads" / "1-new-0-abc.png").read_bytes() == b"hello"

    store.remove(store.key_from_url(url))
    store.remove(store.key_from_url(url))  # second removal is a no-op
    assert not (tmp_path / "uploads" / "1-new-0-abc.png").exists()


def test_local_put_failure_is_fatal(tmp_path: Path) -> None:
    blocker = tmp_path / "uploads"
    blocker.write_text("not a directory")
    store = LocalBlobStore(root=blocker)

    with pytest.raises(BlobUploadFailure):
        store.put(b"hello", "k.png")


def test_key_from_url_handles_public_urls(tmp_path: Path) -> None:
    store = LocalBlobStore(root=tmp_path)

    assert store.key_from_url("https://x.supabase.co/storage/v1/object/public/images/7-new-0-ab.jpg?") == "7-new-0-ab.jpg"
    assert store.key_from_url("/uploads/a.png") == "a.png"


class _FakeBucket:
    def __init__(self, fail_upload: bool = False, fail_remove: bool = False) -> None:
        self.fail_upload = fail_upload
        self.fail_remove = fail_remove
        self.uploaded = {}
        self.removed = []

    def upload(self, path, file, file_options=None):
        if self.fail_upload:
            raise httpx.ConnectTimeout("timed out")
        self.uploaded[path] = (file, file_options)

    def get_public_url(self, path):
        return f"https://proj.supabase.co/storage/v1/object/public/images/{path}?"

    def remove(self, paths):
        if self.fail_remove:
            raise httpx.ReadTimeout("timed out")
        self.removed.extend(paths)
        return []


class _FakeStorage:
    def __init__(self, bucket: _FakeBucket) -> None:
        self.bucket = bucket
        self.bucket_names = []

    def from_(self, name):
        self.bucket_names.append(name)
        return self.bucket


class _FakeClient:
    def __init__(self, bucket: _FakeBucket) -> None:
        self.storage = _FakeStorage(bucket)


def test_supabase_put_returns_public_url() -> None:
    bucket = _FakeBucket()
    store = SupabaseBlobStore(_FakeClient(bucket), "images")

    url = store.put(b"data", "1-new-0-ab.png", "image/png")

    assert url == "https://proj.supabase.co/storage/v1/object/public/images/1-new-0-ab.png"
    assert bucket.uploaded["1-new-0-ab.png"] == (b"data", {"upsert": "false", "content-type": "image/png"})
    assert store.key_from_url(url) == "1-new-0-ab.png"


def test_supabase_upload_error_is_fatal() -> None:
    store = SupabaseBlobStore(_FakeClient(_FakeBucket(fail_upload=True)), "images")

    with pytest.raises(BlobUploadFailure):
        store.put(b"data", "k.png")


def test_supabase_remove_error_is_swallowed() -> None:
    bucket = _FakeBucket(fail_remove=True)
    store = SupabaseBlobStore(_FakeClient(bucket), "images")

    store.remove("k.png")

    bucket.fail_remove = False
    store.remove("k.png")
    assert bucket.removed == ["k.png"]


def test_blob_store_base_is_abstract() -> None:
    from mediasync.services.blob_store import BlobStore

    with pytest.raises(TypeError):
        BlobStore()
