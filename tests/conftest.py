import os
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MEDIA_BACKEND", "local")
os.environ.setdefault("LOG_LEVEL", "INFO")

from mediasync.core.db import Base  # noqa: E402
from mediasync.core.errors import BlobDeleteFailure, BlobUploadFailure  # noqa: E402
from mediasync.models.media import MediaImage  # noqa: E402,F401
from mediasync.services.blob_store import BlobStore  # noqa: E402
from mediasync.services.media_sync import MediaSyncEngine  # noqa: E402
from mediasync.services.media_types import MediaItem, MediaUpload  # noqa: E402
from mediasync.services.metadata_store import SqlMetadataStore  # noqa: E402


class RecordingBlobStore(BlobStore):
    """In-memory blob store that remembers every call and can be told to fail."""

    def __init__(self) -> None:
        self.blobs: Dict[str, bytes] = {}
        self.calls: List[tuple] = []
        self.fail_put_after: Optional[int] = None
        self.fail_remove = False
        self._puts = 0

    def _put(self, payload: bytes, key: str, content_type: Optional[str]) -> str:
        self.calls.append(("put", key))
        if self.fail_put_after is not None and self._puts >= self.fail_put_after:
            raise BlobUploadFailure(key, "bucket unavailable")
        self._puts += 1
        self.blobs[key] = payload
        return f"https://blobs.test/images/{key}"

    def _remove(self, key: str) -> None:
        self.calls.append(("remove", key))
        if self.fail_remove:
            raise BlobDeleteFailure(key, "permission denied")
        self.blobs.pop(key, None)


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    session = Session(bind=engine, future=True)
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def metadata_store(db_session) -> SqlMetadataStore:
    return SqlMetadataStore(db_session)


@pytest.fixture
def blob_store() -> RecordingBlobStore:
    return RecordingBlobStore()


@pytest.fixture
def sync_engine(blob_store, metadata_store) -> MediaSyncEngine:
    return MediaSyncEngine(blob_store, metadata_store)


@pytest.fixture
def seed(metadata_store):
    """Insert persisted rows for a parent: seed(7, [(0, url, True), ...])."""

    def _seed(parent_id: int, rows) -> List[MediaItem]:
        items = [MediaItem(order=o, url=u, is_cover=c) for o, u, c in rows]
        for item in items:
            metadata_store.insert(parent_id, item)
        return items

    return _seed


def make_upload(name: str, content: bytes = b"\x89PNG...") -> MediaUpload:
    return MediaUpload(content=content, filename=name, content_type="image/png")


@pytest.fixture
def upload():
    return make_upload
