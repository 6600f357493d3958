from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import httpx
from loguru import logger
from supabase import Client, StorageException

from mediasync.core.errors import BlobDeleteFailure, BlobUploadFailure
from mediasync.core.media_config import KEY_SUFFIX_LENGTH


def generate_blob_key(parent_id: int, role: str, seq: int, filename: str) -> str:
    """
    Build a collision-resistant key such as ``42-new-0-1f3a9c0b7e21.jpg``.
    The original extension is kept so the blob is served with a sensible type.
    """
    ext = Path(filename).suffix.lower()
    suffix = uuid.uuid4().hex[:KEY_SUFFIX_LENGTH]
    return f"{parent_id}-{role}-{seq}-{suffix}{ext}"


class BlobStore(ABC):
    """
    put() is fatal on failure, remove() is best-effort.

    Subclasses implement `_put` / `_remove`. The metadata row, not the blob,
    decides what is attached to a parent, so an orphaned blob is only waste.
    """

    def put(self, payload: bytes, key: str, content_type: Optional[str] = None) -> str:
        try:
            url = self._put(payload, key, content_type)
        except BlobUploadFailure as e:
            logger.error(f"Blob upload failed | key={key} | {e}")
            raise
        logger.debug(f"Blob stored | key={key} | bytes={len(payload)}")
        return url

    def remove(self, key: str) -> None:
        try:
            self._remove(key)
        except BlobDeleteFailure as e:
            logger.warning(f"Blob delete ignored | key={key} | {e}")
            return
        logger.debug(f"Blob removed | key={key}")

    def key_from_url(self, url: str) -> str:
        return urlsplit(url).path.rstrip("/").split("/")[-1]

    @abstractmethod
    def _put(self, payload: bytes, key: str, content_type: Optional[str]) -> str:
        ...

    @abstractmethod
    def _remove(self, key: str) -> None:
        ...


class LocalBlobStore(BlobStore):
    """Blobs as plain files under `root`, served by the app's static mount at `url_prefix`."""

    def __init__(self, root: Path, url_prefix: str = "/uploads") -> None:
        self._root = Path(root)
        self._url_prefix = url_prefix.rstrip("/")

    def _put(self, payload: bytes, key: str, content_type: Optional[str]) -> str:
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            (self._root / key).write_bytes(payload)
        except OSError as e:
            raise BlobUploadFailure(key, str(e)) from e
        return f"{self._url_prefix}/{key}"

    def _remove(self, key: str) -> None:
        try:
            (self._root / key).unlink()
        except FileNotFoundError:
            # already gone, removing twice is fine
            return
        except OSError as e:
            raise BlobDeleteFailure(key, str(e)) from e


class SupabaseBlobStore(BlobStore):
    def __init__(self, client: Client, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    def _storage(self):
        return self._client.storage.from_(self._bucket)

    def _put(self, payload: bytes, key: str, content_type: Optional[str]) -> str:
        file_options = {"upsert": "false"}
        if content_type:
            file_options["content-type"] = content_type
        try:
            self._storage().upload(key, payload, file_options)
            url = self._storage().get_public_url(key)
        except (StorageException, httpx.HTTPError) as e:
            raise BlobUploadFailure(key, str(e)) from e
        return url.rstrip("?")

    def _remove(self, key: str) -> None:
        try:
            self._storage().remove([key])
        except (StorageException, httpx.HTTPError) as e:
            raise BlobDeleteFailure(key, str(e)) from e
