from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from loguru import logger

from mediasync.core.errors import CapacityExceeded
from mediasync.core.media_config import MAX_MEDIA_ITEMS, ROLE_NEW, ROLE_REPLACE
from mediasync.services.blob_store import BlobStore, generate_blob_key
from mediasync.services.media_staging import StagedMediaSet
from mediasync.services.media_types import MediaItem, MediaUpload
from mediasync.services.metadata_store import SqlMetadataStore


def resolve_cover_position(
    remaining_existing: Sequence[MediaItem],
    new_cover_index: Optional[int],
    existing_cover_order: Optional[int],
) -> Optional[int]:
    """
    Position of the cover in (remaining_existing + new uploads).
    A chosen new file wins, then a surviving existing cover, else no cover.
    """
    if new_cover_index is not None:
        return len(remaining_existing) + new_cover_index
    if existing_cover_order is not None:
        for pos, item in enumerate(remaining_existing):
            if item.order == existing_cover_order:
                return pos
    return None


def needs_scratch_pass(remaining_existing: Sequence[MediaItem]) -> bool:
    """
    True when updating rows one by one, addressed by their old order, could hit
    a row that has not moved away yet. Safe only if old orders strictly increase
    and never sit below their new position.
    """
    previous = -1
    for pos, item in enumerate(remaining_existing):
        if item.order <= previous or item.order < pos:
            return True
        previous = item.order
    return False


def scratch_base(remaining_existing: Sequence[MediaItem]) -> int:
    """
    Highest parking order for a two-pass renumber. Rows park at base, base - 1, ...
    which lies below every order in play, including rows left parked by a failed run.
    """
    lowest = min((item.order for item in remaining_existing), default=0)
    return min(0, lowest) - 1


class MediaSyncEngine:
    """
    Applies staged media edits to a blob store and a metadata store.

    The two stores share no transaction. A commit is a fixed sequence of
    steps; a fatal error stops it where it is and earlier steps stay applied.
    Blob removals never fail a call.
    """

    def __init__(
        self,
        blobs: BlobStore,
        metadata: SqlMetadataStore,
        upload_workers: int = 1,
        max_items: int = MAX_MEDIA_ITEMS,
    ) -> None:
        self._blobs = blobs
        self._metadata = metadata
        self._upload_workers = max(1, upload_workers)
        self._max_items = max_items

    # ----------------------------
    # FULL COMMIT
    # ----------------------------
    def commit(
        self,
        parent_id: int,
        remaining_existing: Sequence[MediaItem],
        new_files: Sequence[MediaUpload],
        new_cover_index: Optional[int] = None,
        existing_cover_order: Optional[int] = None,
    ) -> List[str]:
        remaining_existing = list(remaining_existing)
        new_files = list(new_files)
        self._preflight(remaining_existing, new_files, new_cover_index)

        logger.info(
            f"Media commit start | parent={parent_id} | keep={len(remaining_existing)} "
            f"| new={len(new_files)} | new_cover={new_cover_index} | existing_cover={existing_cover_order}"
        )

        # 1) drop persisted items the stage no longer keeps
        keep_orders = {item.order for item in remaining_existing}
        for item in self._metadata.list_items(parent_id):
            if item.order not in keep_orders:
                self._blobs.remove(self._blobs.key_from_url(item.url))
                self._metadata.delete(parent_id, item.order)
                logger.debug(f"Removed media | parent={parent_id} | order={item.order}")

        # 2) upload, order by position not completion
        uploaded_urls = self._upload_all(parent_id, new_files)

        # 3) + 4) positions and cover
        cover_pos = resolve_cover_position(remaining_existing, new_cover_index, existing_cover_order)

        # 5)
        self._metadata.clear_cover_flag(parent_id)

        # 6)
        n_existing = len(remaining_existing)
        if needs_scratch_pass(remaining_existing):
            logger.debug(f"Renumbering through scratch orders | parent={parent_id}")
            base = scratch_base(remaining_existing)
            for pos, item in enumerate(remaining_existing):
                self._update_row(parent_id, item.order, {"order": base - pos})
            old_orders = [base - pos for pos in range(n_existing)]
        else:
            old_orders = [item.order for item in remaining_existing]

        for pos, old_order in enumerate(old_orders):
            self._update_row(parent_id, old_order, {"order": pos, "is_cover": pos == cover_pos})

        for idx, url in enumerate(uploaded_urls):
            pos = n_existing + idx
            self._metadata.insert(parent_id, MediaItem(order=pos, url=url, is_cover=pos == cover_pos))

        logger.info(
            f"Media commit done | parent={parent_id} | total={n_existing + len(uploaded_urls)} | cover={cover_pos}"
        )
        return uploaded_urls

    def commit_stage(self, parent_id: int, stage: StagedMediaSet) -> List[str]:
        return self.commit(
            parent_id,
            stage.remaining_existing,
            stage.new_files,
            stage.new_cover_index,
            stage.existing_cover_order,
        )

    def _preflight(
        self,
        remaining_existing: List[MediaItem],
        new_files: List[MediaUpload],
        new_cover_index: Optional[int],
    ) -> None:
        requested = len(remaining_existing) + len(new_files)
        if requested > self._max_items:
            raise CapacityExceeded(requested=requested, limit=self._max_items)

        if new_cover_index is not None and not 0 <= new_cover_index < len(new_files):
            raise ValueError(f"new_cover_index {new_cover_index} out of range for {len(new_files)} new files")

        orders = [item.order for item in remaining_existing]
        if len(set(orders)) != len(orders):
            raise ValueError(f"Duplicate orders in remaining media: {orders}")

    def _upload_one(self, parent_id: int, seq: int, upload: MediaUpload) -> str:
        key = generate_blob_key(parent_id, ROLE_NEW, seq, upload.filename)
        return self._blobs.put(upload.content, key, upload.content_type)

    def _upload_all(self, parent_id: int, new_files: List[MediaUpload]) -> List[str]:
        if self._upload_workers == 1 or len(new_files) < 2:
            return [self._upload_one(parent_id, seq, f) for seq, f in enumerate(new_files)]

        with ThreadPoolExecutor(max_workers=self._upload_workers) as pool:
            # map() yields in submission order and re-raises the first failure
            return list(
                pool.map(
                    lambda pair: self._upload_one(parent_id, pair[0], pair[1]),
                    enumerate(new_files),
                )
            )

    def _update_row(self, parent_id: int, order: int, patch: dict) -> None:
        matched = self._metadata.update(parent_id, order, patch)
        if not matched:
            logger.warning(f"No media row to update | parent={parent_id} | order={order} | patch={patch}")

    # ----------------------------
    # SINGLE ITEM EDITS
    # ----------------------------
    def replace_one(self, parent_id: int, old_item: MediaItem, new_file: MediaUpload) -> str:
        """Swap the blob behind one row. Order and cover flag stay as they are."""
        self._blobs.remove(self._blobs.key_from_url(old_item.url))

        key = generate_blob_key(parent_id, ROLE_REPLACE, old_item.order, new_file.filename)
        new_url = self._blobs.put(new_file.content, key, new_file.content_type)

        self._update_row(parent_id, old_item.order, {"url": new_url})
        logger.info(f"Media replaced | parent={parent_id} | order={old_item.order}")
        return new_url

    def delete_one(self, parent_id: int, item: MediaItem) -> None:
        # Leaves a gap in the orders; a full commit restores contiguity.
        self._blobs.remove(self._blobs.key_from_url(item.url))
        matched = self._metadata.delete(parent_id, item.order)
        if not matched:
            logger.warning(f"No media row to delete | parent={parent_id} | order={item.order}")
        logger.info(f"Media deleted | parent={parent_id} | order={item.order}")

    def set_cover(self, parent_id: int, order: Optional[int]) -> None:
        self._metadata.clear_cover_flag(parent_id)
        if order is not None:
            self._update_row(parent_id, order, {"is_cover": True})
        logger.info(f"Media cover set | parent={parent_id} | order={order}")
