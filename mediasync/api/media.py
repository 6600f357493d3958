from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from loguru import logger
from sqlalchemy.orm import Session

from mediasync.core import config
from mediasync.core.db import get_db
from mediasync.core.media_config import MAX_MEDIA_ITEMS
from mediasync.core.errors import (
    BlobUploadFailure,
    CapacityExceeded,
    MediaSyncError,
)
from mediasync.schemas.media import (
    MediaCommitResponse,
    MediaCoverRequest,
    MediaCoverResponse,
    MediaItemOut,
    MediaReplaceResponse,
)
from mediasync.services.blob_store import BlobStore, LocalBlobStore, SupabaseBlobStore
from mediasync.services.media_sync import MediaSyncEngine
from mediasync.services.media_types import MediaItem, MediaUpload
from mediasync.services.metadata_store import SqlMetadataStore
from mediasync.services.supabase_admin import supabase_admin

router = APIRouter(prefix="/v1/parents/{parent_id}/media", tags=["media"])


# ----------------------------
# DEPENDENCIES
# ----------------------------
def get_blob_store() -> BlobStore:
    if config.MEDIA_BACKEND == "supabase":
        return SupabaseBlobStore(supabase_admin(), config.MEDIA_BUCKET)
    if config.MEDIA_BACKEND == "local":
        return LocalBlobStore(Path(config.UPLOAD_DIR), config.UPLOAD_URL_PREFIX)
    raise RuntimeError(f"Unknown MEDIA_BACKEND: {config.MEDIA_BACKEND}")


def get_metadata_store(db: Session = Depends(get_db)) -> SqlMetadataStore:
    return SqlMetadataStore(db)


def get_media_engine(
    blobs: BlobStore = Depends(get_blob_store),
    metadata: SqlMetadataStore = Depends(get_metadata_store),
) -> MediaSyncEngine:
    return MediaSyncEngine(blobs, metadata, upload_workers=config.MEDIA_UPLOAD_WORKERS)


def _to_upload(file: UploadFile) -> MediaUpload:
    return MediaUpload(
        content=file.file.read(),
        filename=file.filename or "",
        content_type=file.content_type,
    )


def _find_item(metadata: SqlMetadataStore, parent_id: int, order: int) -> MediaItem:
    for item in metadata.list_items(parent_id):
        if item.order == order:
            return item
    raise HTTPException(status_code=404, detail=f"No media at order {order}")


def _http_error(e: MediaSyncError) -> HTTPException:
    if isinstance(e, CapacityExceeded):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, BlobUploadFailure):
        return HTTPException(status_code=502, detail=str(e))
    # MetadataWriteFailure and anything unexpected
    return HTTPException(status_code=500, detail=str(e))


# ----------------------------
# LIST
# ----------------------------
@router.get("", response_model=List[MediaItemOut])
def list_media(
    parent_id: int,
    metadata: SqlMetadataStore = Depends(get_metadata_store),
):
    try:
        items = metadata.list_items(parent_id)
    except MediaSyncError as e:
        raise _http_error(e)
    return [MediaItemOut.model_validate(i) for i in items]


# ----------------------------
# COMMIT
# ----------------------------
@router.post("/commit", response_model=MediaCommitResponse)
def commit_media(
    parent_id: int,
    remaining_orders: List[int] = Form(default=[]),
    files: List[UploadFile] = File(default=[]),
    new_cover_index: Optional[int] = Form(None),
    existing_cover_order: Optional[int] = Form(None),
    engine: MediaSyncEngine = Depends(get_media_engine),
    metadata: SqlMetadataStore = Depends(get_metadata_store),
):
    logger.info(f"Media commit request | parent={parent_id} | keep={remaining_orders} | files={len(files)}")

    requested = len(remaining_orders) + len(files)
    if requested > MAX_MEDIA_ITEMS:
        raise _http_error(CapacityExceeded(requested=requested, limit=MAX_MEDIA_ITEMS))

    try:
        persisted = {item.order: item for item in metadata.list_items(parent_id)}
        missing = [o for o in remaining_orders if o not in persisted]
        if missing:
            raise HTTPException(status_code=404, detail=f"No media at orders {missing}")

        uploaded = engine.commit(
            parent_id,
            [persisted[o] for o in remaining_orders],
            [_to_upload(f) for f in files],
            new_cover_index,
            existing_cover_order,
        )
        items = metadata.list_items(parent_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MediaSyncError as e:
        raise _http_error(e)

    return MediaCommitResponse(
        uploaded_urls=uploaded,
        items=[MediaItemOut.model_validate(i) for i in items],
    )


# ----------------------------
# COVER
# ----------------------------
@router.put("/cover", response_model=MediaCoverResponse)
def set_media_cover(
    parent_id: int,
    payload: MediaCoverRequest,
    engine: MediaSyncEngine = Depends(get_media_engine),
    metadata: SqlMetadataStore = Depends(get_metadata_store),
):
    try:
        if payload.order is not None:
            _find_item(metadata, parent_id, payload.order)
        engine.set_cover(parent_id, payload.order)
    except MediaSyncError as e:
        raise _http_error(e)

    return MediaCoverResponse(cover_order=payload.order)


# ----------------------------
# REPLACE ONE
# ----------------------------
@router.put("/{order}", response_model=MediaReplaceResponse)
def replace_media(
    parent_id: int,
    order: int,
    file: UploadFile = File(...),
    engine: MediaSyncEngine = Depends(get_media_engine),
    metadata: SqlMetadataStore = Depends(get_metadata_store),
):
    try:
        old_item = _find_item(metadata, parent_id, order)
        url = engine.replace_one(parent_id, old_item, _to_upload(file))
    except MediaSyncError as e:
        raise _http_error(e)

    return MediaReplaceResponse(url=url)


# ----------------------------
# DELETE ONE
# ----------------------------
@router.delete("/{order}")
def delete_media(
    parent_id: int,
    order: int,
    engine: MediaSyncEngine = Depends(get_media_engine),
    metadata: SqlMetadataStore = Depends(get_metadata_store),
):
    try:
        item = _find_item(metadata, parent_id, order)
        engine.delete_one(parent_id, item)
    except MediaSyncError as e:
        raise _http_error(e)

    return {"deleted": True}
