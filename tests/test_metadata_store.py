import pytest
from sqlalchemy import text

from mediasync.core.errors import MetadataWriteFailure
from mediasync.services.media_types import MediaItem
from mediasync.services.metadata_store import SqlMetadataStore


def test_insert_and_list_sorted_by_order(metadata_store) -> None:
    metadata_store.insert(1, MediaItem(order=1, url="b", is_cover=False))
    metadata_store.insert(1, MediaItem(order=0, url="a", is_cover=True))
    metadata_store.insert(2, MediaItem(order=0, url="other", is_cover=False))

    assert metadata_store.list_items(1) == [
        MediaItem(order=0, url="a", is_cover=True),
        MediaItem(order=1, url="b", is_cover=False),
    ]


def test_update_addresses_parent_and_order(metadata_store) -> None:
    metadata_store.insert(1, MediaItem(order=0, url="a"))
    metadata_store.insert(2, MediaItem(order=0, url="x"))

    matched = metadata_store.update(1, 0, {"order": 3, "is_cover": True})

    assert matched == 1
    assert metadata_store.list_items(1) == [MediaItem(order=3, url="a", is_cover=True)]
    assert metadata_store.list_items(2) == [MediaItem(order=0, url="x", is_cover=False)]


def test_update_missing_row_matches_nothing(metadata_store) -> None:
    assert metadata_store.update(1, 4, {"url": "z"}) == 0


def test_update_rejects_unknown_columns(metadata_store) -> None:
    with pytest.raises(ValueError):
        metadata_store.update(1, 0, {"parent_id": 9})
    with pytest.raises(ValueError):
        metadata_store.update(1, 0, {})


def test_delete_and_clear_cover(metadata_store) -> None:
    metadata_store.insert(1, MediaItem(order=0, url="a", is_cover=True))
    metadata_store.insert(1, MediaItem(order=1, url="b", is_cover=True))

    metadata_store.clear_cover_flag(1)
    assert metadata_store.delete(1, 0) == 1
    assert metadata_store.delete(1, 0) == 0

    assert metadata_store.list_items(1) == [MediaItem(order=1, url="b", is_cover=False)]


def test_store_errors_become_metadata_write_failure(db_session) -> None:
    db_session.execute(text("drop table media_image"))
    db_session.commit()
    store = SqlMetadataStore(db_session)

    with pytest.raises(MetadataWriteFailure) as exc:
        store.insert(1, MediaItem(order=0, url="a"))

    assert exc.value.operation == "insert"
    with pytest.raises(MetadataWriteFailure):
        store.list_items(1)
