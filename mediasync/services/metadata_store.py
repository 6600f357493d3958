from __future__ import annotations

from typing import Any, Dict, List

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mediasync.core.errors import MetadataWriteFailure
from mediasync.services.media_types import MediaItem

# patch keys callers may send -> column names
_UPDATABLE_COLUMNS = {
    "order": '"order"',
    "url": "url",
    "is_cover": "is_cover",
}


class SqlMetadataStore:
    """
    Rows of `media_image`, addressed by (parent_id, order).

    Every call commits on its own: there is no transaction spanning a media
    commit, a failure leaves earlier calls applied.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def _run(self, operation: str, sql: str, params: Dict[str, Any]) -> int:
        try:
            result = self._db.execute(text(sql), params)
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Metadata {operation} failed | params={params} | {e}")
            raise MetadataWriteFailure(operation, str(e)) from e
        return result.rowcount

    def list_items(self, parent_id: int) -> List[MediaItem]:
        try:
            rows = self._db.execute(
                text("""
                    select "order", url, is_cover
                    from media_image
                    where parent_id = :parent_id
                    order by "order" asc
                """),
                {"parent_id": parent_id},
            ).mappings().all()
        except SQLAlchemyError as e:
            self._db.rollback()
            raise MetadataWriteFailure("list", str(e)) from e

        return [
            MediaItem(order=int(r["order"]), url=str(r["url"]), is_cover=bool(r["is_cover"]))
            for r in rows
        ]

    def insert(self, parent_id: int, item: MediaItem) -> None:
        self._run(
            "insert",
            """
                insert into media_image (parent_id, "order", url, is_cover)
                values (:parent_id, :order, :url, :is_cover)
            """,
            {
                "parent_id": parent_id,
                "order": item.order,
                "url": item.url,
                "is_cover": item.is_cover,
            },
        )

    def update(self, parent_id: int, order: int, patch: Dict[str, Any]) -> int:
        unknown = set(patch) - set(_UPDATABLE_COLUMNS)
        if not patch or unknown:
            raise ValueError(f"Invalid media patch: {sorted(unknown) or 'empty'}")

        assignments = ", ".join(f"{_UPDATABLE_COLUMNS[k]} = :new_{k}" for k in patch)
        params = {f"new_{k}": v for k, v in patch.items()}
        params.update({"parent_id": parent_id, "order": order})

        return self._run(
            "update",
            f"""
                update media_image
                set {assignments}
                where parent_id = :parent_id
                  and "order" = :order
            """,
            params,
        )

    def delete(self, parent_id: int, order: int) -> int:
        return self._run(
            "delete",
            """
                delete from media_image
                where parent_id = :parent_id
                  and "order" = :order
            """,
            {"parent_id": parent_id, "order": order},
        )

    def clear_cover_flag(self, parent_id: int) -> None:
        self._run(
            "clear_cover",
            """
                update media_image
                set is_cover = false
                where parent_id = :parent_id
                  and is_cover = true
            """,
            {"parent_id": parent_id},
        )
