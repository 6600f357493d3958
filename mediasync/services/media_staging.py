from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple, Union

from mediasync.core.errors import CapacityExceeded
from mediasync.core.media_config import MAX_MEDIA_ITEMS
from mediasync.services.media_types import MediaItem, MediaUpload

StagedEntry = Union[MediaItem, MediaUpload]


@dataclass(frozen=True)
class StagedMediaSet:
    """
    A pending edit of one parent's media, held client side.

    Every operation returns a new stage; nothing here touches a store. The
    displayed sequence is `remaining_existing` followed by `new_files`, and
    indices passed to remove_item / set_cover refer to that sequence.

    The cover is tracked by identity rather than position: an existing item
    by its persisted order, a new file by its index within `new_files`.
    """

    remaining_existing: Tuple[MediaItem, ...] = ()
    new_files: Tuple[MediaUpload, ...] = ()
    new_cover_index: Optional[int] = None
    existing_cover_order: Optional[int] = None
    max_items: int = MAX_MEDIA_ITEMS

    @classmethod
    def from_persisted(cls, items: Iterable[MediaItem], max_items: int = MAX_MEDIA_ITEMS) -> "StagedMediaSet":
        existing = tuple(sorted(items, key=lambda i: i.order))
        cover = next((i.order for i in existing if i.is_cover), None)
        return cls(remaining_existing=existing, existing_cover_order=cover, max_items=max_items)

    @property
    def total(self) -> int:
        return len(self.remaining_existing) + len(self.new_files)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def items(self) -> List[StagedEntry]:
        return [*self.remaining_existing, *self.new_files]

    @property
    def cover_index(self) -> Optional[int]:
        """Position of the staged cover in the displayed sequence, or None."""
        if self.new_cover_index is not None:
            return len(self.remaining_existing) + self.new_cover_index
        if self.existing_cover_order is not None:
            for pos, item in enumerate(self.remaining_existing):
                if item.order == self.existing_cover_order:
                    return pos
        return None

    def add_items(self, files: Iterable[MediaUpload]) -> "StagedMediaSet":
        files = tuple(files)
        requested = self.total + len(files)
        if requested > self.max_items:
            raise CapacityExceeded(requested=requested, limit=self.max_items)
        return replace(self, new_files=self.new_files + files)

    def remove_item(self, index: int) -> "StagedMediaSet":
        self._check_index(index)
        n_existing = len(self.remaining_existing)

        if index < n_existing:
            removed = self.remaining_existing[index]
            existing = self.remaining_existing[:index] + self.remaining_existing[index + 1:]
            cover_order = self.existing_cover_order
            if removed.order == cover_order:
                cover_order = None
            return replace(self, remaining_existing=existing, existing_cover_order=cover_order)

        pos = index - n_existing
        new_files = self.new_files[:pos] + self.new_files[pos + 1:]
        cover = self.new_cover_index
        if cover is not None:
            if pos == cover:
                cover = None
            elif pos < cover:
                cover -= 1
        return replace(self, new_files=new_files, new_cover_index=cover)

    def set_cover(self, index: Optional[int]) -> "StagedMediaSet":
        if index is None:
            return replace(self, new_cover_index=None, existing_cover_order=None)

        self._check_index(index)
        n_existing = len(self.remaining_existing)
        if index < n_existing:
            return replace(
                self,
                existing_cover_order=self.remaining_existing[index].order,
                new_cover_index=None,
            )
        return replace(self, new_cover_index=index - n_existing, existing_cover_order=None)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.total:
            raise IndexError(f"Staged media index {index} out of range (0..{self.total - 1})")
