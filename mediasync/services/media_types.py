from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class MediaItem:
    """One persisted media entry. `order` doubles as the row address until the next commit."""

    order: int
    url: str
    is_cover: bool = False


@dataclass(frozen=True)
class MediaUpload:
    content: bytes = field(repr=False)
    filename: str
    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lower()

    @property
    def size(self) -> int:
        return len(self.content)
