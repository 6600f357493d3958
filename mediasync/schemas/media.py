from typing import List, Optional
from pydantic import Field

from mediasync.schemas.base import BaseSchema


class MediaItemOut(BaseSchema):
    order: int
    url: str
    is_cover: bool = False


class MediaCommitResponse(BaseSchema):
    uploaded_urls: List[str]
    items: List[MediaItemOut]


class MediaReplaceResponse(BaseSchema):
    url: str


class MediaCoverRequest(BaseSchema):
    order: Optional[int] = Field(None, ge=0)


class MediaCoverResponse(BaseSchema):
    cover_order: Optional[int] = None
