from sqlalchemy import Column, Integer, Boolean, DateTime, Text, Index, false
from sqlalchemy.sql import func
from mediasync.core.db import Base


class MediaImage(Base):
    __tablename__ = "media_image"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_id = Column(Integer, nullable=False)

    # position within the parent's collection; reassigned on every commit
    order = Column("order", Integer, nullable=False)
    url = Column(Text, nullable=False)
    is_cover = Column(Boolean, nullable=False, default=False, server_default=false())

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_media_image_parent_order", "parent_id", "order"),
    )
