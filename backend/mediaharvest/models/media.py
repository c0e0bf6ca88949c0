import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Text, Uuid, VARCHAR
from sqlalchemy.orm import Mapped, mapped_column

from mediaharvest.core.database import Base

MEDIA_TYPE_IMAGE = "image"
MEDIA_TYPE_VIDEO = "video"


class Media(Base):
    __tablename__ = "media"
    __table_args__ = (
        Index("ix_media_type", "type"),
        Index("ix_media_source_url", "source_url"),
        Index("ix_media_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    source_url: Mapped[str] = mapped_column(VARCHAR(2048), nullable=False)
    # Dedup key. Concurrent workers rely on this constraint, not on a
    # check-then-insert
    media_url: Mapped[str] = mapped_column(
        VARCHAR(2048), nullable=False, unique=True
    )
    type: Mapped[str] = mapped_column(String(10), nullable=False)  # image, video
    alt: Mapped[str | None] = mapped_column(Text)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
