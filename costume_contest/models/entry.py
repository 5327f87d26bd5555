"""Costume entry model."""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, Index
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, UTC
from costume_contest.database import Base
from costume_contest.models.base import get_uuid_column


class Entry(Base):
    """A participant's costume submission. One entry per phone."""
    __tablename__ = "entries"

    entry_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    phone = Column(String(20), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    costume_title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    image_path = Column(String(300), nullable=True)  # Blob store key
    total_score = Column(Integer, nullable=False, default=0)  # Denormalized sum of vote points
    is_finalist = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False, index=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    votes = relationship("Vote", back_populates="entry", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index("ix_entries_total_score", "total_score"),
    )

    def __repr__(self):
        return f"<Entry(entry_id={self.entry_id}, title={self.costume_title}, score={self.total_score})>"
