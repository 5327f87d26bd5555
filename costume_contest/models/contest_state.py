"""Contest phase state model."""
from sqlalchemy import String, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from costume_contest.database import Base
from costume_contest.models.base import ContestPhase

CONTEST_STATE_ID = 1


class ContestState(Base):
    """Single-row table holding the live contest phase and its timestamps."""

    __tablename__ = "contest_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=CONTEST_STATE_ID)
    current_phase: Mapped[str] = mapped_column(String(20), nullable=False, default=ContestPhase.UPLOAD.value)
    voting_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finals_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    voting_start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)  # advisory
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    @property
    def phase(self) -> ContestPhase:
        return ContestPhase.parse(self.current_phase)

    def __repr__(self) -> str:
        return f"<ContestState(phase={self.current_phase}, updated_at={self.updated_at})>"
