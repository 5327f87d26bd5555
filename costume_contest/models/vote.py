"""Ballot and vote models."""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, UTC
from costume_contest.database import Base
from costume_contest.models.base import get_uuid_column


class Ballot(Base):
    """One row per voter per voting round.

    The unique constraint is what stops two concurrent submissions from the
    same voter both landing.
    """
    __tablename__ = "ballots"

    ballot_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    voter_phone = Column(String(20), nullable=False)
    phase = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    votes = relationship("Vote", back_populates="ballot", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("voter_phone", "phase", name="uq_ballots_voter_phase"),
    )

    def __repr__(self):
        return f"<Ballot(ballot_id={self.ballot_id}, phase={self.phase})>"


class Vote(Base):
    """A single point allocation from a voter to an entry."""
    __tablename__ = "votes"

    vote_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    ballot_id = get_uuid_column(ForeignKey("ballots.ballot_id", ondelete="CASCADE"), nullable=False, index=True)
    voter_phone = Column(String(20), nullable=False, index=True)
    entry_id = get_uuid_column(ForeignKey("entries.entry_id", ondelete="CASCADE"), nullable=False, index=True)
    phase = Column(Integer, nullable=False)
    points = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    ballot = relationship("Ballot", back_populates="votes")
    entry = relationship("Entry", back_populates="votes")

    __table_args__ = (
        UniqueConstraint("voter_phone", "phase", "points", name="uq_votes_voter_phase_points"),
        UniqueConstraint("voter_phone", "phase", "entry_id", name="uq_votes_voter_phase_entry"),
        CheckConstraint("points IN (1, 8, 10, 12)", name="ck_votes_points"),
    )

    def __repr__(self):
        return f"<Vote(vote_id={self.vote_id}, entry_id={self.entry_id}, points={self.points}, phase={self.phase})>"
