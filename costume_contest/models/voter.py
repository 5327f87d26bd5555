"""Voter eligibility model."""
from sqlalchemy import Column, String, Boolean, DateTime
from datetime import datetime, UTC
from costume_contest.database import Base


class Voter(Base):
    """Tracks which voting rounds a phone has taken part in."""
    __tablename__ = "voters"

    phone = Column(String(20), primary_key=True)
    voted_first_round = Column(Boolean, nullable=False, default=False)
    voted_final_round = Column(Boolean, nullable=False, default=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self):
        return (f"<Voter(phone={self.phone}, first_round={self.voted_first_round}, "
                f"final_round={self.voted_final_round})>")
