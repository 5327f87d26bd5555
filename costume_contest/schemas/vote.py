"""Vote-related Pydantic schemas."""
from costume_contest.schemas.base import BaseSchema
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class VoteItem(BaseModel):
    """One allocation on a ballot.

    ``entry_id`` stays a string so unknown or malformed ids are reported as
    missing costumes rather than as a request validation error.
    """
    entry_id: str
    points: int


class BallotRequest(BaseModel):
    """A voter's full ballot for one round (1 or 2)."""
    phone: str
    phase: int
    votes: list[VoteItem]


class BallotVote(BaseSchema):
    entry_id: UUID
    points: int


class BallotResponse(BaseSchema):
    ballot_id: UUID
    phase: int
    votes: list[BallotVote]


class SingleVoteRequest(BaseModel):
    """Give one costume 12, 10 or 8 points in the first round."""
    phone: str
    entry_id: str
    points: int


class SingleVoteResponse(BaseSchema):
    entry_id: UUID
    points: int
    moved: bool
    updated: bool
    previous_entry_id: Optional[UUID] = None


class UserVotesResponse(BaseSchema):
    """Points the voter has given in a round, keyed by entry id."""
    phase: int
    votes: dict[str, int]


class EligibilityResponse(BaseSchema):
    phase: int
    eligible: bool
