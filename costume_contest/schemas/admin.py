"""Admin request and response schemas."""
from costume_contest.schemas.base import BaseSchema
from costume_contest.schemas.contest import ContestStateResponse
from costume_contest.schemas.entry import AdminEntryResponse
from costume_contest.models.base import ContestPhase
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, constr


class AdminCheckRequest(BaseModel):
    """Request model for admin password validation."""
    password: str


class AdminCheckResponse(BaseModel):
    valid: bool
    reason: str


class SetPhaseRequest(BaseModel):
    """Target phase. Legacy names (``registration``, ``winners``) are accepted."""
    phase: str


class SetPhaseResponse(ContestStateResponse):
    previous_phase: ContestPhase


class FinalsResponse(ContestStateResponse):
    finalists: list[UUID]


class ResetRequest(BaseModel):
    """Wipe every entry, vote and voter. Must be confirmed by typing RESET."""
    confirmation: constr(pattern=r"^RESET$", min_length=5, max_length=5)
    purge_images: bool = True


class ResetResponse(BaseSchema):
    entries_deleted: int
    votes_deleted: int
    voters_deleted: int
    images_deleted: int


class VotingStartTimeRequest(BaseModel):
    """ISO-8601 time voting is expected to open, or null to clear it."""
    voting_start_time: Optional[str] = None


class StatsResponse(BaseSchema):
    phase: ContestPhase
    total_entries: int
    total_votes: int
    total_voters: int
    first_round_ballots: int
    final_round_ballots: int


class LeaderResponse(BaseSchema):
    entry: AdminEntryResponse


class RecalculateScoresResponse(BaseSchema):
    entries_corrected: int


class MockDataRequest(BaseModel):
    count: int = 40


class MockDataCreatedResponse(BaseSchema):
    created: int


class MockDataDeletedResponse(BaseSchema):
    deleted: int
