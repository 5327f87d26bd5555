"""Contest state schemas."""
from costume_contest.schemas.base import BaseSchema, UTCDateTime
from typing import Optional

from costume_contest.models.base import ContestPhase


class ContestStateResponse(BaseSchema):
    """Current phase plus the times each phase was entered."""
    phase: ContestPhase
    voting_started_at: Optional[UTCDateTime] = None
    finals_started_at: Optional[UTCDateTime] = None
    ended_at: Optional[UTCDateTime] = None
    voting_start_time: Optional[UTCDateTime] = None
    updated_at: Optional[UTCDateTime] = None
