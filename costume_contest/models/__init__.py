"""Database models."""
from costume_contest.models.base import ContestPhase, VotePhase
from costume_contest.models.entry import Entry
from costume_contest.models.vote import Ballot, Vote
from costume_contest.models.voter import Voter
from costume_contest.models.contest_state import ContestState, CONTEST_STATE_ID

__all__ = [
    "ContestPhase",
    "VotePhase",
    "Entry",
    "Ballot",
    "Vote",
    "Voter",
    "ContestState",
    "CONTEST_STATE_ID",
]
