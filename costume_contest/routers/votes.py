"""Voting routes for both rounds."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from costume_contest.database import get_db
from costume_contest.models.base import VotePhase
from costume_contest.routers.errors import raise_for_result
from costume_contest.schemas.vote import (
    BallotRequest,
    BallotResponse,
    EligibilityResponse,
    SingleVoteRequest,
    SingleVoteResponse,
    UserVotesResponse,
)
from costume_contest.services.vote_service import VoteService

router = APIRouter(prefix="/votes", tags=["votes"])


@router.post("/ballot", response_model=BallotResponse, status_code=201)
async def submit_ballot(request: BallotRequest, db: AsyncSession = Depends(get_db)):
    """Submit a full ballot: 12, 10 and 8 points in round 1, a single point in round 2."""
    votes = [vote.model_dump() for vote in request.votes]
    result = await VoteService(db).submit_ballot(request.phone, votes, request.phase)
    return BallotResponse(**raise_for_result(result))


@router.post("/single", response_model=SingleVoteResponse)
async def submit_single_vote(request: SingleVoteRequest, db: AsyncSession = Depends(get_db)):
    """Give or move one points value in round 1."""
    result = await VoteService(db).submit_single_vote(request.phone, request.entry_id, request.points)
    return SingleVoteResponse(**raise_for_result(result))


@router.get("/{phone}", response_model=UserVotesResponse)
async def get_user_votes(
    phone: str,
    phase: Annotated[int, Query()] = int(VotePhase.FIRST_ROUND),
    db: AsyncSession = Depends(get_db),
):
    data = raise_for_result(await VoteService(db).get_user_votes(phone, phase))
    return UserVotesResponse(
        phase=phase,
        votes={str(entry_id): points for entry_id, points in data["votes"].items()},
    )


@router.get("/{phone}/eligibility", response_model=EligibilityResponse)
async def check_eligibility(
    phone: str,
    phase: Annotated[int, Query()] = int(VotePhase.FINAL_ROUND),
    db: AsyncSession = Depends(get_db),
):
    """Whether the phone may vote in the given round."""
    data = raise_for_result(await VoteService(db).check_eligibility(phone, phase))
    return EligibilityResponse(phase=phase, eligible=data["eligible"])
