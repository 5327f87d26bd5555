"""Public contest state."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from costume_contest.database import get_db
from costume_contest.routers.errors import raise_for_result
from costume_contest.schemas.contest import ContestStateResponse
from costume_contest.services.phase_service import PhaseService

router = APIRouter(prefix="/contest", tags=["contest"])


@router.get("/state", response_model=ContestStateResponse)
async def get_contest_state(db: AsyncSession = Depends(get_db)):
    """Current phase, when each phase started, and the scheduled voting time if any."""
    data = raise_for_result(await PhaseService(db).get_phase())
    return ContestStateResponse(**data)
