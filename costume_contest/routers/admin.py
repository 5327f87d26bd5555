"""Admin routes: phase control, moderation, maintenance and demo data.

Everything except ``/admin/check`` requires the ``X-Admin-Password`` header.
"""
import logging
from typing import Annotated, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from costume_contest.database import get_db
from costume_contest.dependencies import require_admin
from costume_contest.routers.entries import read_upload
from costume_contest.routers.errors import raise_for_result
from costume_contest.schemas.admin import (
    AdminCheckRequest,
    AdminCheckResponse,
    FinalsResponse,
    LeaderResponse,
    MockDataCreatedResponse,
    MockDataDeletedResponse,
    MockDataRequest,
    RecalculateScoresResponse,
    ResetRequest,
    ResetResponse,
    SetPhaseRequest,
    SetPhaseResponse,
    StatsResponse,
    VotingStartTimeRequest,
)
from costume_contest.schemas.contest import ContestStateResponse
from costume_contest.schemas.entry import (
    AdminEntryListResponse,
    AdminEntryResponse,
    AdminEntryUpsertResponse,
    EntryDeleteResponse,
    EntryUpdateRequest,
)
from costume_contest.services.admin_auth_service import AdminAuthService
from costume_contest.services.entry_service import EntryService
from costume_contest.services.mock_data_service import MockDataService
from costume_contest.services.phase_service import PhaseService
from costume_contest.services.scoring_service import ScoringService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])
protected = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/check", response_model=AdminCheckResponse)
async def check_admin_password(request: AdminCheckRequest) -> AdminCheckResponse:
    """Let the admin console verify a password before storing it client-side."""
    outcome = AdminAuthService().authorize(request.password)
    return AdminCheckResponse(valid=outcome.authorized, reason=outcome.reason)


@protected.put("/phase", response_model=SetPhaseResponse)
async def set_phase(request: SetPhaseRequest, db: AsyncSession = Depends(get_db)):
    """Move the contest to any phase, including backwards."""
    data = raise_for_result(await PhaseService(db).set_phase(request.phase))
    return SetPhaseResponse(**data)


@protected.post("/finals", response_model=FinalsResponse)
async def trigger_finals(db: AsyncSession = Depends(get_db)):
    """Flag the top scorers as finalists and open the final round."""
    data = raise_for_result(await PhaseService(db).trigger_finals())
    logger.info(f"Admin triggered finals with {len(data['finalists'])} finalists")
    return FinalsResponse(**data)


@protected.post("/reset", response_model=ResetResponse)
async def reset_contest(request: ResetRequest, db: AsyncSession = Depends(get_db)):
    """Delete every entry, vote and voter and go back to the upload phase."""
    data = raise_for_result(await PhaseService(db).reset_all(purge_blobs=request.purge_images))
    return ResetResponse(**data)


@protected.put("/voting-start-time", response_model=ContestStateResponse)
async def set_voting_start_time(request: VotingStartTimeRequest, db: AsyncSession = Depends(get_db)):
    data = raise_for_result(await PhaseService(db).set_voting_start_time(request.voting_start_time))
    return ContestStateResponse(**data)


@protected.get("/stats", response_model=StatsResponse)
async def get_stats(db: AsyncSession = Depends(get_db)):
    phase_service = PhaseService(db)
    state = raise_for_result(await phase_service.get_phase())
    stats = raise_for_result(await phase_service.get_stats())
    return StatsResponse(phase=state["phase"], **stats)


@protected.get("/leader", response_model=LeaderResponse)
async def get_leader(db: AsyncSession = Depends(get_db)):
    """Entry currently in first place."""
    data = raise_for_result(await EntryService(db).get_leading_entry())
    return LeaderResponse(entry=AdminEntryResponse.model_validate(data["entry"]))


@protected.get("/entries", response_model=AdminEntryListResponse)
async def list_entries(
    order: Literal["recent", "rank"] = "recent",
    db: AsyncSession = Depends(get_db),
):
    data = raise_for_result(await EntryService(db).list_entries(order=order))
    return AdminEntryListResponse(entries=data["entries"])


@protected.post("/entries", response_model=AdminEntryUpsertResponse, status_code=201)
async def upload_entry(
    phone: Annotated[str, Form()] = "",
    name: Annotated[str, Form()] = "",
    costume_title: Annotated[str, Form()] = "",
    description: Annotated[Optional[str], Form()] = None,
    image: Annotated[Optional[UploadFile], File()] = None,
    db: AsyncSession = Depends(get_db),
):
    """Manual upload on a participant's behalf. Works in any phase and replaces an existing entry."""
    filename, content = await read_upload(image)
    result = await EntryService(db).admin_upsert_entry(phone, name, costume_title, description, filename, content)
    data = raise_for_result(result)
    return AdminEntryUpsertResponse(entry=AdminEntryResponse.model_validate(data["entry"]), replaced=data["replaced"])


@protected.patch("/entries/{entry_id}", response_model=AdminEntryResponse)
async def update_entry(entry_id: UUID, request: EntryUpdateRequest, db: AsyncSession = Depends(get_db)):
    result = await EntryService(db).update_entry(
        entry_id,
        name=request.name,
        costume_title=request.costume_title,
        description=request.description,
    )
    return AdminEntryResponse.model_validate(raise_for_result(result)["entry"])


@protected.delete("/entries/{entry_id}", response_model=EntryDeleteResponse)
async def delete_entry(entry_id: UUID, db: AsyncSession = Depends(get_db)):
    """Delete an entry with its votes. The image is removed best-effort."""
    data = raise_for_result(await EntryService(db).delete_entry(entry_id))
    return EntryDeleteResponse(deleted_entry_id=data["entry_id"])


@protected.post("/scores/recalculate", response_model=RecalculateScoresResponse)
async def recalculate_scores(db: AsyncSession = Depends(get_db)):
    """Rebuild every total from the vote rows."""
    data = raise_for_result(await ScoringService(db).recalculate_scores())
    return RecalculateScoresResponse(**data)


@protected.post("/mock-data", response_model=MockDataCreatedResponse, status_code=201)
async def generate_mock_data(request: MockDataRequest, db: AsyncSession = Depends(get_db)):
    data = raise_for_result(await MockDataService(db).generate_mock_entries(request.count))
    return MockDataCreatedResponse(**data)


@protected.delete("/mock-data", response_model=MockDataDeletedResponse)
async def clear_mock_data(db: AsyncSession = Depends(get_db)):
    data = raise_for_result(await MockDataService(db).clear_mock_entries())
    return MockDataDeletedResponse(**data)


router.include_router(protected)
