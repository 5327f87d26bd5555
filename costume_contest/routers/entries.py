"""Costume submission and gallery routes."""
from typing import Annotated, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from costume_contest.database import get_db
from costume_contest.routers.errors import raise_for_result
from costume_contest.schemas.entry import EntryListResponse, EntryResponse
from costume_contest.services.entry_service import EntryService

router = APIRouter(prefix="/entries", tags=["entries"])


async def read_upload(image: Optional[UploadFile]) -> tuple[str, bytes]:
    """Filename and bytes of an uploaded image, or a missing_fields rejection."""
    if image is None:
        raise HTTPException(status_code=400, detail={"code": "missing_fields", "message": "image is required"})
    data = await image.read()
    return image.filename or "", data


@router.post("", response_model=EntryResponse, status_code=201)
async def create_entry(
    phone: Annotated[str, Form()] = "",
    name: Annotated[str, Form()] = "",
    costume_title: Annotated[str, Form()] = "",
    description: Annotated[Optional[str], Form()] = None,
    image: Annotated[Optional[UploadFile], File()] = None,
    db: AsyncSession = Depends(get_db),
):
    """Register a costume. Open only during the upload phase; one entry per phone."""
    filename, data = await read_upload(image)
    result = await EntryService(db).create_entry(phone, name, costume_title, description, filename, data)
    return EntryResponse.model_validate(raise_for_result(result)["entry"])


@router.get("", response_model=EntryListResponse)
async def list_entries(
    order: Literal["recent", "rank"] = "recent",
    limit: Annotated[Optional[int], Query(ge=1, le=500)] = None,
    db: AsyncSession = Depends(get_db),
):
    result = await EntryService(db).list_entries(order=order, limit=limit)
    return EntryListResponse(entries=raise_for_result(result)["entries"])


@router.get("/top", response_model=EntryListResponse)
async def list_top_entries(
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    db: AsyncSession = Depends(get_db),
):
    """Leaderboard: highest score first, earlier entries win ties."""
    result = await EntryService(db).list_top_entries(limit=limit)
    return EntryListResponse(entries=raise_for_result(result)["entries"])


@router.get("/finalists", response_model=EntryListResponse)
async def list_finalists(db: AsyncSession = Depends(get_db)):
    result = await EntryService(db).list_finalists()
    return EntryListResponse(entries=raise_for_result(result)["entries"])


@router.get("/{entry_id}", response_model=EntryResponse)
async def get_entry(entry_id: UUID, db: AsyncSession = Depends(get_db)):
    result = await EntryService(db).get_entry(entry_id)
    return EntryResponse.model_validate(raise_for_result(result)["entry"])
