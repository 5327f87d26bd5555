"""Entry-related Pydantic schemas."""
from costume_contest.schemas.base import BaseSchema, UTCDateTime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class EntryResponse(BaseSchema):
    """Public view of a costume entry. The phone number is never exposed."""
    entry_id: UUID
    name: str
    costume_title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    total_score: int
    is_finalist: bool
    created_at: UTCDateTime


class EntryListResponse(BaseSchema):
    entries: list[EntryResponse]


class AdminEntryResponse(EntryResponse):
    """Admin view, including the participant's phone."""
    phone: str
    image_path: Optional[str] = None
    updated_at: UTCDateTime


class AdminEntryListResponse(BaseSchema):
    entries: list[AdminEntryResponse]


class AdminEntryUpsertResponse(BaseSchema):
    entry: AdminEntryResponse
    replaced: bool


class EntryUpdateRequest(BaseModel):
    """Admin edit of an entry's text. Omitted fields stay unchanged."""
    name: Optional[str] = Field(default=None, max_length=100)
    costume_title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)


class EntryDeleteResponse(BaseSchema):
    deleted_entry_id: UUID
