"""Entry store: costume submissions, gallery queries and admin moderation."""
import logging
from uuid import UUID

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from costume_contest.models.base import ContestPhase
from costume_contest.models.entry import Entry
from costume_contest.services.blob_storage import LocalBlobStorage, get_blob_storage
from costume_contest.services.helpers import guarded_operation
from costume_contest.services.phase_service import PhaseService
from costume_contest.utils.exceptions import NotFoundError, OperationResult, ValidationRejected
from costume_contest.utils.phone import canonical_phone, mask_phone

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1000

ENTRY_ORDERINGS = {
    "recent": (Entry.created_at.desc(),),
    "rank": (Entry.total_score.desc(), Entry.created_at.asc()),
}


def _clean_text(value: str | None, field: str, max_length: int, required: bool = True) -> str | None:
    text = (value or "").strip()
    if not text:
        if required:
            raise ValidationRejected("missing_fields", f"{field} is required")
        return None
    if len(text) > max_length:
        raise ValidationRejected("field_too_long", f"{field} must be at most {max_length} characters")
    return text


class EntryService:
    """Service for creating, querying and moderating costume entries."""

    def __init__(self, db: AsyncSession, blob_storage: LocalBlobStorage | None = None):
        self.db = db
        self.blob_storage = blob_storage or get_blob_storage()
        self.phase_service = PhaseService(db, self.blob_storage)

    async def _load_entry(self, entry_id: UUID) -> Entry:
        entry = await self.db.get(Entry, entry_id)
        if entry is None:
            raise NotFoundError("entry_not_found", "costume not found")
        return entry

    async def _find_by_phone(self, phone: str) -> Entry | None:
        result = await self.db.execute(select(Entry).where(Entry.phone == phone))
        return result.scalars().first()

    async def _delete_image_best_effort(self, image_path: str | None, image_url: str | None = None) -> None:
        """Remove a stored image; failures are logged and swallowed."""
        path = image_path or self.blob_storage.path_from_url(image_url)
        if not path:
            return
        try:
            await run_in_threadpool(self.blob_storage.delete, path)
        except Exception as e:
            logger.warning(f"Could not delete image {path}, leaving it orphaned: {e}")

    @guarded_operation("create_entry")
    async def create_entry(
        self,
        phone: str,
        name: str,
        costume_title: str,
        description: str | None,
        filename: str,
        image_data: bytes,
    ) -> OperationResult:
        """Register a participant's costume.

        The duplicate-phone check runs before the image upload, so a rejected
        duplicate never stores a file. If the insert fails, including a lost
        race to a concurrent submission, the just-uploaded image is removed.
        """
        phase = await self.phase_service.current_phase()
        if phase != ContestPhase.UPLOAD:
            raise ValidationRejected("upload_closed", "costume registration is closed")

        phone = canonical_phone(phone)
        name = _clean_text(name, "name", MAX_NAME_LENGTH)
        costume_title = _clean_text(costume_title, "costume title", MAX_TITLE_LENGTH)
        description = _clean_text(description, "description", MAX_DESCRIPTION_LENGTH, required=False)

        if await self._find_by_phone(phone):
            raise ValidationRejected("phone_already_registered", "phone already registered")

        image_path = self.blob_storage.build_path(phone, filename)
        image_url = await run_in_threadpool(self.blob_storage.upload, image_path, image_data)

        entry = Entry(
            phone=phone,
            name=name,
            costume_title=costume_title,
            description=description,
            image_url=image_url,
            image_path=image_path,
        )
        self.db.add(entry)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            await self._delete_image_best_effort(image_path)
            raise ValidationRejected("phone_already_registered", "phone already registered")
        except Exception:
            await self.db.rollback()
            await self._delete_image_best_effort(image_path)
            raise

        await self.db.refresh(entry)
        logger.info(f"Entry {entry.entry_id} created for {mask_phone(phone)}")
        return OperationResult.success(entry=entry)

    @guarded_operation("admin_upsert_entry")
    async def admin_upsert_entry(
        self,
        phone: str,
        name: str,
        costume_title: str,
        description: str | None,
        filename: str,
        image_data: bytes,
    ) -> OperationResult:
        """Manual upload from the admin console.

        Ignores the phase gate and replaces an existing entry for the same
        phone (its old image is deleted best-effort). Score and finalist flag
        are kept on replacement.
        """
        phone = canonical_phone(phone)
        name = _clean_text(name, "name", MAX_NAME_LENGTH)
        costume_title = _clean_text(costume_title, "costume title", MAX_TITLE_LENGTH)
        description = _clean_text(description, "description", MAX_DESCRIPTION_LENGTH, required=False)

        image_path = self.blob_storage.build_path(phone, filename)
        image_url = await run_in_threadpool(self.blob_storage.upload, image_path, image_data)

        entry = await self._find_by_phone(phone)
        replaced = entry is not None
        old_path, old_url = (entry.image_path, entry.image_url) if entry else (None, None)

        if entry is None:
            entry = Entry(phone=phone)
            self.db.add(entry)
        entry.name = name
        entry.costume_title = costume_title
        entry.description = description
        entry.image_url = image_url
        entry.image_path = image_path

        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            await self._delete_image_best_effort(image_path)
            raise

        if replaced:
            await self._delete_image_best_effort(old_path, old_url)

        await self.db.refresh(entry)
        logger.info(f"Admin {'replaced' if replaced else 'created'} entry {entry.entry_id} for {mask_phone(phone)}")
        return OperationResult.success(entry=entry, replaced=replaced)

    @guarded_operation("get_entry")
    async def get_entry(self, entry_id: UUID) -> OperationResult:
        entry = await self._load_entry(entry_id)
        return OperationResult.success(entry=entry)

    @guarded_operation("list_entries")
    async def list_entries(self, order: str = "recent", limit: int | None = None) -> OperationResult:
        """List entries newest first (``recent``) or by score (``rank``)."""
        if order not in ENTRY_ORDERINGS:
            raise ValidationRejected("invalid_order", f"order must be one of: {', '.join(ENTRY_ORDERINGS)}")
        stmt = select(Entry).order_by(*ENTRY_ORDERINGS[order])
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return OperationResult.success(entries=list(result.scalars().all()))

    async def list_top_entries(self, limit: int = 10) -> OperationResult:
        return await self.list_entries(order="rank", limit=limit)

    @guarded_operation("list_finalists")
    async def list_finalists(self) -> OperationResult:
        result = await self.db.execute(
            select(Entry)
            .where(Entry.is_finalist.is_(True))
            .order_by(*ENTRY_ORDERINGS["rank"])
        )
        return OperationResult.success(entries=list(result.scalars().all()))

    @guarded_operation("get_leading_entry")
    async def get_leading_entry(self) -> OperationResult:
        result = await self.db.execute(
            select(Entry).order_by(*ENTRY_ORDERINGS["rank"]).limit(1)
        )
        entry = result.scalars().first()
        if entry is None:
            raise NotFoundError("no_entries", "no costumes yet")
        return OperationResult.success(entry=entry)

    @guarded_operation("update_entry")
    async def update_entry(
        self,
        entry_id: UUID,
        name: str | None = None,
        costume_title: str | None = None,
        description: str | None = None,
    ) -> OperationResult:
        """Admin edit of an entry's text fields. ``None`` leaves a field unchanged."""
        entry = await self._load_entry(entry_id)
        if name is not None:
            entry.name = _clean_text(name, "name", MAX_NAME_LENGTH)
        if costume_title is not None:
            entry.costume_title = _clean_text(costume_title, "costume title", MAX_TITLE_LENGTH)
        if description is not None:
            entry.description = _clean_text(description, "description", MAX_DESCRIPTION_LENGTH, required=False)
        await self.db.commit()
        await self.db.refresh(entry)
        logger.info(f"Entry {entry_id} updated by admin")
        return OperationResult.success(entry=entry)

    @guarded_operation("delete_entry")
    async def delete_entry(self, entry_id: UUID) -> OperationResult:
        """Delete an entry and its votes, then its image best-effort.

        The row deletion decides the outcome; an image that cannot be removed
        is logged and left behind.
        """
        entry = await self._load_entry(entry_id)
        image_path, image_url = entry.image_path, entry.image_url

        await self.db.delete(entry)
        await self.db.commit()

        await self._delete_image_best_effort(image_path, image_url)
        logger.info(f"Entry {entry_id} deleted by admin")
        return OperationResult.success(entry_id=entry_id)
