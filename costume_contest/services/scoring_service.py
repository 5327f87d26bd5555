"""Keeps each entry's total score equal to the sum of its vote points."""
import logging
from uuid import UUID

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from costume_contest.models.entry import Entry
from costume_contest.models.vote import Vote
from costume_contest.services.helpers import guarded_operation
from costume_contest.utils.exceptions import OperationResult

logger = logging.getLogger(__name__)


class ScoringService:
    """Score bookkeeping for entries.

    Callers apply deltas inside the same transaction that inserts or deletes
    the vote rows, so the denormalized total never drifts from the votes.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def apply_points(self, entry_id: UUID, delta: int) -> None:
        """Add ``delta`` to an entry's total. Does not commit."""
        if delta == 0:
            return
        await self.db.execute(
            update(Entry)
            .where(Entry.entry_id == entry_id)
            .values(total_score=Entry.total_score + delta)
            .execution_options(synchronize_session=False)
        )

    async def _vote_totals(self) -> dict[UUID, int]:
        result = await self.db.execute(
            select(Vote.entry_id, func.coalesce(func.sum(Vote.points), 0)).group_by(Vote.entry_id)
        )
        return {entry_id: int(total) for entry_id, total in result.all()}

    async def find_score_drift(self) -> list[dict]:
        """List entries whose stored total differs from the sum of their votes."""
        totals = await self._vote_totals()
        result = await self.db.execute(select(Entry.entry_id, Entry.total_score))
        drift = []
        for entry_id, stored in result.all():
            expected = totals.get(entry_id, 0)
            if stored != expected:
                drift.append({"entry_id": entry_id, "stored": stored, "expected": expected})
        return drift

    @guarded_operation("recalculate_scores")
    async def recalculate_scores(self) -> OperationResult:
        """Rewrite every entry's total from the vote rows and commit.

        Reports how many entries had drifted as ``entries_corrected``.
        """
        drift = await self.find_score_drift()
        for item in drift:
            await self.db.execute(
                update(Entry)
                .where(Entry.entry_id == item["entry_id"])
                .values(total_score=item["expected"])
                .execution_options(synchronize_session=False)
            )
        await self.db.commit()
        if drift:
            logger.warning(f"Recalculated scores for {len(drift)} drifted entries")
        else:
            logger.info("Score recalculation found no drift")
        return OperationResult.success(entries_corrected=len(drift))
