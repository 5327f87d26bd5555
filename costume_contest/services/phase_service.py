"""Phase controller: the single contest state row and the admin actions that move it."""
import logging
from datetime import datetime, UTC

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from costume_contest.config import get_settings
from costume_contest.models.base import ContestPhase, VotePhase
from costume_contest.models.contest_state import ContestState, CONTEST_STATE_ID
from costume_contest.models.entry import Entry
from costume_contest.models.vote import Ballot, Vote
from costume_contest.models.voter import Voter
from costume_contest.services.blob_storage import LocalBlobStorage, get_blob_storage
from costume_contest.services.helpers import guarded_operation
from costume_contest.utils.datetime_helpers import ensure_utc, parse_iso_datetime
from costume_contest.utils.exceptions import OperationResult, ValidationRejected

logger = logging.getLogger(__name__)

# Timestamp column stamped when a phase is entered
PHASE_TIMESTAMP_FIELDS = {
    ContestPhase.VOTING: "voting_started_at",
    ContestPhase.FINALS: "finals_started_at",
    ContestPhase.ENDED: "ended_at",
}


async def ensure_contest_state(db: AsyncSession) -> ContestState:
    """Fetch the contest state row, creating it in the upload phase if missing. Does not commit."""
    state = await db.get(ContestState, CONTEST_STATE_ID, populate_existing=True)
    if state is None:
        settings = get_settings()
        scheduled = parse_iso_datetime(settings.voting_start_time) if settings.voting_start_time else None
        state = ContestState(
            id=CONTEST_STATE_ID,
            current_phase=ContestPhase.UPLOAD.value,
            voting_start_time=scheduled,
        )
        db.add(state)
        await db.flush()
        logger.info("Created contest state row in upload phase")
    return state


def serialize_state(state: ContestState) -> dict:
    return {
        "phase": state.phase,
        "voting_started_at": ensure_utc(state.voting_started_at),
        "finals_started_at": ensure_utc(state.finals_started_at),
        "ended_at": ensure_utc(state.ended_at),
        "voting_start_time": ensure_utc(state.voting_start_time),
        "updated_at": ensure_utc(state.updated_at),
    }


class PhaseService:
    """Reads and transitions the global contest phase.

    Authorization happens before these methods are reached; nothing here
    checks the admin secret.
    """

    def __init__(self, db: AsyncSession, blob_storage: LocalBlobStorage | None = None):
        self.db = db
        self.settings = get_settings()
        self.blob_storage = blob_storage or get_blob_storage()

    async def current_phase(self) -> ContestPhase:
        """Current phase for internal gating. Raises on store errors."""
        state = await ensure_contest_state(self.db)
        return state.phase

    @guarded_operation("get_phase")
    async def get_phase(self) -> OperationResult:
        """Current phase and transition timestamps."""
        state = await ensure_contest_state(self.db)
        return OperationResult.success(**serialize_state(state))

    async def _apply_phase(self, state: ContestState, phase: ContestPhase, now: datetime) -> None:
        state.current_phase = phase.value
        state.updated_at = now
        stamp_field = PHASE_TIMESTAMP_FIELDS.get(phase)
        if stamp_field:
            setattr(state, stamp_field, now)

    @guarded_operation("set_phase")
    async def set_phase(self, new_phase: ContestPhase | str) -> OperationResult:
        """Move the contest to any phase.

        Backward and skipping moves are allowed so an operator can recover
        from mistakes.
        """
        try:
            phase = ContestPhase.parse(new_phase)
        except ValueError:
            raise ValidationRejected("invalid_phase", f"unknown phase: {new_phase}")

        state = await ensure_contest_state(self.db)
        previous = state.phase
        await self._apply_phase(state, phase, datetime.now(UTC))
        await self.db.commit()

        logger.info(f"Contest phase changed: {previous.value} -> {phase.value}")
        return OperationResult.success(previous_phase=previous, **serialize_state(state))

    @guarded_operation("trigger_finals")
    async def trigger_finals(self) -> OperationResult:
        """Flag the top scorers as finalists and open the finals.

        Ranking, flagging and the phase change commit together. Votes that
        land while this runs may or may not count toward the ranking.
        """
        count = self.settings.finalist_count
        result = await self.db.execute(
            select(Entry.entry_id)
            .order_by(Entry.total_score.desc(), Entry.created_at.asc())
            .limit(count)
        )
        top_ids = list(result.scalars().all())

        if len(top_ids) < count:
            raise ValidationRejected(
                "not_enough_participants",
                f"not enough participants for the finals (at least {count} required)",
            )

        await self.db.execute(
            update(Entry).values(is_finalist=False).execution_options(synchronize_session=False)
        )
        await self.db.execute(
            update(Entry)
            .where(Entry.entry_id.in_(top_ids))
            .values(is_finalist=True)
            .execution_options(synchronize_session=False)
        )

        state = await ensure_contest_state(self.db)
        await self._apply_phase(state, ContestPhase.FINALS, datetime.now(UTC))
        await self.db.commit()

        logger.info(f"Finals triggered with finalists {[str(i) for i in top_ids]}")
        return OperationResult.success(finalists=top_ids, **serialize_state(state))

    @guarded_operation("reset_all")
    async def reset_all(self, purge_blobs: bool = True) -> OperationResult:
        """Wipe votes, ballots, voters and entries and return to the upload phase.

        Irreversible. Stored images are purged after the database commit,
        best-effort.
        """
        votes_deleted = (await self.db.execute(delete(Vote))).rowcount
        await self.db.execute(delete(Ballot))
        voters_deleted = (await self.db.execute(delete(Voter))).rowcount
        entries_deleted = (await self.db.execute(delete(Entry))).rowcount

        state = await ensure_contest_state(self.db)
        state.current_phase = ContestPhase.UPLOAD.value
        state.voting_started_at = None
        state.finals_started_at = None
        state.ended_at = None
        state.updated_at = datetime.now(UTC)
        await self.db.commit()

        images_deleted = 0
        if purge_blobs:
            try:
                images_deleted = await run_in_threadpool(self.blob_storage.purge)
            except Exception as e:
                logger.warning(f"Image purge after reset failed, orphaned files remain: {e}")

        logger.warning(
            f"Contest reset: {entries_deleted} entries, {votes_deleted} votes, "
            f"{voters_deleted} voters, {images_deleted} images removed"
        )
        return OperationResult.success(
            entries_deleted=entries_deleted,
            votes_deleted=votes_deleted,
            voters_deleted=voters_deleted,
            images_deleted=images_deleted,
        )

    @guarded_operation("set_voting_start_time")
    async def set_voting_start_time(self, when: datetime | str | None) -> OperationResult:
        """Store the advisory time voting is expected to open (for countdowns)."""
        if isinstance(when, str):
            try:
                when = parse_iso_datetime(when)
            except ValueError:
                raise ValidationRejected("invalid_datetime", f"invalid timestamp: {when}")

        state = await ensure_contest_state(self.db)
        state.voting_start_time = ensure_utc(when)
        state.updated_at = datetime.now(UTC)
        await self.db.commit()

        logger.info(f"Voting start time set to {state.voting_start_time}")
        return OperationResult.success(**serialize_state(state))

    @guarded_operation("get_stats")
    async def get_stats(self) -> OperationResult:
        """Counts for the admin dashboard."""
        total_entries = await self.db.scalar(select(func.count()).select_from(Entry))
        total_votes = await self.db.scalar(select(func.count()).select_from(Vote))
        total_voters = await self.db.scalar(select(func.count()).select_from(Voter))

        result = await self.db.execute(
            select(Ballot.phase, func.count()).group_by(Ballot.phase)
        )
        ballots = {int(phase): int(n) for phase, n in result.all()}

        return OperationResult.success(
            total_entries=total_entries or 0,
            total_votes=total_votes or 0,
            total_voters=total_voters or 0,
            first_round_ballots=ballots.get(int(VotePhase.FIRST_ROUND), 0),
            final_round_ballots=ballots.get(int(VotePhase.FINAL_ROUND), 0),
        )
