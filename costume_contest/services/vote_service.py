"""Voting rule engine: validates and commits ballots for both voting rounds."""
import logging
import uuid
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from costume_contest.config import get_settings
from costume_contest.models.base import ContestPhase, VotePhase
from costume_contest.models.entry import Entry
from costume_contest.models.vote import Ballot, Vote
from costume_contest.models.voter import Voter
from costume_contest.services.helpers import guarded_operation
from costume_contest.services.phase_service import PhaseService
from costume_contest.services.scoring_service import ScoringService
from costume_contest.utils.exceptions import NotFoundError, OperationResult, ValidationRejected
from costume_contest.utils.phone import canonical_phone, mask_phone

logger = logging.getLogger(__name__)

LEGAL_POINTS = frozenset({1, 8, 10, 12})

# Exact ballot shape per round, as sorted points
BALLOT_SHAPES = {
    VotePhase.FIRST_ROUND: [8, 10, 12],
    VotePhase.FINAL_ROUND: [1],
}

# Contest phase in which each round accepts ballots
OPEN_PHASE = {
    VotePhase.FIRST_ROUND: ContestPhase.VOTING,
    VotePhase.FINAL_ROUND: ContestPhase.FINALS,
}

SINGLE_VOTE_POINTS = frozenset({8, 10, 12})

VOTER_FLAG = {
    VotePhase.FIRST_ROUND: "voted_first_round",
    VotePhase.FINAL_ROUND: "voted_final_round",
}


def _parse_vote_phase(phase) -> VotePhase:
    try:
        return VotePhase(int(phase))
    except (TypeError, ValueError):
        raise ValidationRejected("invalid_vote_phase", f"unknown voting round: {phase}")


def _parse_entry_id(value) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _vote_fields(vote) -> tuple:
    """Accept either a mapping or an object with ``entry_id``/``points``."""
    if isinstance(vote, dict):
        return vote.get("entry_id"), vote.get("points")
    return getattr(vote, "entry_id", None), getattr(vote, "points", None)


class VoteService:
    """Applies the contest's voting rules and records ballots.

    Every check runs before anything is written. The ballot, its votes, the
    score updates and the voter's participation flag commit in one
    transaction; the ballot's (voter, round) unique constraint settles races
    between concurrent submissions.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()
        self.phase_service = PhaseService(db)
        self.scoring_service = ScoringService(db)

    async def _require_open(self, vote_phase: VotePhase) -> None:
        current = await self.phase_service.current_phase()
        if current != OPEN_PHASE[vote_phase]:
            raise ValidationRejected("voting_not_active", "voting not active")

    async def _has_ballot(self, voter_phone: str, vote_phase: VotePhase) -> bool:
        result = await self.db.execute(
            select(Ballot.ballot_id).where(
                Ballot.voter_phone == voter_phone,
                Ballot.phase == int(vote_phase),
            ).limit(1)
        )
        return result.scalar() is not None

    async def _get_voter(self, voter_phone: str) -> Voter | None:
        return await self.db.get(Voter, voter_phone, populate_existing=True)

    async def _mark_voted(self, voter_phone: str, vote_phase: VotePhase) -> None:
        """Upsert the voter's participation flag for a round. Does not commit."""
        flag = VOTER_FLAG[vote_phase]
        values = {"phone": voter_phone, flag: True}
        if self.db.get_bind().dialect.name == "postgresql":
            stmt = pg_insert(Voter).values(**values)
        else:
            stmt = sqlite_insert(Voter).values(**values)
        stmt = stmt.on_conflict_do_update(index_elements=["phone"], set_={flag: True})
        await self.db.execute(stmt)

    @guarded_operation("submit_ballot")
    async def submit_ballot(self, voter_phone: str, votes: list, phase) -> OperationResult:
        """Validate and record a voter's full ballot for one round.

        Checks, in order: voting open for the round, legal points, one distinct
        existing costume per vote, no self-vote, no earlier ballot this round,
        finals eligibility (when configured), and the exact ballot shape.
        """
        voter_phone = canonical_phone(voter_phone)
        vote_phase = _parse_vote_phase(phase)
        pairs = [_vote_fields(v) for v in votes or []]

        await self._require_open(vote_phase)

        for _, points in pairs:
            if points not in LEGAL_POINTS:
                legal = ", ".join(str(p) for p in sorted(LEGAL_POINTS))
                raise ValidationRejected("invalid_points", f"invalid points value. allowed: {legal}")

        entry_ids = [_parse_entry_id(entry_id) for entry_id, _ in pairs]
        valid_ids = {entry_id for entry_id in entry_ids if entry_id is not None}

        # A costume listed twice resolves once, so it counts as missing
        entries: list[Entry] = []
        if valid_ids:
            result = await self.db.execute(select(Entry).where(Entry.entry_id.in_(valid_ids)))
            entries = list(result.scalars().all())
        if len(entries) != len(pairs):
            raise ValidationRejected("costumes_not_found", "one or more costumes not found")

        if any(entry.phone == voter_phone for entry in entries):
            raise ValidationRejected("self_vote", "cannot vote for your own costume")

        if await self._has_ballot(voter_phone, vote_phase):
            raise ValidationRejected("already_voted", "already voted this phase")

        if vote_phase == VotePhase.FINAL_ROUND and self.settings.require_first_round_for_finals:
            voter = await self._get_voter(voter_phone)
            if voter is None or not voter.voted_first_round:
                raise ValidationRejected("not_eligible", "not eligible for the final round")

        expected = BALLOT_SHAPES[vote_phase]
        if vote_phase == VotePhase.FIRST_ROUND:
            if len(pairs) != len(expected):
                raise ValidationRejected("invalid_ballot_size", "choose exactly 3 costumes")
            if sorted(points for _, points in pairs) != expected:
                raise ValidationRejected("invalid_ballot_points", "award exactly 12, 10 and 8 points")
        else:
            if len(pairs) != len(expected):
                raise ValidationRejected("invalid_ballot_size", "choose exactly 1 costume")
            if [points for _, points in pairs] != expected:
                raise ValidationRejected("invalid_ballot_points", "award exactly 1 point")

        ballot = Ballot(ballot_id=uuid.uuid4(), voter_phone=voter_phone, phase=int(vote_phase))
        # Any statement below may flush the pending ballot, so the constraint can fire before commit
        try:
            self.db.add(ballot)
            for entry_id, (_, points) in zip(entry_ids, pairs):
                self.db.add(Vote(
                    ballot=ballot,
                    voter_phone=voter_phone,
                    entry_id=entry_id,
                    phase=int(vote_phase),
                    points=points,
                ))
                await self.scoring_service.apply_points(entry_id, points)
            await self._mark_voted(voter_phone, vote_phase)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info(f"Concurrent duplicate ballot from {mask_phone(voter_phone)} in round {int(vote_phase)}")
            raise ValidationRejected("already_voted", "already voted this phase")

        logger.info(
            f"Ballot {ballot.ballot_id} recorded for {mask_phone(voter_phone)} in round {int(vote_phase)}: "
            f"{[(str(e), p) for e, (_, p) in zip(entry_ids, pairs)]}"
        )
        return OperationResult.success(
            ballot_id=ballot.ballot_id,
            phase=vote_phase,
            votes=[{"entry_id": e, "points": p} for e, (_, p) in zip(entry_ids, pairs)],
        )

    async def _get_or_add_ballot(self, voter_phone: str, vote_phase: VotePhase) -> Ballot:
        """The voter's ballot for the round, or a new pending one. Does not flush."""
        result = await self.db.execute(
            select(Ballot).where(Ballot.voter_phone == voter_phone, Ballot.phase == int(vote_phase))
        )
        ballot = result.scalars().first()
        if ballot is None:
            ballot = Ballot(ballot_id=uuid.uuid4(), voter_phone=voter_phone, phase=int(vote_phase))
            self.db.add(ballot)
        return ballot

    async def _replace_single_vote(self, voter_phone: str, target_id: UUID, points: int) -> tuple[bool, UUID | None]:
        """Stage a round-1 single vote with its score changes. Does not commit.

        Returns whether the voter's earlier vote on the same costume was
        replaced, and the costume the points value was moved off, if any.
        """
        vote_phase = VotePhase.FIRST_ROUND
        ballot = await self._get_or_add_ballot(voter_phone, vote_phase)

        base = select(Vote).where(Vote.voter_phone == voter_phone, Vote.phase == int(vote_phase))

        updated = False
        same_entry = (await self.db.execute(base.where(Vote.entry_id == target_id))).scalars().first()
        if same_entry is not None:
            await self.scoring_service.apply_points(same_entry.entry_id, -same_entry.points)
            await self.db.delete(same_entry)
            updated = True

        previous_entry_id = None
        same_points = (await self.db.execute(base.where(Vote.points == points))).scalars().first()
        if same_points is not None and same_points is not same_entry:
            previous_entry_id = same_points.entry_id
            await self.scoring_service.apply_points(same_points.entry_id, -same_points.points)
            await self.db.delete(same_points)

        # Deletions must reach the database before the insert hits the unique constraints
        await self.db.flush()

        self.db.add(Vote(
            ballot_id=ballot.ballot_id,
            voter_phone=voter_phone,
            entry_id=target_id,
            phase=int(vote_phase),
            points=points,
        ))
        await self.scoring_service.apply_points(target_id, points)
        await self._mark_voted(voter_phone, vote_phase)
        return updated, previous_entry_id

    @guarded_operation("submit_single_vote")
    async def submit_single_vote(self, voter_phone: str, entry_id, points: int) -> OperationResult:
        """Give one costume 12, 10 or 8 points during the first round.

        A voter holds at most one vote per points value and one per costume.
        Re-voting a costume replaces its old vote, and reusing a points value
        moves it off the costume that held it.
        """
        voter_phone = canonical_phone(voter_phone)
        vote_phase = VotePhase.FIRST_ROUND

        await self._require_open(vote_phase)

        if points not in SINGLE_VOTE_POINTS:
            legal = ", ".join(str(p) for p in sorted(SINGLE_VOTE_POINTS))
            raise ValidationRejected("invalid_points", f"invalid points value. allowed: {legal}")

        target_id = _parse_entry_id(entry_id)
        entry = await self.db.get(Entry, target_id) if target_id else None
        if entry is None:
            raise NotFoundError("costume_not_found", "costume not found")

        if entry.phone == voter_phone:
            raise ValidationRejected("self_vote", "cannot vote for your own costume")

        try:
            updated, previous_entry_id = await self._replace_single_vote(voter_phone, target_id, points)
            await self.db.commit()
        except IntegrityError:
            # Lost a race with another vote from the same phone
            await self.db.rollback()
            logger.info(f"Concurrent single vote from {mask_phone(voter_phone)} lost to a unique constraint")
            raise ValidationRejected("already_voted_with_points", "already voted with these points")

        moved = previous_entry_id is not None
        logger.info(
            f"Single vote from {mask_phone(voter_phone)}: {points} -> {target_id}"
            f"{f' (moved from {previous_entry_id})' if moved else ''}{' (updated)' if updated else ''}"
        )
        return OperationResult.success(
            entry_id=target_id,
            points=points,
            moved=moved,
            updated=updated,
            previous_entry_id=previous_entry_id,
        )

    @guarded_operation("get_user_votes")
    async def get_user_votes(self, voter_phone: str, phase) -> OperationResult:
        """Map of entry id to points the voter has given in a round."""
        voter_phone = canonical_phone(voter_phone)
        vote_phase = _parse_vote_phase(phase)
        result = await self.db.execute(
            select(Vote.entry_id, Vote.points).where(
                Vote.voter_phone == voter_phone,
                Vote.phase == int(vote_phase),
            )
        )
        return OperationResult.success(votes={entry_id: points for entry_id, points in result.all()})

    @guarded_operation("check_eligibility")
    async def check_eligibility(self, voter_phone: str, phase) -> OperationResult:
        """Anyone may vote in the first round; the final round needs a first-round vote."""
        voter_phone = canonical_phone(voter_phone)
        vote_phase = _parse_vote_phase(phase)
        if vote_phase == VotePhase.FIRST_ROUND:
            return OperationResult.success(eligible=True)
        voter = await self._get_voter(voter_phone)
        return OperationResult.success(eligible=bool(voter and voter.voted_first_round))
