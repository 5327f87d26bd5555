"""Tests for full-ballot voting in both rounds."""
import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from costume_contest.models.base import ContestPhase, VotePhase
from costume_contest.models.vote import Ballot, Vote
from costume_contest.models.voter import Voter
from costume_contest.services.scoring_service import ScoringService
from costume_contest.services.vote_service import VoteService

VOTER = "0501234567"


def ballot(*allocations):
    return [{"entry_id": str(entry.entry_id), "points": points} for entry, points in allocations]


@pytest.fixture
async def three_entries(entry_factory, set_contest_phase):
    entries = [
        await entry_factory(costume_title="Witch"),
        await entry_factory(costume_title="Pirate"),
        await entry_factory(costume_title="Banana"),
    ]
    await set_contest_phase(ContestPhase.VOTING)
    return entries


async def count_rows(db_session, model, **filters):
    stmt = select(func.count()).select_from(model)
    for column, value in filters.items():
        stmt = stmt.where(getattr(model, column) == value)
    return await db_session.scalar(stmt)


@pytest.mark.asyncio
async def test_first_round_ballot_adds_points_and_marks_voter(db_session, three_entries):
    a, b, c = three_entries

    result = await VoteService(db_session).submit_ballot(
        VOTER, ballot((a, 12), (b, 10), (c, 8)), VotePhase.FIRST_ROUND)

    assert result.ok, result.message
    assert result.data["phase"] == VotePhase.FIRST_ROUND
    for entry, expected in zip(three_entries, (12, 10, 8)):
        await db_session.refresh(entry)
        assert entry.total_score == expected
    assert await count_rows(db_session, Vote, voter_phone=VOTER) == 3
    assert await count_rows(db_session, Ballot, voter_phone=VOTER) == 1

    voter = await db_session.get(Voter, VOTER)
    assert voter.voted_first_round is True
    assert voter.voted_final_round is False


@pytest.mark.asyncio
async def test_second_ballot_in_same_round_is_rejected(db_session, three_entries):
    a, b, c = three_entries
    service = VoteService(db_session)
    first = await service.submit_ballot(VOTER, ballot((a, 12), (b, 10), (c, 8)), 1)

    second = await service.submit_ballot(VOTER, ballot((a, 8), (b, 12), (c, 10)), 1)

    assert first.ok
    assert not second.ok
    assert second.code == "already_voted"
    assert second.message == "already voted this phase"
    assert await count_rows(db_session, Vote, voter_phone=VOTER) == 3
    await db_session.refresh(a)
    assert a.total_score == 12


@pytest.mark.asyncio
async def test_same_voter_spelled_differently_is_one_identity(db_session, three_entries):
    a, b, c = three_entries
    service = VoteService(db_session)
    await service.submit_ballot("050-123-4567", ballot((a, 12), (b, 10), (c, 8)), 1)

    result = await service.submit_ballot("+972501234567", ballot((a, 12), (b, 10), (c, 8)), 1)

    assert result.code == "already_voted"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "points, code",
    [
        ((12, 10), "invalid_ballot_size"),
        ((12, 10, 8, 1), "invalid_ballot_size"),
        ((12, 12, 8), "invalid_ballot_points"),
        ((12, 10, 1), "invalid_ballot_points"),
        ((12, 10, 7), "invalid_points"),
    ],
)
async def test_first_round_shape_is_enforced(db_session, entry_factory, set_contest_phase, points, code):
    entries = [await entry_factory() for _ in range(len(points))]
    await set_contest_phase(ContestPhase.VOTING)

    result = await VoteService(db_session).submit_ballot(VOTER, ballot(*zip(entries, points)), 1)

    assert not result.ok
    assert result.code == code
    assert result.kind == "validation"
    assert await count_rows(db_session, Vote) == 0
    assert await count_rows(db_session, Voter) == 0


@pytest.mark.asyncio
async def test_same_costume_twice_counts_as_missing(db_session, three_entries):
    a, b, _ = three_entries

    result = await VoteService(db_session).submit_ballot(VOTER, ballot((a, 12), (a, 10), (b, 8)), 1)

    assert result.code == "costumes_not_found"
    assert result.message == "one or more costumes not found"
    assert await count_rows(db_session, Vote) == 0


@pytest.mark.asyncio
async def test_unknown_costume_is_rejected(db_session, three_entries):
    a, b, _ = three_entries
    votes = ballot((a, 12), (b, 10)) + [{"entry_id": str(uuid.uuid4()), "points": 8}]

    result = await VoteService(db_session).submit_ballot(VOTER, votes, 1)

    assert result.code == "costumes_not_found"
    assert result.message == "one or more costumes not found"


@pytest.mark.asyncio
async def test_malformed_costume_id_is_reported_as_not_found(db_session, three_entries):
    a, b, _ = three_entries
    votes = ballot((a, 12), (b, 10)) + [{"entry_id": "not-a-uuid", "points": 8}]

    result = await VoteService(db_session).submit_ballot(VOTER, votes, 1)

    assert result.code == "costumes_not_found"


@pytest.mark.asyncio
async def test_voter_cannot_vote_for_own_costume(db_session, entry_factory, set_contest_phase):
    own = await entry_factory(phone=VOTER)
    b = await entry_factory()
    c = await entry_factory()
    await set_contest_phase(ContestPhase.VOTING)

    result = await VoteService(db_session).submit_ballot(
        "+972-50-123-4567", ballot((own, 12), (b, 10), (c, 8)), 1)

    assert result.code == "self_vote"
    assert result.message == "cannot vote for your own costume"
    assert await count_rows(db_session, Vote) == 0


@pytest.mark.asyncio
async def test_invalid_voter_phone_is_rejected(db_session, three_entries):
    a, b, c = three_entries

    result = await VoteService(db_session).submit_ballot("12345", ballot((a, 12), (b, 10), (c, 8)), 1)

    assert result.code == "invalid_phone"


@pytest.mark.asyncio
@pytest.mark.parametrize("phase", [ContestPhase.UPLOAD, ContestPhase.FINALS, ContestPhase.ENDED])
async def test_first_round_only_accepts_ballots_while_voting(db_session, entry_factory, set_contest_phase, phase):
    entries = [await entry_factory() for _ in range(3)]
    await set_contest_phase(phase)

    result = await VoteService(db_session).submit_ballot(VOTER, ballot(*zip(entries, (12, 10, 8))), 1)

    assert result.code == "voting_not_active"
    assert result.message == "voting not active"


@pytest.mark.asyncio
async def test_unknown_round_is_rejected(db_session, three_entries):
    result = await VoteService(db_session).submit_ballot(VOTER, [], 3)

    assert result.code == "invalid_vote_phase"


@pytest.mark.asyncio
async def test_final_round_accepts_a_single_point(db_session, three_entries, set_contest_phase):
    a, _, _ = three_entries
    await set_contest_phase(ContestPhase.FINALS)

    result = await VoteService(db_session).submit_ballot(VOTER, ballot((a, 1)), VotePhase.FINAL_ROUND)

    assert result.ok, result.message
    await db_session.refresh(a)
    assert a.total_score == 1
    voter = await db_session.get(Voter, VOTER)
    assert voter.voted_final_round is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "points, code",
    [
        ((12,), "invalid_ballot_points"),
        ((8,), "invalid_ballot_points"),
        ((1, 1), "invalid_ballot_size"),
    ],
)
async def test_final_round_shape_is_enforced(db_session, three_entries, set_contest_phase, points, code):
    await set_contest_phase(ContestPhase.FINALS)

    result = await VoteService(db_session).submit_ballot(VOTER, ballot(*zip(three_entries, points)), 2)

    assert result.code == code
    assert await count_rows(db_session, Vote) == 0


@pytest.mark.asyncio
async def test_final_round_is_closed_during_first_round_voting(db_session, three_entries):
    a, _, _ = three_entries

    result = await VoteService(db_session).submit_ballot(VOTER, ballot((a, 1)), 2)

    assert result.code == "voting_not_active"


@pytest.mark.asyncio
async def test_final_round_can_require_a_first_round_ballot(db_session, three_entries, set_contest_phase, monkeypatch):
    a, b, c = three_entries
    service = VoteService(db_session)
    monkeypatch.setattr(service.settings, "require_first_round_for_finals", True)
    await service.submit_ballot(VOTER, ballot((a, 12), (b, 10), (c, 8)), 1)
    await set_contest_phase(ContestPhase.FINALS)
    final_ballot = ballot((a, 1))

    newcomer = await service.submit_ballot("0529999999", final_ballot, 2)
    returning = await service.submit_ballot(VOTER, final_ballot, 2)

    assert newcomer.code == "not_eligible"
    assert returning.ok


@pytest.mark.asyncio
async def test_one_voter_can_vote_in_both_rounds(db_session, three_entries, set_contest_phase):
    a, b, c = three_entries
    service = VoteService(db_session)
    await service.submit_ballot(VOTER, ballot((a, 12), (b, 10), (c, 8)), 1)
    await set_contest_phase(ContestPhase.FINALS)

    result = await service.submit_ballot(VOTER, ballot((c, 1)), 2)

    assert result.ok
    voter = await db_session.get(Voter, VOTER, populate_existing=True)
    assert voter.voted_first_round is True
    assert voter.voted_final_round is True
    await db_session.refresh(c)
    assert c.total_score == 9


@pytest.mark.asyncio
async def test_store_constraint_settles_duplicate_that_passes_the_check(db_session, three_entries, monkeypatch):
    """A second ballot that slips past the read check still loses to the unique constraint."""
    a, b, c = three_entries
    service = VoteService(db_session)
    first = await service.submit_ballot(VOTER, ballot((a, 12), (b, 10), (c, 8)), 1)

    async def no_ballot_seen(*args, **kwargs):
        return False

    monkeypatch.setattr(service, "_has_ballot", no_ballot_seen)
    second = await service.submit_ballot(VOTER, ballot((a, 8), (b, 12), (c, 10)), 1)

    assert first.ok
    assert second.code == "already_voted"
    assert await count_rows(db_session, Ballot, voter_phone=VOTER) == 1
    assert await ScoringService(db_session).find_score_drift() == []
    await db_session.refresh(a)
    assert a.total_score == 12


@pytest.mark.asyncio
async def test_concurrent_duplicate_on_autoflushing_sessions_is_already_voted(test_engine, three_entries, monkeypatch):
    """Score updates flush the pending ballot early; the constraint must still read as a duplicate."""
    a, b, c = three_entries
    first_allocations = ballot((a, 12), (b, 10), (c, 8))
    second_allocations = ballot((a, 8), (b, 12), (c, 10))
    sessions = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=True)

    async def no_ballot_seen(*args, **kwargs):
        return False

    async with sessions() as first_session, sessions() as second_session:
        first = await VoteService(first_session).submit_ballot(VOTER, first_allocations, 1)
        racer = VoteService(second_session)
        monkeypatch.setattr(racer, "_has_ballot", no_ballot_seen)
        second = await racer.submit_ballot(VOTER, second_allocations, 1)

        assert first.ok
        assert second.code == "already_voted"
        assert second.kind == "validation"
        assert await count_rows(second_session, Ballot, voter_phone=VOTER) == 1
        assert await ScoringService(second_session).find_score_drift() == []


@pytest.mark.asyncio
async def test_scores_match_vote_rows_after_many_ballots(db_session, entry_factory, set_contest_phase):
    entries = [await entry_factory() for _ in range(5)]
    await set_contest_phase(ContestPhase.VOTING)
    service = VoteService(db_session)

    for i in range(6):
        picks = [entries[(i + k) % 5] for k in range(3)]
        result = await service.submit_ballot(f"05411111{i:02d}", ballot(*zip(picks, (12, 10, 8))), 1)
        assert result.ok

    assert await ScoringService(db_session).find_score_drift() == []


@pytest.mark.asyncio
async def test_user_votes_and_eligibility(db_session, three_entries):
    a, b, c = three_entries
    service = VoteService(db_session)

    before = await service.check_eligibility(VOTER, 2)
    await service.submit_ballot(VOTER, ballot((a, 12), (b, 10), (c, 8)), 1)
    after = await service.check_eligibility(VOTER, 2)
    votes = await service.get_user_votes(VOTER, 1)

    assert (await service.check_eligibility(VOTER, 1)).data["eligible"] is True
    assert before.data["eligible"] is False
    assert after.data["eligible"] is True
    assert votes.data["votes"] == {a.entry_id: 12, b.entry_id: 10, c.entry_id: 8}
