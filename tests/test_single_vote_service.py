"""Tests for one-costume-at-a-time voting in the first round."""
import uuid

import pytest
from sqlalchemy import select

from costume_contest.models.base import ContestPhase
from costume_contest.models.vote import Ballot, Vote
from costume_contest.services.scoring_service import ScoringService
from costume_contest.services.vote_service import VoteService

VOTER = "0501234567"


@pytest.fixture
async def gallery(entry_factory, set_contest_phase):
    entries = [await entry_factory() for _ in range(3)]
    await set_contest_phase(ContestPhase.VOTING)
    return entries


async def scores(db_session, entries):
    for entry in entries:
        await db_session.refresh(entry)
    return [entry.total_score for entry in entries]


async def votes_by_entry(db_session):
    result = await db_session.execute(select(Vote.entry_id, Vote.points).where(Vote.voter_phone == VOTER))
    return dict(result.all())


@pytest.mark.asyncio
async def test_single_votes_build_up_a_ballot(db_session, gallery):
    a, b, c = gallery
    service = VoteService(db_session)

    for entry, points in ((a, 12), (b, 10), (c, 8)):
        result = await service.submit_single_vote(VOTER, entry.entry_id, points)
        assert result.ok, result.message
        assert result.data["moved"] is False
        assert result.data["updated"] is False

    assert await scores(db_session, gallery) == [12, 10, 8]
    ballots = (await db_session.execute(select(Ballot).where(Ballot.voter_phone == VOTER))).scalars().all()
    assert len(ballots) == 1
    assert (await service.check_eligibility(VOTER, 2)).data["eligible"] is True


@pytest.mark.asyncio
async def test_reusing_points_moves_them_to_the_new_costume(db_session, gallery):
    a, b, _ = gallery
    service = VoteService(db_session)
    a_id, b_id = a.entry_id, b.entry_id
    await service.submit_single_vote(VOTER, a_id, 12)

    result = await service.submit_single_vote(VOTER, b_id, 12)

    assert result.data["moved"] is True
    assert result.data["previous_entry_id"] == a_id
    assert await votes_by_entry(db_session) == {b_id: 12}
    assert await scores(db_session, [a, b]) == [0, 12]


@pytest.mark.asyncio
async def test_revoting_a_costume_replaces_its_points(db_session, gallery):
    a, _, _ = gallery
    service = VoteService(db_session)
    await service.submit_single_vote(VOTER, a.entry_id, 12)

    result = await service.submit_single_vote(VOTER, a.entry_id, 8)

    assert result.data["updated"] is True
    assert result.data["moved"] is False
    assert await votes_by_entry(db_session) == {a.entry_id: 8}
    assert await scores(db_session, [a]) == [8]


@pytest.mark.asyncio
async def test_switch_and_move_together_keep_scores_consistent(db_session, gallery):
    """Giving B the 12 that A held, when B already had 10, leaves B with 12 only."""
    a, b, c = gallery
    service = VoteService(db_session)
    await service.submit_single_vote(VOTER, a.entry_id, 12)
    await service.submit_single_vote(VOTER, b.entry_id, 10)
    await service.submit_single_vote(VOTER, c.entry_id, 8)

    result = await service.submit_single_vote(VOTER, b.entry_id, 12)

    assert result.data["updated"] is True
    assert result.data["moved"] is True
    assert await votes_by_entry(db_session) == {b.entry_id: 12, c.entry_id: 8}
    assert await scores(db_session, gallery) == [0, 12, 8]
    assert await ScoringService(db_session).find_score_drift() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("points", [1, 7, 11])
async def test_single_vote_points_must_be_first_round_values(db_session, gallery, points):
    result = await VoteService(db_session).submit_single_vote(VOTER, gallery[0].entry_id, points)

    assert result.code == "invalid_points"


@pytest.mark.asyncio
async def test_single_vote_for_missing_costume(db_session, gallery):
    result = await VoteService(db_session).submit_single_vote(VOTER, uuid.uuid4(), 12)

    assert result.kind == "not_found"
    assert result.code == "costume_not_found"


@pytest.mark.asyncio
async def test_single_vote_cannot_target_own_costume(db_session, entry_factory, set_contest_phase):
    own = await entry_factory(phone=VOTER)
    await set_contest_phase(ContestPhase.VOTING)

    result = await VoteService(db_session).submit_single_vote(VOTER, own.entry_id, 12)

    assert result.code == "self_vote"


@pytest.mark.asyncio
async def test_single_vote_is_closed_outside_first_round(db_session, gallery, set_contest_phase):
    entry_id = gallery[0].entry_id
    await set_contest_phase(ContestPhase.FINALS)

    result = await VoteService(db_session).submit_single_vote(VOTER, entry_id, 12)

    assert result.code == "voting_not_active"


@pytest.mark.asyncio
async def test_concurrent_first_single_votes_are_a_duplicate_not_an_outage(db_session, gallery, monkeypatch):
    """Two first single votes from one phone both try to open the round's ballot."""
    a, b, _ = gallery
    entry_a, entry_b = a.entry_id, b.entry_id
    service = VoteService(db_session)
    first = await service.submit_single_vote(VOTER, entry_a, 12)

    async def always_new_ballot(voter_phone, vote_phase):
        ballot = Ballot(ballot_id=uuid.uuid4(), voter_phone=voter_phone, phase=int(vote_phase))
        db_session.add(ballot)
        return ballot

    monkeypatch.setattr(service, "_get_or_add_ballot", always_new_ballot)
    second = await service.submit_single_vote(VOTER, entry_b, 10)

    assert first.ok
    assert second.code == "already_voted_with_points"
    assert second.kind == "validation"
    assert await votes_by_entry(db_session) == {entry_a: 12}
    assert await ScoringService(db_session).find_score_drift() == []
