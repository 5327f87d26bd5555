"""Tests for demo data generation and cleanup."""
import random

import pytest
from sqlalchemy import func, select

from costume_contest.models.base import ContestPhase
from costume_contest.models.entry import Entry
from costume_contest.models.vote import Vote
from costume_contest.models.voter import Voter
from costume_contest.services.mock_data_service import MockDataService
from costume_contest.services.scoring_service import ScoringService
from costume_contest.services.vote_service import VoteService


def mock_service(db_session, blob_storage):
    return MockDataService(db_session, blob_storage, rng=random.Random(7))


@pytest.mark.asyncio
async def test_mock_phones_are_valid_and_share_the_prefix(db_session, blob_storage):
    service = mock_service(db_session, blob_storage)

    assert service.mock_phone(1) == "0550000001"
    assert service.mock_phone(42) == "0550000042"


@pytest.mark.asyncio
async def test_generate_skips_existing_participants(db_session, blob_storage):
    service = mock_service(db_session, blob_storage)

    first = await service.generate_mock_entries(5)
    second = await service.generate_mock_entries(8)
    again = await service.generate_mock_entries(8)

    assert first.data["created"] == 5
    assert second.data["created"] == 3
    assert again.code == "mock_data_exists"
    assert await db_session.scalar(select(func.count()).select_from(Entry)) == 8


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [0, 101])
async def test_generate_rejects_out_of_range_counts(db_session, blob_storage, count):
    result = await mock_service(db_session, blob_storage).generate_mock_entries(count)

    assert result.code == "invalid_count"


@pytest.mark.asyncio
async def test_clear_removes_mock_entries_and_their_votes(db_session, blob_storage, entry_factory, set_contest_phase):
    real = await entry_factory()
    service = mock_service(db_session, blob_storage)
    await service.generate_mock_entries(3)
    mock_entries = (await db_session.execute(
        select(Entry).where(Entry.phone.like("0550000%")).order_by(Entry.phone)
    )).scalars().all()
    await set_contest_phase(ContestPhase.VOTING)

    voting = VoteService(db_session)
    real_voter_ballot = [{"entry_id": e.entry_id, "points": p} for e, p in zip(mock_entries, (12, 10, 8))]
    mock_voter_ballot = [
        {"entry_id": real.entry_id, "points": 12},
        {"entry_id": mock_entries[1].entry_id, "points": 10},
        {"entry_id": mock_entries[2].entry_id, "points": 8},
    ]
    real_id = real.entry_id
    mock_voter = mock_entries[0].phone
    assert (await voting.submit_ballot("0501234567", real_voter_ballot, 1)).ok
    assert (await voting.submit_ballot(mock_voter, mock_voter_ballot, 1)).ok

    result = await service.clear_mock_entries()

    assert result.ok
    assert result.data["deleted"] == 3
    assert await db_session.scalar(select(func.count()).select_from(Vote)) == 0
    assert await db_session.get(Voter, "0501234567") is not None
    assert await db_session.get(Voter, mock_voter) is None
    refreshed = await db_session.get(Entry, real_id, populate_existing=True)
    assert refreshed.total_score == 0
    assert await ScoringService(db_session).find_score_drift() == []
