"""Fake participants for demos and rehearsals."""
import logging
import random

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from costume_contest.config import get_settings
from costume_contest.models.entry import Entry
from costume_contest.models.vote import Ballot, Vote
from costume_contest.models.voter import Voter
from costume_contest.services.blob_storage import LocalBlobStorage, get_blob_storage
from costume_contest.services.helpers import guarded_operation
from costume_contest.services.scoring_service import ScoringService
from costume_contest.utils.exceptions import OperationResult, ValidationRejected

logger = logging.getLogger(__name__)

MAX_MOCK_ENTRIES = 100
BATCH_SIZE = 10

FIRST_NAMES = [
    "Noa", "Itai", "Maya", "Yossi", "Omer", "Daniel", "Roni", "Guy",
    "Michal", "David", "Gal", "Shir", "Tal", "Adi", "Lior", "Roi",
]
LAST_NAMES = [
    "Cohen", "Levi", "Mizrahi", "Peretz", "Biton", "Dahan", "Avraham", "Friedman",
    "Malka", "Azulai", "Shalom", "Baruch", "Katz", "Rosen",
]
COSTUMES = [
    "Wonder Woman", "Spider-Man", "Pirate", "Tired Startup Founder", "Unicorn", "Joker",
    "Witch", "Police Officer", "Doctor", "Banana", "Minion", "Avatar", "Barbie",
    "Oppenheimer", "Harry Potter", "Elsa", "Batman", "Dinosaur", "Robot", "Astronaut",
    "Chef", "Wizard",
]
DESCRIPTIONS = [
    "Went all in on this one!",
    "Last-minute costume",
    "Bet you can't recognize me",
    "Handmade!",
    None,
    None,
]


class MockDataService:
    """Generates and removes demo entries, identified by a reserved phone prefix."""

    def __init__(self, db: AsyncSession, blob_storage: LocalBlobStorage | None = None,
                 rng: random.Random | None = None):
        self.db = db
        self.settings = get_settings()
        self.blob_storage = blob_storage or get_blob_storage()
        self.rng = rng or random.Random()
        self.scoring_service = ScoringService(db)

    def mock_phone(self, index: int) -> str:
        prefix = self.settings.mock_phone_prefix
        width = 10 - len(prefix)
        return f"{prefix}{index:0{width}d}"

    def build_participant(self, index: int) -> dict:
        return {
            "phone": self.mock_phone(index),
            "name": f"{self.rng.choice(FIRST_NAMES)} {self.rng.choice(LAST_NAMES)}",
            "costume_title": self.rng.choice(COSTUMES),
            "description": self.rng.choice(DESCRIPTIONS),
            "image_url": f"https://picsum.photos/seed/costume{index}/600/800",
        }

    @guarded_operation("generate_mock_entries")
    async def generate_mock_entries(self, count: int = 40) -> OperationResult:
        """Insert ``count`` fake entries, skipping phones that already exist."""
        if count < 1 or count > MAX_MOCK_ENTRIES:
            raise ValidationRejected("invalid_count", f"count must be between 1 and {MAX_MOCK_ENTRIES}")

        participants = [self.build_participant(i) for i in range(1, count + 1)]
        result = await self.db.execute(
            select(Entry.phone).where(Entry.phone.in_([p["phone"] for p in participants]))
        )
        existing = set(result.scalars().all())
        new_participants = [p for p in participants if p["phone"] not in existing]

        if not new_participants:
            raise ValidationRejected("mock_data_exists", "all mock participants already exist")

        for start in range(0, len(new_participants), BATCH_SIZE):
            batch = new_participants[start:start + BATCH_SIZE]
            self.db.add_all([Entry(**p) for p in batch])
            await self.db.flush()
        await self.db.commit()

        logger.info(f"Generated {len(new_participants)} mock entries ({len(existing)} already present)")
        return OperationResult.success(created=len(new_participants))

    @guarded_operation("clear_mock_entries")
    async def clear_mock_entries(self) -> OperationResult:
        """Delete mock entries, the votes and ballots cast by mock phones, and their images."""
        pattern = f"{self.settings.mock_phone_prefix}%"
        result = await self.db.execute(
            select(Entry.image_path, Entry.image_url).where(Entry.phone.like(pattern))
        )
        images = result.all()

        # Take the mock voters' points back off the entries they voted for
        mock_votes = await self.db.execute(
            select(Vote.entry_id, Vote.points).where(Vote.voter_phone.like(pattern))
        )
        for entry_id, points in mock_votes.all():
            await self.scoring_service.apply_points(entry_id, -points)

        await self.db.execute(delete(Vote).where(Vote.voter_phone.like(pattern)))
        await self.db.execute(delete(Ballot).where(Ballot.voter_phone.like(pattern)))
        await self.db.execute(delete(Voter).where(Voter.phone.like(pattern)))
        deleted = (await self.db.execute(delete(Entry).where(Entry.phone.like(pattern)))).rowcount
        await self.db.commit()

        for image_path, image_url in images:
            path = image_path or self.blob_storage.path_from_url(image_url)
            if not path:
                continue
            try:
                await run_in_threadpool(self.blob_storage.delete, path)
            except Exception as e:
                logger.warning(f"Could not delete mock image {path}: {e}")

        logger.info(f"Cleared {deleted} mock entries")
        return OperationResult.success(deleted=deleted)
