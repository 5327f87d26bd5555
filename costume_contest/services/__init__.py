"""Contest services."""
from costume_contest.services.admin_auth_service import AdminAuthService, AuthorizationOutcome
from costume_contest.services.blob_storage import LocalBlobStorage, get_blob_storage
from costume_contest.services.entry_service import EntryService
from costume_contest.services.mock_data_service import MockDataService
from costume_contest.services.phase_service import PhaseService, ensure_contest_state
from costume_contest.services.scoring_service import ScoringService
from costume_contest.services.vote_service import VoteService

__all__ = [
    "AdminAuthService",
    "AuthorizationOutcome",
    "LocalBlobStorage",
    "get_blob_storage",
    "EntryService",
    "MockDataService",
    "PhaseService",
    "ensure_contest_state",
    "ScoringService",
    "VoteService",
]
