"""Base utilities and enumerations for SQLAlchemy models."""
from enum import Enum, IntEnum
import uuid
from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.sql import sqltypes


class ContestPhase(str, Enum):
    """Contest lifecycle phase.

    upload -> voting -> finals -> ended. Only an admin moves between phases and
    ``reset_all`` returns to ``upload`` from anywhere.
    """
    UPLOAD = "upload"
    VOTING = "voting"
    FINALS = "finals"
    ENDED = "ended"

    @classmethod
    def parse(cls, value: "str | ContestPhase") -> "ContestPhase":
        """Resolve canonical and legacy phase names.

        Older clients use ``registration``/``winners`` or the upper-case
        ``UPLOAD``/``VOTING``/``FINALS``/``ENDED`` spelling.

        Raises:
            ValueError: If the name is not a known phase
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        key = LEGACY_PHASE_NAMES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown contest phase: {value!r}") from None


LEGACY_PHASE_NAMES = {
    "registration": ContestPhase.UPLOAD.value,
    "winners": ContestPhase.ENDED.value,
}


class VotePhase(IntEnum):
    """Voting round a ballot belongs to."""
    FIRST_ROUND = 1
    FINAL_ROUND = 2


def get_uuid_column(*args, **kwargs):
    """Get UUID column type based on database dialect.

    Uses native UUID storage on PostgreSQL and a 32-character hex string
    everywhere else.

    Example:
        entry_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
        ballot_id = get_uuid_column(ForeignKey("ballots.ballot_id"), nullable=False)
    """
    class AdaptiveUUID(sqltypes.TypeDecorator):
        """UUID type that stores hex strings on databases without a UUID type."""

        impl = sqltypes.String
        cache_ok = True

        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self._uses_native_uuid = False

        def load_dialect_impl(self, dialect):
            self._uses_native_uuid = dialect.name == "postgresql"
            if self._uses_native_uuid:
                return dialect.type_descriptor(PGUUID(as_uuid=True))
            return dialect.type_descriptor(String(36))

        @staticmethod
        def _coerce_uuid(value):
            if value is None or isinstance(value, uuid.UUID):
                return value
            return uuid.UUID(str(value))

        def process_bind_param(self, value, dialect):
            value = self._coerce_uuid(value)
            if value is None:
                return None
            if self._uses_native_uuid:
                return value
            return value.hex

        def process_result_value(self, value, dialect):
            if value is None:
                return None
            if self._uses_native_uuid:
                return self._coerce_uuid(value)
            return uuid.UUID(str(value))

    return Column(
        AdaptiveUUID(),
        *args,
        **kwargs
    )
