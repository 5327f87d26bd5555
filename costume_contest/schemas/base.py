"""Base schemas with common configuration."""
from datetime import datetime, UTC
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer


def serialize_datetime_utc(dt: datetime) -> str:
    """
    Serialize datetime to ISO 8601 with an explicit UTC ``Z`` suffix.

    SQLite hands back naive datetimes; they are stored in UTC, so they are
    treated as UTC here.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat().replace('+00:00', 'Z')


# Timestamp field that always serializes as UTC with a ``Z`` suffix, in python and JSON mode alike
UTCDateTime = Annotated[datetime, PlainSerializer(serialize_datetime_utc, return_type=str)]


class BaseSchema(BaseModel):
    """Base schema for API responses. Reads ORM objects; timestamps use ``UTCDateTime``."""

    model_config = ConfigDict(
        from_attributes=True,
    )


class ErrorDetail(BaseModel):
    """Body of a rejected request: stable ``code`` plus a readable ``message``."""
    code: str
    message: str
