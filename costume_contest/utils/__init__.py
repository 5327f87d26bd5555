"""Utilities module."""
from costume_contest.utils.datetime_helpers import ensure_utc, parse_iso_datetime
from costume_contest.utils.phone import canonical_phone, normalize_phone, validate_phone, mask_phone

__all__ = ["ensure_utc", "parse_iso_datetime", "canonical_phone", "normalize_phone", "validate_phone", "mask_phone"]
