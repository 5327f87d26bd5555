"""Phone number normalization for participant and voter identity."""
import re

from costume_contest.utils.exceptions import ValidationRejected

_NON_DIGITS = re.compile(r"\D")
_MOBILE_PATTERN = re.compile(r"^05\d{8}$")
_COUNTRY_PREFIX = "972"


def normalize_phone(raw: str | None) -> str:
    """Strip everything but digits, rewriting the +972 country prefix to a leading 0."""
    if not raw:
        return ""
    digits = _NON_DIGITS.sub("", raw)
    if digits.startswith(_COUNTRY_PREFIX) and len(digits) == 12:
        digits = "0" + digits[len(_COUNTRY_PREFIX):]
    return digits


def validate_phone(raw: str | None) -> bool:
    """Mobile numbers are exactly 10 digits starting with 05."""
    return bool(_MOBILE_PATTERN.match(normalize_phone(raw)))


def canonical_phone(raw: str | None) -> str:
    """Return the canonical identity key for a phone.

    Raises:
        ValidationRejected: If the number is not a valid mobile number
    """
    normalized = normalize_phone(raw)
    if not _MOBILE_PATTERN.match(normalized):
        raise ValidationRejected("invalid_phone", "invalid phone number")
    return normalized


def format_phone(raw: str | None) -> str:
    """Display form 05X-XXXXXXX; anything else is returned as bare digits."""
    digits = normalize_phone(raw)
    if _MOBILE_PATTERN.match(digits):
        return f"{digits[:3]}-{digits[3:]}"
    return digits


def mask_phone(phone: str | None) -> str:
    """Mask a phone number for logging."""
    if not phone:
        return "<missing>"
    if len(phone) <= 4:
        return "*" * len(phone)
    return f"{phone[:3]}****{phone[-3:]}"
