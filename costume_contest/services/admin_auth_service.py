"""Shared-secret gate in front of every administrative mutation."""
import hmac
import logging
from dataclasses import dataclass

from costume_contest.config import get_settings
from costume_contest.utils.exceptions import AdminNotConfiguredError, AuthorizationRejected

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationOutcome:
    """Result of an admin secret check.

    ``reason`` is ``ok``, ``missing_secret``, ``wrong_secret`` or ``not_configured``.
    """
    authorized: bool
    reason: str

    def raise_for_failure(self) -> None:
        """Raise the matching exception when not authorized."""
        if self.authorized:
            return
        if self.reason == AdminAuthService.NOT_CONFIGURED:
            raise AdminNotConfiguredError()
        if self.reason == AdminAuthService.MISSING_SECRET:
            raise AuthorizationRejected("missing_secret", "admin password required")
        raise AuthorizationRejected("unauthorized", "unauthorized")


class AdminAuthService:
    """Compares a caller-supplied secret with the one configured at deployment."""

    OK = "ok"
    MISSING_SECRET = "missing_secret"
    WRONG_SECRET = "wrong_secret"
    NOT_CONFIGURED = "not_configured"

    def __init__(self, server_secret: str | None = None):
        if server_secret is None:
            server_secret = get_settings().admin_password
        self._server_secret = server_secret or ""

    @property
    def configured(self) -> bool:
        return bool(self._server_secret)

    def authorize(self, supplied_secret: str | None) -> AuthorizationOutcome:
        """Check a supplied admin secret. Fails closed when no secret is configured."""
        if not self.configured:
            logger.error("Admin access attempted but ADMIN_PASSWORD is not configured")
            return AuthorizationOutcome(False, self.NOT_CONFIGURED)

        if not supplied_secret:
            return AuthorizationOutcome(False, self.MISSING_SECRET)

        if hmac.compare_digest(supplied_secret.encode("utf-8"), self._server_secret.encode("utf-8")):
            return AuthorizationOutcome(True, self.OK)

        logger.warning("Admin access denied: wrong secret")
        return AuthorizationOutcome(False, self.WRONG_SECRET)
