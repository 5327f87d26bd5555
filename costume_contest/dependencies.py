"""FastAPI dependencies."""
import logging

from fastapi import Header, HTTPException

from costume_contest.services.admin_auth_service import AdminAuthService
from costume_contest.utils.exceptions import AdminNotConfiguredError, AuthorizationRejected

logger = logging.getLogger(__name__)

ADMIN_SECRET_HEADER = "X-Admin-Password"


async def require_admin(
        admin_password: str | None = Header(default=None, alias=ADMIN_SECRET_HEADER),
) -> None:
    """Reject the request unless it carries the configured admin secret.

    Unconfigured servers answer 503 so an operator can tell a deployment
    mistake from a wrong password.
    """
    outcome = AdminAuthService().authorize(admin_password)
    try:
        outcome.raise_for_failure()
    except AdminNotConfiguredError as e:
        raise HTTPException(status_code=503, detail={"code": e.code, "message": e.message}) from e
    except AuthorizationRejected as e:
        raise HTTPException(
            status_code=401,
            detail={"code": e.code, "message": e.message},
            headers={"WWW-Authenticate": ADMIN_SECRET_HEADER},
        ) from e
