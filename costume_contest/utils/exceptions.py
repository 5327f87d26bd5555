"""Domain exceptions and the result envelope returned by public service operations."""
from dataclasses import dataclass, field
from typing import Any


class ContestError(Exception):
    """Base class for contest failures. ``code`` is stable, ``message`` is for people."""

    kind = "validation"

    def __init__(self, code: str, message: str | None = None):
        self.code = code
        self.message = message or code.replace("_", " ")
        super().__init__(self.message)


class ValidationRejected(ContestError):
    """The request broke a contest rule. Expected and reported to the caller."""

    kind = "validation"


class AuthorizationRejected(ContestError):
    """Missing or wrong admin secret."""

    kind = "authorization"


class AdminNotConfiguredError(AuthorizationRejected):
    """No admin secret is configured on the server, so admin calls fail closed."""

    def __init__(self):
        super().__init__("admin_not_configured", "admin access is not configured on the server")


class NotFoundError(ContestError):
    """Referenced record does not exist."""

    kind = "not_found"


class StoreUnavailableError(ContestError):
    """Database or blob store failure. Safe to retry."""

    kind = "infrastructure"

    def __init__(self, code: str = "store_unavailable", message: str | None = None):
        super().__init__(code, message or "the service is temporarily unavailable, please try again")


class BlobStorageError(StoreUnavailableError):
    """Image storage failure.

    ``kind_detail`` is one of ``container_missing``, ``permission_denied`` or ``other``.
    """

    CONTAINER_MISSING = "container_missing"
    PERMISSION_DENIED = "permission_denied"
    OTHER = "other"

    MESSAGES = {
        CONTAINER_MISSING: "image storage location is missing",
        PERMISSION_DENIED: "no permission to store images",
        OTHER: "image upload failed",
    }

    def __init__(self, kind_detail: str, detail: str | None = None):
        self.kind_detail = kind_detail
        self.detail = detail
        super().__init__(f"blob_{kind_detail}", self.MESSAGES.get(kind_detail, self.MESSAGES[self.OTHER]))


@dataclass
class OperationResult:
    """Outcome of a public service operation.

    Failures carry a ``kind`` (validation, authorization, not_found,
    infrastructure) so callers can tell a rule rejection from a retryable
    outage.
    """
    ok: bool
    code: str = "ok"
    message: str = ""
    kind: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, **data) -> "OperationResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: ContestError) -> "OperationResult":
        return cls(ok=False, code=error.code, message=error.message, kind=error.kind)

    @classmethod
    def unexpected(cls) -> "OperationResult":
        return cls.failure(StoreUnavailableError())
