"""Translate service results into HTTP responses."""
import logging

from fastapi import HTTPException

from costume_contest.utils.exceptions import OperationResult

logger = logging.getLogger(__name__)

KIND_STATUS = {
    "validation": 400,
    "authorization": 401,
    "not_found": 404,
    "infrastructure": 503,
}

# Rejections that mean "this already exists"
CONFLICT_CODES = {
    "phone_already_registered",
    "already_voted",
    "already_voted_with_points",
    "mock_data_exists",
}


def raise_for_result(result: OperationResult) -> dict:
    """Return the result's data, or raise the matching HTTPException."""
    if result.ok:
        return result.data

    status_code = KIND_STATUS.get(result.kind, 500)
    if result.code in CONFLICT_CODES:
        status_code = 409
    elif result.code == "admin_not_configured":
        status_code = 503

    raise HTTPException(status_code=status_code, detail={"code": result.code, "message": result.message})
