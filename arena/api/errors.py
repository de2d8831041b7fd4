"""
Translate operation results into HTTP responses
"""
from fastapi import HTTPException, status

from arena.core.errors import ErrorKind
from arena.core.result import OperationResult

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.STATE: status.HTTP_409_CONFLICT,
    ErrorKind.TOO_EARLY: status.HTTP_409_CONFLICT,
    ErrorKind.CAPACITY: status.HTTP_409_CONFLICT,
    ErrorKind.DUPLICATE_PARTICIPANT: status.HTTP_409_CONFLICT,
    ErrorKind.CONCURRENCY: status.HTTP_409_CONFLICT,
    ErrorKind.DUPLICATE_WINNER: status.HTTP_409_CONFLICT,
    ErrorKind.STALE_CALCULATION: status.HTTP_409_CONFLICT,
    ErrorKind.INSUFFICIENT_FUNDS: status.HTTP_402_PAYMENT_REQUIRED,
}


def unwrap_or_raise(result: OperationResult):
    """Return the payload, or raise an HTTPException carrying the error kind"""
    if result.success:
        return result.data
    detail = {"error": result.error.value, "message": result.message}
    detail.update(result.details)
    raise HTTPException(status_code=STATUS_BY_KIND.get(result.error, status.HTTP_400_BAD_REQUEST), detail=detail)
