"""Common FastAPI dependencies for API endpoints."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from pydantic import BaseModel

from akasia.core.results import ErrorCode, ServiceResult

ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.RECEIPT_TOTAL_MISMATCH: status.HTTP_400_BAD_REQUEST,
    ErrorCode.SETTLEMENT_NOT_REQUIRED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.FUNDING_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.TASK_LOCKED: status.HTTP_423_LOCKED,
    ErrorCode.PERSISTENCE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ErrorResponse(BaseModel):
    """Error body of a failed core operation (returned under ``detail``)."""

    success: bool = False
    error_code: str
    error_message: str
    field: str | None = None


ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in sorted(set(ERROR_STATUS.values()))}


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header(max_length=64)] = None,
) -> str:
    """Authenticated user id supplied by the upstream identity provider."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "success": False,
                "error_code": "UNAUTHORIZED",
                "error_message": "Missing X-User-Id header",
            },
        )
    return x_user_id


CurrentUserId = Annotated[str, Depends(get_current_user_id)]


def unwrap_or_raise[T](result: ServiceResult[T]) -> T:
    """Return the result value or raise the matching HTTPException."""
    if result.error is None:
        return result.value  # type: ignore[return-value]
    error = result.error
    raise HTTPException(
        status_code=ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=ErrorResponse(
            error_code=error.code.value,
            error_message=error.message,
            field=error.field,
        ).model_dump(),
    )
