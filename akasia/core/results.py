"""Typed service results.

Every public service operation returns a ``ServiceResult``: either a value or
a ``ServiceError`` carrying an ``ErrorCode`` and a message that is safe to
show to end users. Business rule violations never raise.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from akasia.core.exceptions import ResultError

logger = logging.getLogger(__name__)

PERSISTENCE_FAILURE_MESSAGE = "Data could not be saved or loaded, please try again"


class ErrorCode(str, Enum):
    """Expected business outcomes of core operations."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    TASK_LOCKED = "TASK_LOCKED"
    FUNDING_ALREADY_EXISTS = "FUNDING_ALREADY_EXISTS"
    SETTLEMENT_NOT_REQUIRED = "SETTLEMENT_NOT_REQUIRED"
    RECEIPT_TOTAL_MISMATCH = "RECEIPT_TOTAL_MISMATCH"
    NOT_FOUND = "NOT_FOUND"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"


@dataclass(frozen=True)
class ServiceError:
    """Error half of a ``ServiceResult``."""

    code: ErrorCode
    message: str
    field: str | None = None


@dataclass(frozen=True)
class ServiceResult[T]:
    """Discriminated success/error result."""

    value: T | None = None
    error: ServiceError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: T) -> "ServiceResult[T]":
        return cls(value=value)

    @classmethod
    def fail(
        cls, code: ErrorCode, message: str, field: str | None = None
    ) -> "ServiceResult[T]":
        return cls(error=ServiceError(code=code, message=message, field=field))

    @classmethod
    def from_error(cls, error: ServiceError | None) -> "ServiceResult[T]":
        """Re-wrap the error of another result."""
        if error is None:
            raise ValueError("from_error() needs an error")
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise ``ResultError``."""
        if self.error is not None:
            raise ResultError(self.error.code.value, self.error.message, self.error.field)
        return self.value  # type: ignore[return-value]


def validate_payload[M: BaseModel](
    model: type[M], data: M | Mapping[str, Any]
) -> ServiceResult[M]:
    """Validate raw input against a pydantic model.

    Only the first failing field is reported, which is what forms display.
    """
    if isinstance(data, model):
        return ServiceResult.ok(data)
    try:
        return ServiceResult.ok(model.model_validate(data))
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        return ServiceResult.fail(ErrorCode.VALIDATION_FAILED, first["msg"], field=field)


def persistence_guard(
    func: Callable[..., Awaitable[ServiceResult[Any]]],
) -> Callable[..., Awaitable[ServiceResult[Any]]]:
    """Turn storage errors of a service method into ``PERSISTENCE_FAILURE``.

    The decorated method must belong to an object exposing the session as
    ``self.db``. The session is rolled back so the whole operation is undone.
    No retry is attempted.
    """

    @wraps(func)
    async def wrapper(self: Any, *args: Any, **kwargs: Any) -> ServiceResult[Any]:
        try:
            return await func(self, *args, **kwargs)
        except SQLAlchemyError:
            logger.exception("Persistence failure in %s", func.__qualname__)
            try:
                await self.db.rollback()
            except SQLAlchemyError:
                logger.exception("Rollback failed in %s", func.__qualname__)
            return ServiceResult.fail(ErrorCode.PERSISTENCE_FAILURE, PERSISTENCE_FAILURE_MESSAGE)

    return wrapper
