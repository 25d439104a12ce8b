"""Akasia Operations Ledger - Custom exceptions.

Business outcomes are returned as ``ServiceResult`` values (see
``akasia.core.results``). These exceptions cover the paths where a caller
cannot continue, e.g. a script unwrapping a failed result.
"""

from typing import Any


class AkasiaError(Exception):
    """Base exception for all Akasia errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ResultError(AkasiaError):
    """A failed ``ServiceResult`` was unwrapped."""

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        details = {"code": code}
        if field is not None:
            details["field"] = field
        self.code = code
        super().__init__(message, details)
