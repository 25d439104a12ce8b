"""Core module - configuration, logging, exceptions and service results."""

from akasia.core.config import Settings, get_settings
from akasia.core.exceptions import (
    AkasiaError,
    ResultError,
)
from akasia.core.results import (
    ErrorCode,
    ServiceError,
    ServiceResult,
    persistence_guard,
    validate_payload,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Exceptions
    "AkasiaError",
    "ResultError",
    # Results
    "ErrorCode",
    "ServiceError",
    "ServiceResult",
    "persistence_guard",
    "validate_payload",
]
