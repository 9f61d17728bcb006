"""Ticker registry error types."""

from __future__ import annotations

from enum import Enum


class RegistryErrorCode(Enum):
    """Error classification codes."""

    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    SOURCE_ERROR = "source_error"
    STORAGE_ERROR = "storage_error"
    CONFIG_ERROR = "config_error"
    REMOVAL_LIMIT_EXCEEDED = "removal_limit_exceeded"


class RegistryError(Exception):
    """Registry exception with error code and retryable flag.

    Attributes:
        message: Human-readable error description.
        code: Structured error code for programmatic handling.
        retryable: Whether the run can continue without this source.
    """

    def __init__(
        self,
        message: str,
        code: RegistryErrorCode = RegistryErrorCode.SOURCE_ERROR,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable


class RemovalLimitExceeded(RegistryError):
    """Raised when a run would mark more assets delisted than allowed.

    Never retryable: the upstream data has to be investigated by an operator
    before the registry may be written again.
    """

    exit_code = 3

    def __init__(self, removed: int, limit: int) -> None:
        super().__init__(
            f"Refusing to persist: {removed} assets marked delisted "
            f"(maximum allowed is {limit})",
            code=RegistryErrorCode.REMOVAL_LIMIT_EXCEEDED,
            retryable=False,
        )
        self.removed = removed
        self.limit = limit
