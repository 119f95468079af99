"""
Canonical error types for the identity admin SDK.

Every failure surfaced to callers is an ``AdminSDKException`` carrying a
platform-wide ``ErrorCode``. Transport and server failures keep the underlying
exception as ``cause`` (and as ``__cause__`` when raised) and, where one was
received, the raw HTTP response for diagnostics.
"""

from enum import Enum
from typing import Dict, Any, Optional

import httpx


class ErrorCode(str, Enum):
    """Platform-wide error codes."""

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    FAILED_PRECONDITION = "FAILED_PRECONDITION"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    ABORTED = "ABORTED"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    CANCELLED = "CANCELLED"
    DATA_LOSS = "DATA_LOSS"
    UNKNOWN = "UNKNOWN"
    INTERNAL = "INTERNAL"
    UNAVAILABLE = "UNAVAILABLE"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"


class AdminSDKException(Exception):
    """Base exception for the SDK."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        http_response: Optional[httpx.Response] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.cause = cause
        self.http_response = http_response
        super().__init__(message)

    @property
    def status_code(self) -> Optional[int]:
        if self.http_response is None:
            return None
        return self.http_response.status_code


class InvalidArgumentError(AdminSDKException, ValueError):
    """Local validation failure, raised before any I/O."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.INVALID_ARGUMENT, message, details)


class ConfigurationError(AdminSDKException):
    """The SDK or one of its components was configured incorrectly."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(ErrorCode.FAILED_PRECONDITION, message, details, cause=cause)


class IllegalStateError(AdminSDKException):
    """An operation was attempted on a component that is no longer usable."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.FAILED_PRECONDITION, message)
