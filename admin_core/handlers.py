"""
Error handlers that turn HTTP failures into SDK exceptions.

An ``ErrorHandlingHttpClient`` delegates to three kinds of handler:

- error response handlers, for non-2xx responses;
- request exception handlers, for low-level transport failures;
- deserialize exception handlers, for response bodies that cannot be parsed.
"""

import json
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Dict, Optional, Protocol

import httpx

from .errors import AdminSDKException, ErrorCode


HTTP_ERROR_CODES: Dict[int, ErrorCode] = {
    400: ErrorCode.INVALID_ARGUMENT,
    401: ErrorCode.UNAUTHENTICATED,
    403: ErrorCode.PERMISSION_DENIED,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    429: ErrorCode.RESOURCE_EXHAUSTED,
    500: ErrorCode.INTERNAL,
    503: ErrorCode.UNAVAILABLE,
}

PLATFORM_ERROR_CODES: Dict[str, ErrorCode] = {
    "INVALID_ARGUMENT": ErrorCode.INVALID_ARGUMENT,
    "INTERNAL": ErrorCode.INTERNAL,
    "PERMISSION_DENIED": ErrorCode.PERMISSION_DENIED,
    "UNAUTHENTICATED": ErrorCode.UNAUTHENTICATED,
    "UNAVAILABLE": ErrorCode.UNAVAILABLE,
}


@dataclass
class ResponseInfo:
    """A completed HTTP response together with its decoded body."""

    response: httpx.Response
    body: str

    @property
    def status_code(self) -> int:
        return self.response.status_code


@dataclass
class ErrorArgs:
    """Intermediate description of an error, before an exception is built."""

    code: ErrorCode
    message: str
    http_response: Optional[httpx.Response] = None
    body: Optional[str] = None


class ErrorResponseHandler(Protocol):
    def handle_http_error_response(
        self, response: httpx.Response, body: str
    ) -> AdminSDKException:  # pragma: no cover - protocol definition
        ...


class RequestExceptionHandler(Protocol):
    def handle_request_exception(
        self, exc: httpx.RequestError
    ) -> AdminSDKException:  # pragma: no cover - protocol definition
        ...


class DeserializeExceptionHandler(Protocol):
    def handle_deserialize_exception(
        self, exc: Exception, info: ResponseInfo
    ) -> AdminSDKException:  # pragma: no cover - protocol definition
        ...


def request_exception_to_error(exc: httpx.RequestError) -> AdminSDKException:
    """Map a low-level httpx failure onto the SDK error taxonomy."""
    if isinstance(exc, httpx.TimeoutException):
        code = ErrorCode.DEADLINE_EXCEEDED
        message = f"Timed out while making an API call: {exc}"
    elif isinstance(exc, httpx.ConnectError):
        code = ErrorCode.UNAVAILABLE
        message = f"Failed to establish a connection: {exc}"
    else:
        code = ErrorCode.UNKNOWN
        message = f"Network error: {exc}" if str(exc) else "Network error"
    return AdminSDKException(code, message, cause=exc)


def parse_json_body(body: str) -> Dict[str, Any]:
    """Best-effort JSON parse of an error body; non-JSON bodies yield {}."""
    try:
        parsed = json.loads(body)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


class HttpErrorHandler:
    """Maps error responses onto error codes using the HTTP status alone.

    Subclasses refine ``create_error_args`` to read structured error bodies,
    and override ``create_exception`` to raise their own exception types.
    """

    def handle_http_error_response(self, response: httpx.Response, body: str) -> AdminSDKException:
        args = self.create_error_args(response, body)
        return self.create_exception(args)

    def create_error_args(self, response: httpx.Response, body: str) -> ErrorArgs:
        code = HTTP_ERROR_CODES.get(response.status_code, ErrorCode.UNKNOWN)
        try:
            reason = HTTPStatus(response.status_code).phrase
        except ValueError:
            reason = response.reason_phrase or "Unknown"
        message = f"Unexpected HTTP response with status: {response.status_code} ({reason})\n{body}"
        return ErrorArgs(code=code, message=message, http_response=response, body=body)

    def create_exception(self, args: ErrorArgs) -> AdminSDKException:
        return AdminSDKException(
            args.code,
            args.message,
            details={"body": args.body},
            http_response=args.http_response,
        )


class PlatformErrorHandler(HttpErrorHandler):
    """Reads the ``{"error": {"status": ..., "message": ...}}`` body used by Google APIs."""

    def create_error_args(self, response: httpx.Response, body: str) -> ErrorArgs:
        defaults = super().create_error_args(response, body)
        error = parse_json_body(body).get("error")
        if not isinstance(error, dict):
            error = {}

        code = PLATFORM_ERROR_CODES.get(error.get("status") or "", defaults.code)
        message = error.get("message") or defaults.message
        return ErrorArgs(code=code, message=message, http_response=response, body=body)


class DefaultErrorHandler(PlatformErrorHandler):
    """Handles every failure kind with plain ``AdminSDKException`` instances."""

    def handle_request_exception(self, exc: httpx.RequestError) -> AdminSDKException:
        return request_exception_to_error(exc)

    def handle_deserialize_exception(self, exc: Exception, info: ResponseInfo) -> AdminSDKException:
        return AdminSDKException(
            ErrorCode.UNKNOWN,
            f"Response parse error: {exc}",
            details={"body": info.body},
            cause=exc,
            http_response=info.response,
        )
