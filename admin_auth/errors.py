"""
Auth error types and the HTTP error handlers used by auth components.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from admin_core.errors import AdminSDKException, ErrorCode
from admin_core.handlers import (
    ErrorArgs,
    HttpErrorHandler,
    PlatformErrorHandler,
    ResponseInfo,
    parse_json_body,
    request_exception_to_error,
)


class AuthErrorCode(str, Enum):
    """Auth-specific error codes, refining ``ErrorCode``."""

    CERTIFICATE_FETCH_FAILED = "CERTIFICATE_FETCH_FAILED"
    CONFIGURATION_NOT_FOUND = "CONFIGURATION_NOT_FOUND"
    EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"
    EXPIRED_ID_TOKEN = "EXPIRED_ID_TOKEN"
    EXPIRED_SESSION_COOKIE = "EXPIRED_SESSION_COOKIE"
    INVALID_DYNAMIC_LINK_DOMAIN = "INVALID_DYNAMIC_LINK_DOMAIN"
    INVALID_ID_TOKEN = "INVALID_ID_TOKEN"
    INVALID_SESSION_COOKIE = "INVALID_SESSION_COOKIE"
    PHONE_NUMBER_ALREADY_EXISTS = "PHONE_NUMBER_ALREADY_EXISTS"
    REVOKED_ID_TOKEN = "REVOKED_ID_TOKEN"
    REVOKED_SESSION_COOKIE = "REVOKED_SESSION_COOKIE"
    TENANT_ID_MISMATCH = "TENANT_ID_MISMATCH"
    TENANT_NOT_FOUND = "TENANT_NOT_FOUND"
    TOKEN_SIGN_FAILED = "TOKEN_SIGN_FAILED"
    UID_ALREADY_EXISTS = "UID_ALREADY_EXISTS"
    UNEXPECTED_RESPONSE = "UNEXPECTED_RESPONSE"
    USER_NOT_FOUND = "USER_NOT_FOUND"


class TokenFailure(str, Enum):
    """The specific check a token failed during verification."""

    MALFORMED = "malformed"
    MISSING_KID = "missing_kid"
    INVALID_ALGORITHM = "invalid_algorithm"
    KEY_NOT_FOUND = "key_not_found"
    INVALID_SIGNATURE = "invalid_signature"
    AUDIENCE_MISMATCH = "audience_mismatch"
    ISSUER_MISMATCH = "issuer_mismatch"
    ISSUED_IN_FUTURE = "issued_in_future"
    EXPIRED = "expired"
    INVALID_SUBJECT = "invalid_subject"
    REVOKED = "revoked"
    TENANT_MISMATCH = "tenant_mismatch"


class AuthError(AdminSDKException):
    """Base class for auth errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        auth_error_code: Optional[AuthErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        http_response: Optional[httpx.Response] = None,
    ):
        super().__init__(code, message, details, cause=cause, http_response=http_response)
        self.auth_error_code = auth_error_code


class InvalidTokenError(AuthError):
    """A token or session cookie failed verification."""

    def __init__(
        self,
        message: str,
        reason: TokenFailure,
        auth_error_code: AuthErrorCode = AuthErrorCode.INVALID_ID_TOKEN,
        code: ErrorCode = ErrorCode.INVALID_ARGUMENT,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(code, message, auth_error_code, details={"reason": reason.value}, cause=cause)
        self.reason = reason


class ExpiredTokenError(InvalidTokenError):
    """The token's ``exp`` claim is in the past."""

    def __init__(self, message: str, auth_error_code: AuthErrorCode = AuthErrorCode.EXPIRED_ID_TOKEN):
        super().__init__(message, TokenFailure.EXPIRED, auth_error_code)


class RevokedTokenError(InvalidTokenError):
    """The token was issued before the user's tokens were revoked."""

    def __init__(self, message: str, auth_error_code: AuthErrorCode = AuthErrorCode.REVOKED_ID_TOKEN):
        super().__init__(message, TokenFailure.REVOKED, auth_error_code)


class TenantIdMismatchError(InvalidTokenError):
    """The token belongs to a different tenant than the verifier."""

    def __init__(self, message: str):
        super().__init__(message, TokenFailure.TENANT_MISMATCH, AuthErrorCode.TENANT_ID_MISMATCH)


class CertificateFetchError(AuthError):
    """Public keys could not be retrieved or parsed."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        http_response: Optional[httpx.Response] = None,
    ):
        super().__init__(
            code,
            message,
            AuthErrorCode.CERTIFICATE_FETCH_FAILED,
            details=details,
            cause=cause,
            http_response=http_response,
        )


class TokenSignError(AuthError):
    """A custom token could not be signed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None, code: ErrorCode = ErrorCode.UNKNOWN):
        super().__init__(code, message, AuthErrorCode.TOKEN_SIGN_FAILED, cause=cause)


@dataclass(frozen=True)
class _ErrorInfo:
    code: ErrorCode
    auth_error_code: AuthErrorCode
    message: str

    def format(self, server_code: str, detail: Optional[str]) -> str:
        message = f"{self.message} ({server_code})"
        if detail:
            return f"{message}: {detail}"
        return f"{message}."


_CODE_TO_ERROR_INFO: Dict[str, _ErrorInfo] = {
    "CONFIGURATION_NOT_FOUND": _ErrorInfo(
        ErrorCode.NOT_FOUND,
        AuthErrorCode.CONFIGURATION_NOT_FOUND,
        "No identity provider configuration found for the given identifier",
    ),
    "DUPLICATE_EMAIL": _ErrorInfo(
        ErrorCode.ALREADY_EXISTS,
        AuthErrorCode.EMAIL_ALREADY_EXISTS,
        "The user with the provided email already exists",
    ),
    "DUPLICATE_LOCAL_ID": _ErrorInfo(
        ErrorCode.ALREADY_EXISTS,
        AuthErrorCode.UID_ALREADY_EXISTS,
        "The user with the provided uid already exists",
    ),
    "EMAIL_EXISTS": _ErrorInfo(
        ErrorCode.ALREADY_EXISTS,
        AuthErrorCode.EMAIL_ALREADY_EXISTS,
        "The user with the provided email already exists",
    ),
    "INVALID_DYNAMIC_LINK_DOMAIN": _ErrorInfo(
        ErrorCode.INVALID_ARGUMENT,
        AuthErrorCode.INVALID_DYNAMIC_LINK_DOMAIN,
        "Dynamic link domain specified in ActionCodeSettings is not authorized",
    ),
    "PHONE_NUMBER_EXISTS": _ErrorInfo(
        ErrorCode.ALREADY_EXISTS,
        AuthErrorCode.PHONE_NUMBER_ALREADY_EXISTS,
        "The user with the provided phone number already exists",
    ),
    "TENANT_NOT_FOUND": _ErrorInfo(
        ErrorCode.NOT_FOUND,
        AuthErrorCode.TENANT_NOT_FOUND,
        "No tenant found for the given identifier",
    ),
    "USER_NOT_FOUND": _ErrorInfo(
        ErrorCode.NOT_FOUND,
        AuthErrorCode.USER_NOT_FOUND,
        "No user record found for the given identifier",
    ),
}


def _split_server_message(message: Optional[str]):
    """Split "CODE : detail" into ("CODE", "detail")."""
    if not message:
        return "", None
    code, separator, detail = message.partition(":")
    if not separator:
        return message.strip(), None
    return code.strip(), detail.strip() or None


class AuthErrorHandler(HttpErrorHandler):
    """Handles Identity Toolkit failures.

    The service reports errors as ``{"error": {"message": "CODE : detail"}}``.
    Known codes map to a specific ``ErrorCode``/``AuthErrorCode`` pair; any
    other response falls back to the generic status-code message, which
    includes the raw response body.
    """

    def create_error_args(self, response: httpx.Response, body: str) -> ErrorArgs:
        defaults = super().create_error_args(response, body)
        error = parse_json_body(body).get("error")
        server_message = error.get("message") if isinstance(error, dict) else None
        server_code, detail = _split_server_message(server_message)

        info = _CODE_TO_ERROR_INFO.get(server_code)
        if info is None:
            return _AuthErrorArgs(
                code=defaults.code, message=defaults.message, http_response=response, body=body
            )
        return _AuthErrorArgs(
            code=info.code,
            message=info.format(server_code, detail),
            http_response=response,
            body=body,
            auth_error_code=info.auth_error_code,
        )

    def create_exception(self, args: ErrorArgs) -> AuthError:
        return AuthError(
            args.code,
            args.message,
            getattr(args, "auth_error_code", None),
            details={"body": args.body},
            http_response=args.http_response,
        )

    def handle_request_exception(self, exc: httpx.RequestError) -> AuthError:
        temp = request_exception_to_error(exc)
        return AuthError(temp.code, temp.message, cause=exc)

    def handle_deserialize_exception(self, exc: Exception, info: ResponseInfo) -> AuthError:
        return AuthError(
            ErrorCode.UNKNOWN,
            f"Error while parsing Auth service response. {exc}: {info.body}",
            AuthErrorCode.UNEXPECTED_RESPONSE,
            details={"body": info.body},
            cause=exc,
            http_response=info.response,
        )


@dataclass
class _AuthErrorArgs(ErrorArgs):
    auth_error_code: Optional[AuthErrorCode] = None


class IAMSignerErrorHandler(PlatformErrorHandler):
    """Error responses from the IAM credentials service."""

    def create_exception(self, args: ErrorArgs) -> AuthError:
        return AuthError(
            args.code,
            args.message,
            details={"body": args.body},
            http_response=args.http_response,
        )


class PublicKeySourceErrorHandler(HttpErrorHandler):
    """Every failure while fetching public keys becomes a ``CertificateFetchError``."""

    def create_exception(self, args: ErrorArgs) -> CertificateFetchError:
        return CertificateFetchError(
            args.code,
            f"Failed to retrieve latest public keys. {args.message}",
            details={"body": args.body},
            http_response=args.http_response,
        )

    def handle_request_exception(self, exc: httpx.RequestError) -> CertificateFetchError:
        temp = request_exception_to_error(exc)
        return CertificateFetchError(
            temp.code,
            f"Failed to retrieve latest public keys. {temp.message}",
            cause=exc,
        )

    def handle_deserialize_exception(self, exc: Exception, info: ResponseInfo) -> CertificateFetchError:
        return CertificateFetchError(
            ErrorCode.UNKNOWN,
            f"Failed to parse certificate response: {info.body}.",
            details={"body": info.body},
            cause=exc,
            http_response=info.response,
        )
