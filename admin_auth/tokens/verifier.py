"""
Verification of ID tokens and session cookies.

A token is accepted only when its structure, header, signature and claims
all check out. Each failure raises an ``InvalidTokenError`` (or a subclass)
whose ``reason`` names the failed check and whose message tells the caller
how to fix the problem.
"""

import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from admin_core.clock import Clock, SYSTEM_CLOCK, unix_timestamp
from admin_core.errors import InvalidArgumentError
from admin_core.logging import get_logger
from admin_core.metrics import get_metrics
from admin_core.retry import RetryPolicy, Waiter

from ..errors import (
    AuthErrorCode,
    ExpiredTokenError,
    InvalidTokenError,
    RevokedTokenError,
    TenantIdMismatchError,
    TokenFailure,
)
from ..jwks import HttpPublicKeySource, PublicKeySource
from ..jwt_utils import RS256, decode_segment, decode_signature
from .claims import TokenClaims
from .factory import FIREBASE_AUDIENCE, MAX_UID_LENGTH


ID_TOKEN_CERT_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)
SESSION_COOKIE_CERT_URL = "https://www.googleapis.com/identitytoolkit/v3/relyingparty/publicKeys"

ID_TOKEN_ISSUER_PREFIX = "https://securetoken.google.com/"
SESSION_COOKIE_ISSUER_PREFIX = "https://session.firebase.google.com/"

CLOCK_SKEW_SECONDS = 5 * 60

# uid -> "tokens valid since" in seconds, or None when nothing was revoked
RevocationSource = Callable[[str], Awaitable[Optional[int]]]


@dataclass(frozen=True)
class TokenVerifierArgs:
    """Everything that differs between ID token and session cookie verification."""

    project_id: str
    short_name: str
    operation: str
    url: str
    issuer: str
    key_source: PublicKeySource
    invalid_token_code: AuthErrorCode
    expired_token_code: AuthErrorCode
    revoked_token_code: AuthErrorCode
    clock: Optional[Clock] = None
    tenant_id: Optional[str] = None

    @classmethod
    def for_id_tokens(
        cls,
        project_id: str,
        key_source: PublicKeySource,
        clock: Optional[Clock] = None,
        tenant_id: Optional[str] = None,
    ) -> "TokenVerifierArgs":
        return cls(
            project_id=project_id,
            short_name="ID token",
            operation="verify_id_token()",
            url="https://firebase.google.com/docs/auth/admin/verify-id-tokens",
            issuer=ID_TOKEN_ISSUER_PREFIX,
            key_source=key_source,
            invalid_token_code=AuthErrorCode.INVALID_ID_TOKEN,
            expired_token_code=AuthErrorCode.EXPIRED_ID_TOKEN,
            revoked_token_code=AuthErrorCode.REVOKED_ID_TOKEN,
            clock=clock,
            tenant_id=tenant_id,
        )

    @classmethod
    def for_session_cookies(
        cls,
        project_id: str,
        key_source: PublicKeySource,
        clock: Optional[Clock] = None,
        tenant_id: Optional[str] = None,
    ) -> "TokenVerifierArgs":
        return cls(
            project_id=project_id,
            short_name="session cookie",
            operation="verify_session_cookie()",
            url="https://firebase.google.com/docs/auth/admin/manage-cookies",
            issuer=SESSION_COOKIE_ISSUER_PREFIX,
            key_source=key_source,
            invalid_token_code=AuthErrorCode.INVALID_SESSION_COOKIE,
            expired_token_code=AuthErrorCode.EXPIRED_SESSION_COOKIE,
            revoked_token_code=AuthErrorCode.REVOKED_SESSION_COOKIE,
            clock=clock,
            tenant_id=tenant_id,
        )


class TokenVerifier:
    """Verifies RS256 tokens issued for one project (and optionally one tenant)."""

    def __init__(self, args: TokenVerifierArgs, revocation_source: Optional[RevocationSource] = None):
        if not args.project_id:
            raise InvalidArgumentError("project_id must not be empty.")
        if args.tenant_id is not None and not args.tenant_id:
            raise InvalidArgumentError("Tenant ID must not be empty.")

        self.project_id = args.project_id
        self.tenant_id = args.tenant_id
        self.short_name = args.short_name
        self.operation = args.operation
        self.url = args.url
        self.issuer = args.issuer + args.project_id
        self.key_source = args.key_source
        self._invalid_code = args.invalid_token_code
        self._expired_code = args.expired_token_code
        self._revoked_code = args.revoked_token_code
        self._clock = args.clock or SYSTEM_CLOCK
        self._revocation_source = revocation_source
        self._metrics = get_metrics()
        self.logger = get_logger("admin_auth.tokens.verifier")

        article = "an" if self.short_name[0].lower() in "aeiou" else "a"
        self._articled_short_name = f"{article} {self.short_name}"
        self._project_id_message = (
            f"Make sure the {self.short_name} comes from the same Firebase project as the "
            "credential used to initialize this SDK."
        )
        self._verify_token_message = (
            f"See {self.url} for details on how to retrieve {self._articled_short_name}."
        )

    async def verify(self, token: str, check_revoked: bool = False) -> TokenClaims:
        """Verify ``token`` and return its claims.

        With ``check_revoked`` the revocation source is consulted as a last
        step, after every local check has passed.
        """
        try:
            claims = await self._verify(token, check_revoked)
        except InvalidTokenError as exc:
            self._metrics.record_token_operation("verify", "failure")
            self.logger.warning(
                "Token verification failed",
                token_type=self.short_name,
                reason=exc.reason.value,
            )
            raise

        self._metrics.record_token_operation("verify", "success")
        return claims

    async def _verify(self, token: str, check_revoked: bool) -> TokenClaims:
        if not token or not isinstance(token, str):
            raise InvalidArgumentError(f"{self.short_name} must not be null or empty.")

        segments = token.split(".")
        if len(segments) != 3:
            raise self._invalid(
                f"Incorrect number of segments in {self.short_name}.", TokenFailure.MALFORMED
            )

        try:
            header = decode_segment(segments[0])
            payload = decode_segment(segments[1])
            signature = decode_signature(segments[2])
        except ValueError as exc:
            raise self._invalid(
                f"Firebase {self.short_name} could not be decoded: {exc}. {self._verify_token_message}",
                TokenFailure.MALFORMED,
                cause=exc,
            ) from exc

        self._check_header(header, payload)

        key_id = header["kid"]
        keys = await self.key_source.get_public_keys()
        key = next((candidate for candidate in keys if candidate.key_id == key_id), None)
        if key is None:
            raise self._invalid(
                f"Firebase {self.short_name} has 'kid' claim which does not correspond to a known "
                f"public key. Most likely the {self.short_name} is expired, so get a fresh token "
                "from your client app and try again.",
                TokenFailure.KEY_NOT_FOUND,
            )

        signed = f"{segments[0]}.{segments[1]}".encode("ascii")
        if not RS256.verify(signed, key.public_key, signature):
            raise self._invalid(
                f"Failed to verify {self.short_name} signature.", TokenFailure.INVALID_SIGNATURE
            )

        self._check_claims(payload)
        claims = TokenClaims.from_payload(payload)
        self._check_tenant(claims)

        if check_revoked:
            await self._check_revoked(claims)
        return claims

    def _check_header(self, header: Dict[str, Any], payload: Dict[str, Any]) -> None:
        if not header.get("kid"):
            if payload.get("aud") == FIREBASE_AUDIENCE:
                message = (
                    f"{self.operation} expects {self._articled_short_name}, but was given a custom token."
                )
            elif header.get("alg") == "HS256":
                message = (
                    f"{self.operation} expects {self._articled_short_name}, but was given a legacy "
                    "custom token."
                )
            else:
                message = f"Firebase {self.short_name} has no 'kid' claim."
            raise self._invalid(message, TokenFailure.MISSING_KID)

        if header.get("alg") != "RS256":
            raise self._invalid(
                f"Firebase {self.short_name} has incorrect algorithm. Expected RS256 but got "
                f"{header.get('alg')}. {self._verify_token_message}",
                TokenFailure.INVALID_ALGORITHM,
            )

    def _check_claims(self, payload: Dict[str, Any]) -> None:
        now = unix_timestamp(self._clock)
        audience = payload.get("aud")
        issuer = payload.get("iss")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        subject = payload.get("sub")

        if audience != self.project_id:
            raise self._invalid(
                f"Firebase {self.short_name} has incorrect audience (aud) claim. Expected "
                f"{self.project_id} but got {audience}. {self._project_id_message} "
                f"{self._verify_token_message}",
                TokenFailure.AUDIENCE_MISMATCH,
            )
        if issuer != self.issuer:
            raise self._invalid(
                f"Firebase {self.short_name} has incorrect issuer (iss) claim. Expected "
                f"{self.issuer} but got {issuer}. {self._project_id_message} "
                f"{self._verify_token_message}",
                TokenFailure.ISSUER_MISMATCH,
            )
        if not _is_timestamp(issued_at) or not _is_timestamp(expires_at):
            raise self._invalid(
                f"Firebase {self.short_name} has missing or malformed iat/exp claims. "
                f"{self._verify_token_message}",
                TokenFailure.MALFORMED,
            )
        if issued_at - CLOCK_SKEW_SECONDS > now:
            raise self._invalid(
                f"Firebase {self.short_name} issued at future timestamp {issued_at}. Expected to "
                f"be less than {now}.",
                TokenFailure.ISSUED_IN_FUTURE,
            )
        if expires_at + CLOCK_SKEW_SECONDS <= now:
            raise ExpiredTokenError(
                f"Firebase {self.short_name} expired at {expires_at}. Expected to be greater "
                f"than {now}.",
                self._expired_code,
            )
        if not subject or not isinstance(subject, str):
            raise self._invalid(
                f"Firebase {self.short_name} has no or empty subject (sub) claim.",
                TokenFailure.INVALID_SUBJECT,
            )
        if len(subject) > MAX_UID_LENGTH:
            raise self._invalid(
                f"Firebase {self.short_name} has a subject claim longer than {MAX_UID_LENGTH} "
                "characters.",
                TokenFailure.INVALID_SUBJECT,
            )

    def _check_tenant(self, claims: TokenClaims) -> None:
        if self.tenant_id is None or claims.tenant_id == self.tenant_id:
            return
        raise TenantIdMismatchError(
            f"The {self.short_name} belongs to tenant {claims.tenant_id}, but this verifier only "
            f"accepts tokens of tenant {self.tenant_id}."
        )

    async def _check_revoked(self, claims: TokenClaims) -> None:
        if self._revocation_source is None:
            raise InvalidArgumentError(
                "check_revoked requires a verifier created with a revocation_source."
            )
        valid_since = await self._revocation_source(claims.uid)
        if valid_since is not None and claims.issued_at < valid_since:
            raise RevokedTokenError(
                f"The Firebase {self.short_name} has been revoked.", self._revoked_code
            )

    def _invalid(self, message: str, reason: TokenFailure, cause: Optional[BaseException] = None) -> InvalidTokenError:
        return InvalidTokenError(message, reason, self._invalid_code, cause=cause)

    async def aclose(self) -> None:
        aclose = getattr(self.key_source, "aclose", None)
        if aclose is not None:
            await aclose()


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _key_source(
    cert_url: str,
    clock: Optional[Clock],
    retry_policy: Optional[RetryPolicy],
    transport: Optional[httpx.AsyncBaseTransport],
    waiter: Optional[Waiter],
    timeout: float,
) -> HttpPublicKeySource:
    return HttpPublicKeySource(
        cert_url,
        clock,
        retry_policy=retry_policy,
        transport=transport,
        waiter=waiter,
        timeout=timeout,
    )


def create_id_token_verifier(
    project_id: Optional[str],
    *,
    tenant_id: Optional[str] = None,
    clock: Optional[Clock] = None,
    key_source: Optional[PublicKeySource] = None,
    revocation_source: Optional[RevocationSource] = None,
    retry_policy: Optional[RetryPolicy] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    waiter: Optional[Waiter] = None,
    timeout: float = 10.0,
) -> TokenVerifier:
    if not project_id:
        raise InvalidArgumentError("Must initialize the SDK with a project ID to verify ID tokens.")
    if key_source is None:
        key_source = _key_source(ID_TOKEN_CERT_URL, clock, retry_policy, transport, waiter, timeout)
    args = TokenVerifierArgs.for_id_tokens(project_id, key_source, clock=clock, tenant_id=tenant_id)
    return TokenVerifier(args, revocation_source=revocation_source)


def create_session_cookie_verifier(
    project_id: Optional[str],
    *,
    tenant_id: Optional[str] = None,
    clock: Optional[Clock] = None,
    key_source: Optional[PublicKeySource] = None,
    revocation_source: Optional[RevocationSource] = None,
    retry_policy: Optional[RetryPolicy] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    waiter: Optional[Waiter] = None,
    timeout: float = 10.0,
) -> TokenVerifier:
    if not project_id:
        raise InvalidArgumentError(
            "Must initialize the SDK with a project ID to verify session cookies."
        )
    if key_source is None:
        key_source = _key_source(SESSION_COOKIE_CERT_URL, clock, retry_policy, transport, waiter, timeout)
    args = TokenVerifierArgs.for_session_cookies(project_id, key_source, clock=clock, tenant_id=tenant_id)
    return TokenVerifier(args, revocation_source=revocation_source)
