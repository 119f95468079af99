"""
Auth domain of the identity admin SDK.

- client: ``AuthClient`` facade and ``AuthOptions``
- tokens: custom token factory, ID token and session cookie verifiers
- signing: local and IAM based signers
- jwks: cached public key sources
- credentials / emulator: credentials and endpoint resolution
- hashing: password hash configurations for user import
- errors: auth error codes, exceptions and HTTP error handlers
"""

from .client import AuthClient, AuthOptions, ClientState
from .credentials import AccessTokenCredential, ServiceAccountCredential
from .errors import (
    AuthError,
    AuthErrorCode,
    CertificateFetchError,
    ExpiredTokenError,
    InvalidTokenError,
    RevokedTokenError,
    TenantIdMismatchError,
    TokenFailure,
    TokenSignError,
)
from .tokens import TokenClaims

__all__ = [
    "AccessTokenCredential",
    "AuthClient",
    "AuthError",
    "AuthErrorCode",
    "AuthOptions",
    "CertificateFetchError",
    "ClientState",
    "ExpiredTokenError",
    "InvalidTokenError",
    "RevokedTokenError",
    "ServiceAccountCredential",
    "TenantIdMismatchError",
    "TokenClaims",
    "TokenFailure",
    "TokenSignError",
]
