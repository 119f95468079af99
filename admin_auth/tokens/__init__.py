"""
Custom token minting and ID token / session cookie verification.
"""

from .claims import STANDARD_CLAIMS, TokenClaims
from .factory import (
    FIREBASE_AUDIENCE,
    RESERVED_CLAIMS,
    TOKEN_DURATION_SECONDS,
    TokenFactory,
    create_token_factory,
)
from .verifier import (
    CLOCK_SKEW_SECONDS,
    ID_TOKEN_CERT_URL,
    SESSION_COOKIE_CERT_URL,
    RevocationSource,
    TokenVerifier,
    TokenVerifierArgs,
    create_id_token_verifier,
    create_session_cookie_verifier,
)

__all__ = [
    "CLOCK_SKEW_SECONDS",
    "FIREBASE_AUDIENCE",
    "ID_TOKEN_CERT_URL",
    "RESERVED_CLAIMS",
    "RevocationSource",
    "SESSION_COOKIE_CERT_URL",
    "STANDARD_CLAIMS",
    "TOKEN_DURATION_SECONDS",
    "TokenClaims",
    "TokenFactory",
    "TokenVerifier",
    "TokenVerifierArgs",
    "create_id_token_verifier",
    "create_session_cookie_verifier",
    "create_token_factory",
]
