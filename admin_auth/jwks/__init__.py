"""
Public key sources used to verify token signatures.
"""

from .source import (
    CLOCK_SKEW,
    HttpPublicKeySource,
    PublicKeySource,
    SigningKey,
    StaticPublicKeySource,
    load_signing_key,
    parse_max_age,
)

__all__ = [
    "CLOCK_SKEW",
    "HttpPublicKeySource",
    "PublicKeySource",
    "SigningKey",
    "StaticPublicKeySource",
    "load_signing_key",
    "parse_max_age",
]
