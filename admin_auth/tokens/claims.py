"""
Decoded token model.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional


STANDARD_CLAIMS = ("iss", "aud", "exp", "iat", "sub", "uid")


@dataclass(frozen=True)
class TokenClaims:
    """Claims of a verified ID token or session cookie.

    ``claims`` holds every claim except the standard ones, including the
    nested ``firebase`` claim and any developer claims.
    """

    issuer: str
    subject: str
    audience: str
    issued_at: int
    expires_at: int
    tenant_id: Optional[str] = None
    claims: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "claims", MappingProxyType(dict(self.claims)))

    @property
    def uid(self) -> str:
        return self.subject

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TokenClaims":
        firebase = payload.get("firebase")
        tenant_id = firebase.get("tenant") if isinstance(firebase, dict) else None
        custom = {name: value for name, value in payload.items() if name not in STANDARD_CLAIMS}
        return cls(
            issuer=payload.get("iss"),
            subject=payload.get("sub"),
            audience=payload.get("aud"),
            issued_at=payload.get("iat"),
            expires_at=payload.get("exp"),
            tenant_id=tenant_id,
            claims=custom,
        )
