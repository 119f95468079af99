"""
Compact JWT helpers shared by the token factory and the token verifier.
"""

import json
from typing import Any, Dict, Protocol

from jwt.algorithms import RSAAlgorithm
from jwt.utils import base64url_decode, base64url_encode


RS256 = RSAAlgorithm(RSAAlgorithm.SHA256)


class DataSigner(Protocol):
    async def sign(self, data: bytes) -> bytes:  # pragma: no cover - protocol definition
        ...


def encode_segment(value: Dict[str, Any]) -> str:
    """JSON-encode ``value`` and return it as an unpadded base64url string."""
    raw = json.dumps(value, separators=(",", ":")).encode("utf-8")
    return base64url_encode(raw).decode("ascii")


def decode_segment(segment: str) -> Dict[str, Any]:
    """Decode a base64url JSON segment.

    Raises ValueError when the segment is not valid base64url or does not
    hold a JSON object.
    """
    try:
        raw = base64url_decode(segment.encode("ascii"))
        value = json.loads(raw.decode("utf-8"))
    except (UnicodeError, ValueError, TypeError) as exc:
        raise ValueError(f"Invalid JWT segment: {exc}") from exc
    if not isinstance(value, dict):
        raise ValueError("JWT segment is not a JSON object.")
    return value


def decode_signature(segment: str) -> bytes:
    try:
        return base64url_decode(segment.encode("ascii"))
    except (UnicodeError, ValueError, TypeError) as exc:
        raise ValueError(f"Invalid JWT signature segment: {exc}") from exc


async def create_signed_jwt(header: Dict[str, Any], payload: Dict[str, Any], signer: DataSigner) -> str:
    """Build ``header.payload`` and append the signature produced by ``signer``."""
    unsigned = f"{encode_segment(header)}.{encode_segment(payload)}"
    signature = await signer.sign(unsigned.encode("utf-8"))
    return f"{unsigned}.{base64url_encode(signature).decode('ascii')}"
