"""
Signer interface.
"""

from typing import Protocol


class Signer(Protocol):
    """Signs custom tokens on behalf of a service account.

    ``get_key_id`` returns the service account email that becomes the token
    issuer; ``sign`` returns the raw RS256 signature of ``data``.
    """

    async def get_key_id(self) -> str:  # pragma: no cover - protocol definition
        ...

    async def sign(self, data: bytes) -> bytes:  # pragma: no cover - protocol definition
        ...

    async def aclose(self) -> None:  # pragma: no cover - protocol definition
        ...
