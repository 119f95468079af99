"""
Local signing with a service account private key.
"""

from admin_core.errors import ConfigurationError

from ..credentials import ServiceAccountCredential


class ServiceAccountSigner:
    """Signs in-process with the credential's RSA key; makes no network calls."""

    def __init__(self, credential: ServiceAccountCredential):
        if credential is None:
            raise ConfigurationError("A service account credential is required for local signing.")
        self._credential = credential

    async def get_key_id(self) -> str:
        return self._credential.client_email

    async def sign(self, data: bytes) -> bytes:
        return self._credential.sign(data)

    async def aclose(self) -> None:
        return None
