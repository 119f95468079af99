"""
Credentials used by the auth components.

``ServiceAccountCredential`` holds a service account private key and is only
ever used to sign data locally. ``AccessTokenCredential`` attaches a bearer
token to outgoing requests made through httpx.
"""

import json
from pathlib import Path
from typing import Any, Dict, Generator, Optional, Union

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from admin_core.errors import ConfigurationError

from .jwt_utils import RS256


EMULATOR_ACCESS_TOKEN = "owner"


class ServiceAccountCredential:
    """A service account key, as found in a downloaded JSON key file."""

    def __init__(
        self,
        client_email: str,
        private_key: Union[str, bytes],
        private_key_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ):
        if not client_email:
            raise ConfigurationError("Service account client_email must not be empty.")
        if isinstance(private_key, str):
            private_key = private_key.encode("utf-8")

        try:
            key = serialization.load_pem_private_key(private_key, password=None)
        except (ValueError, TypeError) as exc:
            raise ConfigurationError(
                f"Failed to load service account private key: {exc}", cause=exc
            ) from exc
        if not isinstance(key, RSAPrivateKey):
            raise ConfigurationError("Service account private key must be an RSA key.")

        self.client_email = client_email
        self.private_key_id = private_key_id
        self.project_id = project_id
        self._private_key = key

    @classmethod
    def from_info(cls, info: Dict[str, Any]) -> "ServiceAccountCredential":
        """Create a credential from the parsed contents of a service account key file."""
        if info.get("type") != "service_account":
            raise ConfigurationError(
                'Invalid service account certificate. Certificate must contain a "type" field '
                'set to "service_account".',
                details={"type": info.get("type")},
            )
        for field in ("client_email", "private_key"):
            if not info.get(field):
                raise ConfigurationError(
                    f'Invalid service account certificate. Certificate must contain a "{field}" field.'
                )
        return cls(
            client_email=info["client_email"],
            private_key=info["private_key"],
            private_key_id=info.get("private_key_id"),
            project_id=info.get("project_id"),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ServiceAccountCredential":
        try:
            info = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigurationError(
                f"Failed to read service account key file {path}: {exc}", cause=exc
            ) from exc
        if not isinstance(info, dict):
            raise ConfigurationError(f"Service account key file {path} must contain a JSON object.")
        return cls.from_info(info)

    @property
    def private_key(self) -> RSAPrivateKey:
        return self._private_key

    def sign(self, data: bytes) -> bytes:
        """RS256 signature of ``data`` with the service account key."""
        return RS256.sign(data, self._private_key)

    def __repr__(self) -> str:
        return f"ServiceAccountCredential(client_email={self.client_email!r})"


class AccessTokenCredential(httpx.Auth):
    """Sends a fixed OAuth2 access token as a bearer credential."""

    def __init__(self, access_token: str):
        if not access_token:
            raise ConfigurationError("access_token must not be empty.")
        self._access_token = access_token

    @property
    def access_token(self) -> str:
        return self._access_token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self._access_token}"
        yield request

    def __repr__(self) -> str:
        return "AccessTokenCredential(access_token=<redacted>)"


Credential = Union[ServiceAccountCredential, httpx.Auth]


def resolve_credential(credential: Optional[Credential], emulator_host: Optional[str] = None) -> Optional[Credential]:
    """Pick the credential to use, replacing it with the emulator placeholder when needed."""
    if emulator_host and emulator_host.strip():
        return AccessTokenCredential(EMULATOR_ACCESS_TOKEN)
    return credential


def http_auth_for(credential: Optional[Credential]) -> Optional[httpx.Auth]:
    """The httpx auth to send with remote calls. Service account keys are never sent."""
    if isinstance(credential, httpx.Auth):
        return credential
    return None
