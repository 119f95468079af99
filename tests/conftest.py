"""
Shared fixtures: RSA test keys, certificates, clocks and mock transports.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import jwt
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from admin_core.clock import MockClock


PROJECT_ID = "mock-project-id"
CLIENT_EMAIL = "client@mock-project-id.iam.gserviceaccount.com"
KEY_ID = "test-key-1"

# 2024-01-01T00:00:00Z
FIXED_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def generate_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def private_key_pem(private_key: rsa.RSAPrivateKey) -> str:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def self_signed_certificate(private_key: rsa.RSAPrivateKey) -> str:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "test-signer")])
    now = datetime.now(timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .sign(private_key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")


class RecordingWaiter:
    """Waiter that records requested delays instead of sleeping."""

    def __init__(self):
        self.waits: List[float] = []

    async def wait(self, seconds: float) -> None:
        self.waits.append(seconds)


class RecordingHandler:
    """Callable for ``httpx.MockTransport`` that records every request."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]):
        self.respond = respond
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def calls(self) -> int:
        return len(self.requests)


def mock_transport(
    respond: Callable[[httpx.Request], httpx.Response],
) -> "tuple[httpx.MockTransport, RecordingHandler]":
    handler = RecordingHandler(respond)
    return httpx.MockTransport(handler), handler


def json_response(body: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(body).encode("utf-8"), headers={
        "Content-Type": "application/json",
        **(headers or {}),
    })


def id_token_payload(now: datetime, project_id: str = PROJECT_ID, **overrides: Any) -> Dict[str, Any]:
    issued_at = int(now.timestamp())
    payload = {
        "iss": f"https://securetoken.google.com/{project_id}",
        "aud": project_id,
        "iat": issued_at,
        "exp": issued_at + 3600,
        "sub": "testuser",
        "auth_time": issued_at,
        "firebase": {"sign_in_provider": "custom"},
    }
    payload.update(overrides)
    return {name: value for name, value in payload.items() if value is not None}


def sign_token(private_key: rsa.RSAPrivateKey, payload: Dict[str, Any], key_id: Optional[str] = KEY_ID) -> str:
    headers = {"kid": key_id} if key_id else None
    return jwt.encode(payload, private_key, algorithm="RS256", headers=headers)


@pytest.fixture(scope="session")
def private_key():
    """RSA key shared by the whole test session."""
    return generate_private_key()


@pytest.fixture(scope="session")
def other_private_key():
    return generate_private_key()


@pytest.fixture(scope="session")
def certificate(private_key):
    return self_signed_certificate(private_key)


@pytest.fixture(scope="session")
def service_account_info(private_key):
    return {
        "type": "service_account",
        "project_id": PROJECT_ID,
        "private_key_id": "mock-private-key-id",
        "private_key": private_key_pem(private_key),
        "client_email": CLIENT_EMAIL,
        "client_id": "1234567890",
    }


@pytest.fixture
def clock():
    return MockClock(FIXED_NOW)


@pytest.fixture
def waiter():
    return RecordingWaiter()
