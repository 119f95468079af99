"""
Unit tests for TokenFactory.
"""

import string

import httpx
import jwt
import pytest
from unittest.mock import AsyncMock

from admin_core.errors import ConfigurationError, ErrorCode, InvalidArgumentError
from admin_auth.credentials import AccessTokenCredential, ServiceAccountCredential
from admin_auth.errors import AuthErrorCode, TokenSignError
from admin_auth.jwt_utils import decode_segment
from admin_auth.signing import FixedAccountIAMSigner, IAMSigner, ServiceAccountSigner
from admin_auth.tokens import (
    FIREBASE_AUDIENCE,
    RESERVED_CLAIMS,
    TokenFactory,
    create_token_factory,
)

from conftest import CLIENT_EMAIL, FIXED_NOW, mock_transport


class TestTokenFactory:
    """Test cases for TokenFactory."""

    @pytest.fixture
    def factory(self, service_account_info, clock):
        credential = ServiceAccountCredential.from_info(service_account_info)
        return TokenFactory(ServiceAccountSigner(credential), clock=clock)

    @pytest.mark.asyncio
    async def test_create_custom_token(self, factory, private_key):
        token = await factory.create_custom_token("user1")

        segments = token.split(".")
        assert len(segments) == 3
        assert decode_segment(segments[0]) == {"alg": "RS256", "typ": "JWT"}

        payload = jwt.decode(
            token, private_key.public_key(), algorithms=["RS256"], audience=FIREBASE_AUDIENCE,
            options={"verify_exp": False, "verify_iat": False},
        )
        issued_at = int(FIXED_NOW.timestamp())
        assert payload == {
            "iss": CLIENT_EMAIL,
            "sub": CLIENT_EMAIL,
            "aud": FIREBASE_AUDIENCE,
            "iat": issued_at,
            "exp": issued_at + 3600,
            "uid": "user1",
        }

    @pytest.mark.asyncio
    async def test_developer_claims(self, factory):
        claims = {"admin": True, "package": "gold", "magicNumber": 42}

        token = await factory.create_custom_token("user2", claims)

        payload = decode_segment(token.split(".")[1])
        assert payload["claims"] == claims

    @pytest.mark.asyncio
    async def test_empty_developer_claims_omitted(self, factory):
        token = await factory.create_custom_token("user2", {})

        assert "claims" not in decode_segment(token.split(".")[1])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("uid", ["a", "x" * 128, string.ascii_letters, "user-with_special.chars"])
    async def test_valid_uids(self, factory, uid):
        token = await factory.create_custom_token(uid)

        assert decode_segment(token.split(".")[1])["uid"] == uid

    @pytest.mark.asyncio
    @pytest.mark.parametrize("uid", ["", None, "x" * 129])
    async def test_invalid_uid_makes_no_network_call(self, uid):
        transport, handler = mock_transport(lambda request: httpx.Response(500))
        factory = create_token_factory(AccessTokenCredential("token"), transport=transport)

        with pytest.raises(InvalidArgumentError):
            await factory.create_custom_token(uid)

        assert handler.calls == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("claim", sorted(RESERVED_CLAIMS))
    async def test_reserved_claims(self, factory, claim):
        with pytest.raises(InvalidArgumentError) as exc_info:
            await factory.create_custom_token("user1", {claim: "value"})

        assert claim in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_tenant_id(self, service_account_info, clock):
        credential = ServiceAccountCredential.from_info(service_account_info)
        factory = TokenFactory(ServiceAccountSigner(credential), clock=clock, tenant_id="tenant-1")

        token = await factory.create_custom_token("user1")

        assert decode_segment(token.split(".")[1])["tenant_id"] == "tenant-1"

    def test_empty_tenant_id(self):
        with pytest.raises(InvalidArgumentError):
            TokenFactory(AsyncMock(), tenant_id="")

    @pytest.mark.asyncio
    async def test_signer_failure_is_wrapped(self, clock):
        signer = AsyncMock()
        signer.get_key_id.return_value = "key-id"
        signer.sign.side_effect = ConfigurationError("signing failed")
        factory = TokenFactory(signer, clock=clock)

        with pytest.raises(TokenSignError) as exc_info:
            await factory.create_custom_token("user1")

        assert exc_info.value.auth_error_code == AuthErrorCode.TOKEN_SIGN_FAILED
        assert exc_info.value.code == ErrorCode.FAILED_PRECONDITION
        assert isinstance(exc_info.value.cause, ConfigurationError)
        signer.sign.assert_called_once()

    @pytest.mark.asyncio
    async def test_discovery_failure_message(self, clock):
        transport, _ = mock_transport(lambda request: httpx.Response(404))
        factory = create_token_factory(None, transport=transport, clock=clock)

        with pytest.raises(TokenSignError) as exc_info:
            await factory.create_custom_token("user1")

        assert "Failed to determine service account ID" in exc_info.value.message


class TestCreateTokenFactory:
    """Test cases for create_token_factory."""

    def test_service_account(self, service_account_info):
        credential = ServiceAccountCredential.from_info(service_account_info)

        assert isinstance(create_token_factory(credential).signer, ServiceAccountSigner)

    def test_fixed_account(self):
        factory = create_token_factory(AccessTokenCredential("token"), "fixed@example.com")

        assert isinstance(factory.signer, FixedAccountIAMSigner)

    def test_discovering_signer(self):
        factory = create_token_factory(AccessTokenCredential("token"))

        assert type(factory.signer) is IAMSigner
