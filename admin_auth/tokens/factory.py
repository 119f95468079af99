"""
Custom token creation.
"""

from typing import Any, Dict, Mapping, Optional

import httpx

from admin_core.clock import Clock, SYSTEM_CLOCK, unix_timestamp
from admin_core.errors import AdminSDKException, InvalidArgumentError
from admin_core.logging import get_logger
from admin_core.metrics import get_metrics
from admin_core.retry import RetryPolicy, Waiter

from ..credentials import Credential
from ..errors import TokenSignError
from ..jwt_utils import create_signed_jwt
from ..signing import Signer, create_signer


FIREBASE_AUDIENCE = (
    "https://identitytoolkit.googleapis.com/google.identity.identitytoolkit.v1.IdentityToolkit"
)

TOKEN_DURATION_SECONDS = 3600

MAX_UID_LENGTH = 128

RESERVED_CLAIMS = frozenset([
    "acr",
    "amr",
    "at_hash",
    "aud",
    "auth_time",
    "azp",
    "cnf",
    "c_hash",
    "exp",
    "firebase",
    "iat",
    "iss",
    "jti",
    "nbf",
    "nonce",
    "sub",
])


class TokenFactory:
    """Mints custom tokens that clients exchange for ID tokens.

    Arguments are validated before the signer is consulted, so invalid input
    never causes network traffic. Signer failures are reported as
    ``TokenSignError`` and are not retried here.
    """

    def __init__(self, signer: Signer, clock: Optional[Clock] = None, tenant_id: Optional[str] = None):
        if tenant_id is not None and not tenant_id:
            raise InvalidArgumentError("Tenant ID must not be empty.")
        self.signer = signer
        self.tenant_id = tenant_id
        self._clock = clock or SYSTEM_CLOCK
        self._metrics = get_metrics()
        self.logger = get_logger("admin_auth.tokens.factory")

    async def create_custom_token(self, uid: str, developer_claims: Optional[Mapping[str, Any]] = None) -> str:
        self._validate(uid, developer_claims)

        try:
            key_id = await self.signer.get_key_id()
            issued_at = unix_timestamp(self._clock)
            header = {"alg": "RS256", "typ": "JWT"}
            payload: Dict[str, Any] = {
                "iss": key_id,
                "sub": key_id,
                "aud": FIREBASE_AUDIENCE,
                "iat": issued_at,
                "exp": issued_at + TOKEN_DURATION_SECONDS,
                "uid": uid,
            }
            if self.tenant_id:
                payload["tenant_id"] = self.tenant_id
            if developer_claims:
                payload["claims"] = dict(developer_claims)

            token = await create_signed_jwt(header, payload, self.signer)
        except AdminSDKException as exc:
            self._metrics.record_token_operation("sign", "failure")
            self.logger.warning("Failed to sign custom token", error=exc.message, code=exc.code.value)
            raise TokenSignError(exc.message, cause=exc, code=exc.code) from exc
        except (ValueError, TypeError, httpx.HTTPError) as exc:
            self._metrics.record_token_operation("sign", "failure")
            self.logger.warning("Failed to sign custom token", error=str(exc))
            raise TokenSignError(f"Failed to sign custom token: {exc}", cause=exc) from exc

        self._metrics.record_token_operation("sign", "success")
        return token

    @staticmethod
    def _validate(uid: str, developer_claims: Optional[Mapping[str, Any]]) -> None:
        if not uid or not isinstance(uid, str):
            raise InvalidArgumentError("uid must not be null or empty")
        if len(uid) > MAX_UID_LENGTH:
            raise InvalidArgumentError(
                f"uid must not be longer than {MAX_UID_LENGTH} characters",
                details={"length": len(uid)},
            )
        if developer_claims:
            for name in developer_claims:
                if name in RESERVED_CLAIMS:
                    raise InvalidArgumentError(
                        f"reserved claim {name} not allowed in developer_claims",
                        details={"claim": name},
                    )

    async def aclose(self) -> None:
        await self.signer.aclose()


def create_token_factory(
    credential: Optional[Credential],
    service_account_id: Optional[str] = None,
    *,
    tenant_id: Optional[str] = None,
    clock: Optional[Clock] = None,
    retry_policy: Optional[RetryPolicy] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    waiter: Optional[Waiter] = None,
    timeout: float = 10.0,
) -> TokenFactory:
    signer = create_signer(
        credential,
        service_account_id,
        retry_policy=retry_policy,
        transport=transport,
        waiter=waiter,
        clock=clock,
        timeout=timeout,
    )
    return TokenFactory(signer, clock=clock, tenant_id=tenant_id)
