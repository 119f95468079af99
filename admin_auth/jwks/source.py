"""
Public key source for token verification.

Keys are published as a JSON object mapping key ids to PEM encoded X.509
certificates. The response ``Cache-Control: max-age`` header decides how long
the parsed keys stay valid.
"""

import asyncio
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Protocol, Sequence

import httpx
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from admin_core.clock import Clock, SYSTEM_CLOCK
from admin_core.errors import ErrorCode, InvalidArgumentError
from admin_core.http import ErrorHandlingHttpClient
from admin_core.logging import get_logger
from admin_core.metrics import get_metrics
from admin_core.retry import RetryPolicy, Waiter

from ..errors import CertificateFetchError, PublicKeySourceErrorHandler


CLOCK_SKEW = timedelta(minutes=5)

_MAX_AGE_RE = re.compile(r"(?:^|,)\s*max-age\s*=\s*\"?(\d+)\"?\s*(?:,|$)", re.IGNORECASE)


@dataclass(frozen=True)
class SigningKey:
    """A public key that may have signed a token, identified by its ``kid``."""

    key_id: str
    public_key: RSAPublicKey


class PublicKeySource(Protocol):
    async def get_public_keys(self) -> Sequence[SigningKey]:  # pragma: no cover - protocol definition
        ...


def parse_max_age(cache_control: Optional[str]) -> Optional[int]:
    """Return the ``max-age`` directive of a Cache-Control header, in seconds."""
    if not cache_control:
        return None
    match = _MAX_AGE_RE.search(cache_control)
    if match is None:
        return None
    return int(match.group(1))


def load_signing_key(key_id: str, pem_certificate: str) -> SigningKey:
    certificate = x509.load_pem_x509_certificate(pem_certificate.encode("utf-8"))
    public_key = certificate.public_key()
    if not isinstance(public_key, RSAPublicKey):
        raise ValueError(f"Certificate {key_id} does not contain an RSA public key.")
    return SigningKey(key_id=key_id, public_key=public_key)


class HttpPublicKeySource:
    """Fetches and caches signing keys from a certificate endpoint.

    Concurrent callers that find the cache expired serialize on a lock and
    only the first of them performs the fetch. A failed fetch raises
    ``CertificateFetchError`` and leaves the cache untouched.
    """

    def __init__(
        self,
        cert_url: str,
        clock: Optional[Clock] = None,
        http_client: Optional[ErrorHandlingHttpClient] = None,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        waiter: Optional[Waiter] = None,
        timeout: float = 10.0,
    ):
        if not cert_url:
            raise InvalidArgumentError("cert_url must not be empty.")
        self.cert_url = cert_url
        self._clock = clock or SYSTEM_CLOCK
        if http_client is None:
            handler = PublicKeySourceErrorHandler()
            http_client = ErrorHandlingHttpClient(
                handler,
                handler,
                handler,
                retry_policy=retry_policy,
                transport=transport,
                waiter=waiter,
                clock=self._clock,
                timeout=timeout,
            )
        self._http = http_client
        self._lock = asyncio.Lock()
        self._cached_keys: Optional[List[SigningKey]] = None
        self._expires_at: datetime = self._clock.now()
        self._metrics = get_metrics()
        self.logger = get_logger("admin_auth.jwks")

    @property
    def expires_at(self) -> datetime:
        return self._expires_at

    def _is_stale(self) -> bool:
        return self._cached_keys is None or self._clock.now() >= self._expires_at

    async def get_public_keys(self) -> List[SigningKey]:
        """Return the current keys, refreshing them first if the cache has expired."""
        if self._is_stale():
            async with self._lock:
                if self._is_stale():
                    await self._refresh()
        return list(self._cached_keys)

    async def _refresh(self) -> None:
        now = self._clock.now()
        request = self._http.build_request("GET", self.cert_url)
        try:
            response = await self._http.send_and_deserialize(request)
            keys = self._parse_keys(response.result, response.response)
        except CertificateFetchError as exc:
            self._metrics.record_key_fetch("failure")
            self.logger.error("Failed to fetch public keys", url=self.cert_url, error=exc.message)
            raise

        max_age = parse_max_age(response.response.headers.get("Cache-Control"))
        self._cached_keys = keys
        if max_age is not None:
            self._expires_at = now + timedelta(seconds=max_age) - CLOCK_SKEW

        self._metrics.record_key_fetch("success")
        self.logger.info(
            "Public keys refreshed",
            url=self.cert_url,
            keys_count=len(keys),
            expires_at=self._expires_at.isoformat(),
        )

    def _parse_keys(self, result: object, response: httpx.Response) -> List[SigningKey]:
        if not isinstance(result, dict) or not result:
            raise CertificateFetchError(
                ErrorCode.UNKNOWN,
                "No public keys present in the response.",
                http_response=response,
            )

        keys = []
        for key_id, certificate in result.items():
            try:
                keys.append(load_signing_key(key_id, certificate))
            except (ValueError, TypeError, AttributeError) as exc:
                raise CertificateFetchError(
                    ErrorCode.UNKNOWN,
                    f"Failed to parse certificate {key_id}: {exc}",
                    cause=exc,
                    http_response=response,
                ) from exc
        return keys

    async def aclose(self) -> None:
        await self._http.aclose()


class StaticPublicKeySource:
    """Serves a fixed set of keys. Used with locally generated key pairs."""

    def __init__(self, keys: Dict[str, RSAPublicKey]):
        self._keys = [SigningKey(key_id=key_id, public_key=key) for key_id, key in keys.items()]

    async def get_public_keys(self) -> List[SigningKey]:
        return list(self._keys)

    async def aclose(self) -> None:
        return None
