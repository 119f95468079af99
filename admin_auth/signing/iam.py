"""
Remote signing through the IAM Credentials ``signBlob`` API.

The API must be called with a service account id. ``IAMSigner`` discovers
one from the metadata server available on Google-managed runtimes;
``FixedAccountIAMSigner`` uses an id supplied up front.
"""

import asyncio
import base64
import binascii
from typing import Optional

import httpx

from admin_core.clock import Clock
from admin_core.errors import ConfigurationError, InvalidArgumentError
from admin_core.handlers import DefaultErrorHandler
from admin_core.http import ErrorHandlingHttpClient
from admin_core.logging import get_logger
from admin_core.retry import RetryPolicy, Waiter

from ..errors import AuthErrorHandler, IAMSignerErrorHandler


SIGN_BLOB_URL = "https://iamcredentials.googleapis.com/v1/projects/-/serviceAccounts/{}:signBlob"

METADATA_SERVER_URL = (
    "http://metadata.google.internal/computeMetadata/v1/instance/service-accounts/default/email"
)

DISCOVERY_FAILED_MESSAGE = (
    "Failed to determine service account ID. Make sure to initialize the SDK with service "
    "account credentials or specify a service account ID with iam.serviceAccounts.signBlob "
    "permission. Please refer to https://firebase.google.com/docs/auth/admin/create-custom-tokens "
    "for more details on creating custom tokens."
)


class IAMSigner:
    """Signs data remotely, discovering the service account id on first use.

    Discovery runs at most once per signer. Every caller awaits the same
    task, so all of them see the first outcome, success or failure.
    """

    def __init__(
        self,
        auth: Optional[httpx.Auth] = None,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        waiter: Optional[Waiter] = None,
        clock: Optional[Clock] = None,
        timeout: float = 10.0,
    ):
        auth_handler = AuthErrorHandler()
        self._http = ErrorHandlingHttpClient(
            IAMSignerErrorHandler(),
            auth_handler,
            auth_handler,
            retry_policy=retry_policy if retry_policy is not None else RetryPolicy.default(),
            auth=auth,
            transport=transport,
            waiter=waiter,
            clock=clock,
            timeout=timeout,
        )
        metadata_handler = DefaultErrorHandler()
        self._metadata_http = ErrorHandlingHttpClient(
            metadata_handler,
            metadata_handler,
            metadata_handler,
            transport=transport,
            timeout=timeout,
            headers={"Metadata-Flavor": "Google"},
        )
        self._key_id_task: Optional[asyncio.Task] = None
        self.logger = get_logger("admin_auth.signing")

    async def get_key_id(self) -> str:
        if self._key_id_task is None:
            self._key_id_task = asyncio.ensure_future(self._discover_service_account_id())
        try:
            return await asyncio.shield(self._key_id_task)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise ConfigurationError(DISCOVERY_FAILED_MESSAGE, cause=exc) from exc

    async def sign(self, data: bytes) -> bytes:
        key_id = await self.get_key_id()
        request = self._http.build_request(
            "POST",
            SIGN_BLOB_URL.format(key_id),
            json={"payload": base64.b64encode(data).decode("ascii")},
        )
        response = await self._http.send_and_deserialize(request)

        result = response.result
        signed_blob = result.get("signedBlob") if isinstance(result, dict) else None
        try:
            if not isinstance(signed_blob, str):
                raise ValueError("Response does not contain a signedBlob field.")
            return base64.b64decode(signed_blob, validate=True)
        except (ValueError, binascii.Error) as exc:
            raise AuthErrorHandler().handle_deserialize_exception(exc, response.info) from exc

    async def _discover_service_account_id(self) -> str:
        request = self._metadata_http.build_request("GET", METADATA_SERVER_URL)
        info = await self._metadata_http.send_and_read(request)
        service_account_id = info.body.strip()
        if not service_account_id:
            raise ValueError("Metadata server returned an empty service account id.")
        self.logger.info("Discovered service account", service_account_id=service_account_id)
        return service_account_id

    async def aclose(self) -> None:
        if self._key_id_task is not None and not self._key_id_task.done():
            self._key_id_task.cancel()
        await self._http.aclose()
        await self._metadata_http.aclose()


class FixedAccountIAMSigner(IAMSigner):
    """IAM signer for an explicitly configured service account id."""

    def __init__(self, key_id: str, auth: Optional[httpx.Auth] = None, **kwargs):
        if not key_id:
            raise InvalidArgumentError("Service account ID must not be empty.")
        super().__init__(auth, **kwargs)
        self._key_id = key_id

    async def get_key_id(self) -> str:
        return self._key_id
