"""
Signing strategies for custom tokens.
"""

from typing import Optional

import httpx

from admin_core.clock import Clock
from admin_core.retry import RetryPolicy, Waiter

from ..credentials import Credential, ServiceAccountCredential, http_auth_for
from .base import Signer
from .iam import DISCOVERY_FAILED_MESSAGE, FixedAccountIAMSigner, IAMSigner
from .service_account import ServiceAccountSigner


def create_signer(
    credential: Optional[Credential],
    service_account_id: Optional[str] = None,
    *,
    retry_policy: Optional[RetryPolicy] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    waiter: Optional[Waiter] = None,
    clock: Optional[Clock] = None,
    timeout: float = 10.0,
) -> Signer:
    """Choose a signer for the given credential.

    A service account key signs locally. Otherwise the IAM service signs,
    either for ``service_account_id`` or for an account discovered from the
    metadata server.
    """
    if isinstance(credential, ServiceAccountCredential):
        return ServiceAccountSigner(credential)

    kwargs = dict(retry_policy=retry_policy, transport=transport, waiter=waiter, clock=clock, timeout=timeout)
    if service_account_id:
        return FixedAccountIAMSigner(service_account_id, http_auth_for(credential), **kwargs)
    return IAMSigner(http_auth_for(credential), **kwargs)


__all__ = [
    "DISCOVERY_FAILED_MESSAGE",
    "FixedAccountIAMSigner",
    "IAMSigner",
    "ServiceAccountSigner",
    "Signer",
    "create_signer",
]
