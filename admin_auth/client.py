"""
Entry point for token operations.

``AuthClient`` creates its token factory and verifiers on first use and owns
the HTTP clients behind them until ``aclose()`` is called.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

import httpx

from admin_core.clock import Clock
from admin_core.config import AdminSettings, get_settings
from admin_core.errors import IllegalStateError
from admin_core.logging import configure_logging, correlation_context, get_logger
from admin_core.retry import RetryPolicy, Waiter

from .credentials import Credential, ServiceAccountCredential, resolve_credential
from .emulator import IdToolkitVersion, get_id_toolkit_host, is_emulator_host
from .tokens import (
    RevocationSource,
    TokenClaims,
    TokenFactory,
    TokenVerifier,
    create_id_token_verifier,
    create_session_cookie_verifier,
    create_token_factory,
)


T = TypeVar("T")


class ClientState(str, Enum):
    ACTIVE = "active"
    DISPOSED = "disposed"


@dataclass
class AuthOptions:
    """Resolved configuration for an ``AuthClient``."""

    project_id: Optional[str] = None
    credential: Optional[Credential] = None
    service_account_id: Optional[str] = None
    emulator_host: Optional[str] = None
    tenant_id: Optional[str] = None
    http_timeout: float = 10.0
    retry_policy: Optional[RetryPolicy] = field(default_factory=RetryPolicy.default)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[AdminSettings] = None,
        credential: Optional[Credential] = None,
        tenant_id: Optional[str] = None,
    ) -> "AuthOptions":
        """Build options from environment settings.

        The project id falls back to the one recorded in a service account
        credential.
        """
        settings = settings or get_settings()
        project_id = settings.project_id
        if not project_id and isinstance(credential, ServiceAccountCredential):
            project_id = credential.project_id
        return cls(
            project_id=project_id,
            credential=credential,
            service_account_id=settings.service_account_id,
            emulator_host=settings.auth_emulator_host if settings.emulator_enabled else None,
            tenant_id=tenant_id,
            http_timeout=settings.http_timeout,
            retry_policy=settings.retry_policy(),
        )


class AuthClient:
    """Creates custom tokens and verifies ID tokens and session cookies."""

    def __init__(
        self,
        options: AuthOptions,
        *,
        clock: Optional[Clock] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        waiter: Optional[Waiter] = None,
        revocation_source: Optional[RevocationSource] = None,
    ):
        self.options = options
        self._credential = resolve_credential(options.credential, options.emulator_host)
        self._clock = clock
        self._transport = transport
        self._waiter = waiter
        self._revocation_source = revocation_source

        self._lock = asyncio.Lock()
        self._state = ClientState.ACTIVE
        self._token_factory: Optional[TokenFactory] = None
        self._id_token_verifier: Optional[TokenVerifier] = None
        self._session_cookie_verifier: Optional[TokenVerifier] = None
        self.logger = get_logger("admin_auth.client")

    @classmethod
    def from_settings(
        cls,
        settings: Optional[AdminSettings] = None,
        credential: Optional[Credential] = None,
        *,
        setup_logging: bool = False,
        **kwargs: Any,
    ) -> "AuthClient":
        settings = settings or get_settings()
        if setup_logging:
            configure_logging(log_level=settings.log_level)
        return cls(AuthOptions.from_settings(settings, credential), **kwargs)

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def credential(self) -> Optional[Credential]:
        """Credential for Identity Toolkit calls. Forced to the "owner" token under the emulator."""
        return self._credential

    @property
    def emulator_enabled(self) -> bool:
        return is_emulator_host(self.options.emulator_host)

    def id_toolkit_url(self, version: IdToolkitVersion = IdToolkitVersion.V2) -> str:
        """Base URL for Identity Toolkit calls made on behalf of this client."""
        self._ensure_active()
        return get_id_toolkit_host(
            self.options.project_id,
            version=version,
            tenant_id=self.options.tenant_id,
            emulator_host=self.options.emulator_host,
        )

    async def create_custom_token(self, uid: str, developer_claims: Optional[Mapping[str, Any]] = None) -> str:
        with correlation_context(self.options.tenant_id):
            factory = await self._get_token_factory()
            return await factory.create_custom_token(uid, developer_claims)

    async def verify_id_token(self, id_token: str, check_revoked: bool = False) -> TokenClaims:
        with correlation_context(self.options.tenant_id):
            verifier = await self._get_id_token_verifier()
            return await verifier.verify(id_token, check_revoked=check_revoked)

    async def verify_session_cookie(self, session_cookie: str, check_revoked: bool = False) -> TokenClaims:
        with correlation_context(self.options.tenant_id):
            verifier = await self._get_session_cookie_verifier()
            return await verifier.verify(session_cookie, check_revoked=check_revoked)

    async def aclose(self) -> None:
        """Release HTTP resources. Further calls raise ``IllegalStateError``."""
        async with self._lock:
            if self._state is ClientState.DISPOSED:
                return
            self._state = ClientState.DISPOSED
            components = [self._token_factory, self._id_token_verifier, self._session_cookie_verifier]
            self._token_factory = None
            self._id_token_verifier = None
            self._session_cookie_verifier = None

        for component in components:
            if component is not None:
                await component.aclose()
        self.logger.info("Auth client closed", project_id=self.options.project_id)

    async def __aenter__(self) -> "AuthClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _ensure_active(self) -> None:
        if self._state is ClientState.DISPOSED:
            raise IllegalStateError("Cannot use an AuthClient after it has been closed.")

    async def _lazy(self, attribute: str, build: Callable[[], T]) -> T:
        self._ensure_active()
        value = getattr(self, attribute)
        if value is not None:
            return value
        async with self._lock:
            self._ensure_active()
            value = getattr(self, attribute)
            if value is None:
                value = build()
                setattr(self, attribute, value)
        return value

    def _http_kwargs(self) -> dict:
        return dict(
            retry_policy=self.options.retry_policy,
            transport=self._transport,
            waiter=self._waiter,
            timeout=self.options.http_timeout,
        )

    def _get_token_factory(self) -> Awaitable[TokenFactory]:
        return self._lazy(
            "_token_factory",
            lambda: create_token_factory(
                self.options.credential,
                self.options.service_account_id,
                tenant_id=self.options.tenant_id,
                clock=self._clock,
                **self._http_kwargs(),
            ),
        )

    def _get_id_token_verifier(self) -> Awaitable[TokenVerifier]:
        return self._lazy(
            "_id_token_verifier",
            lambda: create_id_token_verifier(
                self.options.project_id,
                tenant_id=self.options.tenant_id,
                clock=self._clock,
                revocation_source=self._revocation_source,
                **self._http_kwargs(),
            ),
        )

    def _get_session_cookie_verifier(self) -> Awaitable[TokenVerifier]:
        return self._lazy(
            "_session_cookie_verifier",
            lambda: create_session_cookie_verifier(
                self.options.project_id,
                tenant_id=self.options.tenant_id,
                clock=self._clock,
                revocation_source=self._revocation_source,
                **self._http_kwargs(),
            ),
        )
