"""
HTTP client that reports every failure as an SDK exception.
"""

import json
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

import httpx

from .clock import Clock
from .handlers import (
    DeserializeExceptionHandler,
    ErrorResponseHandler,
    RequestExceptionHandler,
    ResponseInfo,
)
from .logging import get_logger
from .retry import RetryPolicy, RetryTransport, Waiter


T = TypeVar("T")

DEFAULT_TIMEOUT = 10.0


@dataclass
class DeserializedResponse(Generic[T]):
    """A response whose body was successfully parsed."""

    info: ResponseInfo
    result: T

    @property
    def response(self) -> httpx.Response:
        return self.info.response


class ErrorHandlingHttpClient:
    """Wraps ``httpx.AsyncClient`` and converts failures with the supplied handlers.

    Low-level transport errors, non-2xx responses and unparseable bodies are
    turned into ``AdminSDKException`` subclasses chosen by the handlers. When a
    ``retry_policy`` is given, requests go through a ``RetryTransport`` first,
    so handlers only ever see the outcome of the last attempt.
    """

    def __init__(
        self,
        error_response_handler: ErrorResponseHandler,
        request_exception_handler: RequestExceptionHandler,
        deserialize_exception_handler: DeserializeExceptionHandler,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        auth: Optional[httpx.Auth] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        waiter: Optional[Waiter] = None,
        clock: Optional[Clock] = None,
        headers: Optional[dict] = None,
    ):
        self._error_response_handler = error_response_handler
        self._request_exception_handler = request_exception_handler
        self._deserialize_exception_handler = deserialize_exception_handler
        self.logger = get_logger("admin_core.http")

        base_transport = transport or httpx.AsyncHTTPTransport()
        if retry_policy is not None:
            base_transport = RetryTransport(base_transport, retry_policy, waiter=waiter, clock=clock)

        self._client = httpx.AsyncClient(
            transport=base_transport,
            auth=auth,
            timeout=timeout,
            headers=headers,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    def build_request(self, method: str, url: str, **kwargs: Any) -> httpx.Request:
        return self._client.build_request(method, url, **kwargs)

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send without any error handling. The caller owns the response."""
        return await self._client.send(request)

    async def send_and_read(self, request: httpx.Request) -> ResponseInfo:
        """Send a request, raising an SDK exception for transport errors and non-2xx responses."""
        try:
            response = await self._client.send(request)
            await response.aread()
        except httpx.RequestError as exc:
            self.logger.warning(
                "HTTP request failed",
                method=request.method,
                url=str(request.url),
                error=str(exc),
            )
            raise self._request_exception_handler.handle_request_exception(exc) from exc

        body = response.text
        if not response.is_success:
            self.logger.warning(
                "HTTP error response",
                method=request.method,
                url=str(request.url),
                status_code=response.status_code,
            )
            raise self._error_response_handler.handle_http_error_response(response, body)

        return ResponseInfo(response=response, body=body)

    async def send_and_deserialize(self, request: httpx.Request) -> DeserializedResponse[Any]:
        """Send a request and parse the JSON body of a successful response."""
        info = await self.send_and_read(request)
        try:
            result = json.loads(info.body)
        except ValueError as exc:
            error = self._deserialize_exception_handler.handle_deserialize_exception(exc, info)
            raise error from exc
        return DeserializedResponse(info=info, result=result)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ErrorHandlingHttpClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

