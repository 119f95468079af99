"""
Unit tests for RetryPolicy and RetryTransport.
"""

import asyncio
from datetime import timedelta
from email.utils import format_datetime

import httpx
import pytest

from admin_core.errors import AdminSDKException, ConfigurationError, ErrorCode
from admin_core.handlers import DefaultErrorHandler
from admin_core.http import ErrorHandlingHttpClient
from admin_core.retry import RetryPolicy, RetryTransport, parse_retry_after

from conftest import FIXED_NOW, RecordingWaiter, mock_transport


def _client(transport, policy, waiter, clock=None):
    return httpx.AsyncClient(transport=RetryTransport(transport, policy, waiter=waiter, clock=clock))


class TestRetryPolicy:
    """Test cases for RetryPolicy."""

    def test_default_delays(self):
        policy = RetryPolicy.default()

        assert policy.max_retries == 4
        assert [policy.backoff_delay(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 8.0]

    def test_zero_backoff_factor(self):
        policy = RetryPolicy(backoff_factor=0)

        assert [policy.backoff_delay(n) for n in range(1, 5)] == [0.0, 0.0, 0.0, 0.0]

    def test_negative_backoff_factor(self):
        with pytest.raises(ConfigurationError) as exc_info:
            RetryPolicy(backoff_factor=-1)

        assert "backoff_factor" in str(exc_info.value)

    def test_negative_max_retries(self):
        with pytest.raises(ConfigurationError):
            RetryPolicy(max_retries=-1)

    def test_copy_is_independent(self):
        policy = RetryPolicy()
        copied = policy.copy()
        copied.max_retries = 1

        assert policy.max_retries == 4

    def test_transport_copies_policy(self, waiter):
        policy = RetryPolicy()
        transport, _ = mock_transport(lambda request: httpx.Response(200))
        retry_transport = RetryTransport(transport, policy, waiter=waiter)

        policy.max_retries = 0

        assert retry_transport.policy.max_retries == 4

    def test_retry_methods_normalized(self):
        policy = RetryPolicy(retry_methods={"get", "Head"})

        assert policy.allows_method("GET")
        assert policy.allows_method("head")
        assert not policy.allows_method("POST")


class TestParseRetryAfter:
    """Test cases for parse_retry_after."""

    def test_delta_seconds(self):
        assert parse_retry_after("3", FIXED_NOW) == 3.0

    def test_http_date(self):
        value = format_datetime(FIXED_NOW + timedelta(seconds=30), usegmt=True)

        assert parse_retry_after(value, FIXED_NOW) == 30.0

    def test_missing_or_invalid(self):
        assert parse_retry_after(None, FIXED_NOW) is None
        assert parse_retry_after("", FIXED_NOW) is None
        assert parse_retry_after("soon", FIXED_NOW) is None


class TestRetryTransport:
    """Test cases for RetryTransport."""

    @pytest.mark.asyncio
    async def test_retries_503_with_exponential_backoff(self, waiter):
        """Five attempts, waiting 1, 2, 4 and 8 seconds in between."""
        transport, handler = mock_transport(lambda request: httpx.Response(503))

        async with _client(transport, RetryPolicy.default(), waiter) as client:
            response = await client.get("https://example.com/resource")

        assert response.status_code == 503
        assert handler.calls == 5
        assert waiter.waits == [1.0, 2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_retry_after_seconds(self, waiter):
        transport, handler = mock_transport(
            lambda request: httpx.Response(503, headers={"Retry-After": "3"})
        )

        async with _client(transport, RetryPolicy.default(), waiter) as client:
            response = await client.get("https://example.com/resource")

        assert response.status_code == 503
        assert handler.calls == 5
        assert waiter.waits == [3.0, 3.0, 3.0, 3.0]

    @pytest.mark.asyncio
    async def test_retry_after_exceeding_max_delay(self, waiter):
        transport, handler = mock_transport(
            lambda request: httpx.Response(503, headers={"Retry-After": "300"})
        )

        async with _client(transport, RetryPolicy.default(), waiter) as client:
            response = await client.get("https://example.com/resource")

        assert response.status_code == 503
        assert handler.calls == 1
        assert waiter.waits == []

    @pytest.mark.asyncio
    async def test_retry_after_http_date(self, waiter, clock):
        retry_at = format_datetime(clock.now() + timedelta(seconds=10), usegmt=True)
        transport, handler = mock_transport(
            lambda request: httpx.Response(503, headers={"Retry-After": retry_at})
        )

        async with _client(transport, RetryPolicy(max_retries=2), waiter, clock) as client:
            await client.get("https://example.com/resource")

        assert handler.calls == 3
        assert waiter.waits == [10.0, 10.0]

    @pytest.mark.asyncio
    async def test_zero_backoff_still_retries(self, waiter):
        transport, handler = mock_transport(lambda request: httpx.Response(503))

        async with _client(transport, RetryPolicy.no_backoff(), waiter) as client:
            await client.get("https://example.com/resource")

        assert handler.calls == 5
        assert waiter.waits == [0.0, 0.0, 0.0, 0.0]

    @pytest.mark.asyncio
    async def test_success_after_retry(self, waiter):
        responses = [httpx.Response(503), httpx.Response(200, text="ok")]
        transport, handler = mock_transport(lambda request: responses.pop(0))

        async with _client(transport, RetryPolicy.default(), waiter) as client:
            response = await client.get("https://example.com/resource")

        assert response.status_code == 200
        assert response.text == "ok"
        assert handler.calls == 2
        assert waiter.waits == [1.0]

    @pytest.mark.asyncio
    async def test_non_retryable_status(self, waiter):
        transport, handler = mock_transport(lambda request: httpx.Response(500))

        async with _client(transport, RetryPolicy.default(), waiter) as client:
            response = await client.get("https://example.com/resource")

        assert response.status_code == 500
        assert handler.calls == 1

    @pytest.mark.asyncio
    async def test_configured_status_codes(self, waiter):
        transport, handler = mock_transport(lambda request: httpx.Response(500))
        policy = RetryPolicy(max_retries=2, retry_status_codes={500, 503})

        async with _client(transport, policy, waiter) as client:
            await client.get("https://example.com/resource")

        assert handler.calls == 3

    @pytest.mark.asyncio
    async def test_retries_exceptions_then_reraises_last(self, waiter):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport, handler = mock_transport(fail)

        async with _client(transport, RetryPolicy.default(), waiter) as client:
            with pytest.raises(httpx.ConnectError):
                await client.get("https://example.com/resource")

        assert handler.calls == 5
        assert waiter.waits == [1.0, 2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_exceptions_not_retried_when_disabled(self, waiter):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport, handler = mock_transport(fail)
        policy = RetryPolicy(retry_on_exception=False)

        async with _client(transport, policy, waiter) as client:
            with pytest.raises(httpx.ConnectError):
                await client.get("https://example.com/resource")

        assert handler.calls == 1

    @pytest.mark.asyncio
    async def test_method_restriction(self, waiter):
        transport, handler = mock_transport(lambda request: httpx.Response(503))
        policy = RetryPolicy(retry_methods={"GET"})

        async with _client(transport, policy, waiter) as client:
            await client.post("https://example.com/resource", json={})

        assert handler.calls == 1

    @pytest.mark.asyncio
    async def test_exponential_delay_above_max_delay_stops(self, waiter):
        transport, handler = mock_transport(lambda request: httpx.Response(503))
        policy = RetryPolicy(max_retries=10, max_delay=5)

        async with _client(transport, policy, waiter) as client:
            await client.get("https://example.com/resource")

        assert waiter.waits == [1.0, 2.0, 4.0]
        assert handler.calls == 4

    @pytest.mark.asyncio
    async def test_cancellation_during_wait_stops_retries(self):
        started_waiting = asyncio.Event()

        class BlockingWaiter:
            async def wait(self, seconds):
                started_waiting.set()
                await asyncio.sleep(3600)

        transport, handler = mock_transport(lambda request: httpx.Response(503))

        async with _client(transport, RetryPolicy.default(), BlockingWaiter()) as client:
            task = asyncio.ensure_future(client.get("https://example.com/resource"))
            await started_waiting.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert handler.calls == 1

    @pytest.mark.asyncio
    async def test_without_policy_no_retries(self):
        transport, handler = mock_transport(lambda request: httpx.Response(503))
        error_handler = DefaultErrorHandler()
        waiter = RecordingWaiter()

        async with ErrorHandlingHttpClient(
            error_handler, error_handler, error_handler, transport=transport, waiter=waiter
        ) as client:
            with pytest.raises(AdminSDKException) as exc_info:
                await client.send_and_read(client.build_request("GET", "https://example.com/resource"))

        assert exc_info.value.code == ErrorCode.UNAVAILABLE
        assert handler.calls == 1
        assert waiter.waits == []
