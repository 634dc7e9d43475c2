"""Unit tests for retry logic and error classification."""
import httpx
import pytest

from catalog_import_api.exceptions import CatalogApiError
from catalog_import_api.services.retry import (
    is_retryable_error,
    retry_async_call,
    DEFAULT_MAX_ATTEMPTS,
)


class TestIsRetryableError:
    """Test error classification for retry decisions."""

    # --- Retryable errors (should return True) ---

    @pytest.mark.parametrize("status_code", [429, 500, 502, 503, 504])
    def test_backend_overload_and_server_errors_are_retryable(self, status_code):
        """429 and 5xx responses should be retryable."""
        assert is_retryable_error(CatalogApiError("failed", status_code)) is True

    def test_httpx_timeout_is_retryable(self):
        assert is_retryable_error(httpx.ReadTimeout("read timed out")) is True

    def test_httpx_connect_error_is_retryable(self):
        assert is_retryable_error(httpx.ConnectError("refused")) is True

    def test_wrapped_transport_error_is_retryable(self):
        try:
            try:
                raise httpx.ConnectError("refused")
            except httpx.ConnectError as e:
                raise CatalogApiError("Login failed: refused") from e
        except CatalogApiError as wrapped:
            assert is_retryable_error(wrapped) is True

    # --- Non-retryable errors (should return False) ---

    @pytest.mark.parametrize("status_code", [400, 401, 403, 404, 422])
    def test_client_errors_not_retryable(self, status_code):
        """4xx responses other than 429 should NOT be retryable."""
        assert is_retryable_error(CatalogApiError("failed", status_code)) is False

    def test_wrapped_error_without_cause_not_retryable(self):
        assert is_retryable_error(CatalogApiError("Login response did not include a token")) is False

    def test_unknown_errors_not_retryable_by_default(self):
        """Unknown/unrecognized errors should NOT be retryable."""
        assert is_retryable_error(Exception("Something completely unexpected happened")) is False

    @pytest.mark.parametrize(
        "error_message",
        [
            "Request timed out",
            "Connection reset by peer",
            "Temporary failure in name resolution",
        ],
    )
    def test_plain_exceptions_not_retryable_whatever_the_message(self, error_message):
        """Only typed transport errors are retried, never message matches."""
        assert is_retryable_error(Exception(error_message)) is False


class FlakyCall:
    """Async callable that replays a script of results and exceptions."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def call(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class TestRetryAsyncCall:
    """Test asynchronous retry execution."""

    @pytest.mark.asyncio
    async def test_successful_call_returns_immediately(self):
        func = FlakyCall("success")

        result = await retry_async_call(func.call, max_attempts=3)

        assert result == "success"
        assert len(func.calls) == 1

    @pytest.mark.asyncio
    async def test_retryable_error_retries_up_to_max_attempts(self):
        func = FlakyCall(CatalogApiError("Service Unavailable", 503))

        with pytest.raises(CatalogApiError):
            await retry_async_call(func.call, max_attempts=3, min_wait_seconds=0, max_wait_seconds=0)

        assert len(func.calls) == 3

    @pytest.mark.asyncio
    async def test_non_retryable_error_fails_immediately(self):
        func = FlakyCall(CatalogApiError("Unauthorized", 401))

        with pytest.raises(CatalogApiError):
            await retry_async_call(func.call, max_attempts=3)

        assert len(func.calls) == 1

    @pytest.mark.asyncio
    async def test_eventual_success_after_failures(self):
        func = FlakyCall(CatalogApiError("Bad Gateway", 502), "success")

        result = await retry_async_call(func.call, min_wait_seconds=0, max_wait_seconds=0)

        assert result == "success"
        assert len(func.calls) == 2

    @pytest.mark.asyncio
    async def test_arguments_passed_to_function(self):
        func = FlakyCall("result")

        await retry_async_call(func.call, "arg1", kwarg1="value1")

        assert func.calls == [(("arg1",), {"kwarg1": "value1"})]

    def test_default_max_attempts_is_three(self):
        assert DEFAULT_MAX_ATTEMPTS == 3
