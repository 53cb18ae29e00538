"""Tests for retry logic."""

import pytest
from ffms.retry import (
    ReconnectPolicy,
    RetryConfig,
    is_retryable_error,
    retry_async,
)
from ffms.errors import (
    AuthenticationError,
    ConfigurationError,
    NetworkError,
    ProtocolError,
    RetryExhaustedError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)


class TestReconnectPolicy:
    """Tests for ReconnectPolicy."""

    def test_default_is_fixed_five_seconds(self):
        """Defaults keep a fixed 5s delay with no limit."""
        policy = ReconnectPolicy()

        assert policy.delay_for(0) == pytest.approx(5.0)
        assert policy.delay_for(10) == pytest.approx(5.0)
        assert policy.allows(0)
        assert policy.allows(10000)

    def test_backoff(self):
        policy = ReconnectPolicy(delay_ms=100, backoff_multiplier=2.0, max_delay_ms=500)

        assert policy.delay_for(0) == pytest.approx(0.1)
        assert policy.delay_for(1) == pytest.approx(0.2)
        assert policy.delay_for(2) == pytest.approx(0.4)
        assert policy.delay_for(10) == pytest.approx(0.5)

    def test_backoff_caps_large_attempt_counts(self):
        """Delays stay at the cap no matter how many attempts have failed."""
        policy = ReconnectPolicy(delay_ms=1000, backoff_multiplier=2.0)

        assert policy.delay_for(5000) == pytest.approx(60.0)

        policy = ReconnectPolicy(delay_ms=1000, backoff_multiplier=2.0, max_delay_ms=500)
        assert policy.delay_for(0) == pytest.approx(0.5)
        assert policy.delay_for(5000) == pytest.approx(0.5)

    def test_jitter_stays_in_range(self):
        policy = ReconnectPolicy(delay_ms=1000, jitter_factor=0.5)

        delays = [policy.delay_for(0) for _ in range(100)]

        assert min(delays) >= 0.5
        assert max(delays) <= 1.5
        assert min(delays) < max(delays)

    def test_max_attempts(self):
        policy = ReconnectPolicy(max_attempts=3)

        assert policy.allows(2)
        assert not policy.allows(3)


class TestIsRetryableError:
    """Tests for is_retryable_error."""

    def test_network_errors_retryable(self):
        assert is_retryable_error(NetworkError("Connection refused"))
        assert is_retryable_error(ServerError("Server error: 503", 503))
        assert is_retryable_error(RuntimeError("boom"))

    def test_rejections_not_retryable(self):
        assert not is_retryable_error(ConfigurationError("missing"))
        assert not is_retryable_error(ProtocolError())
        assert not is_retryable_error(UnauthorizedError())
        assert not is_retryable_error(AuthenticationError())

    def test_validation_error_follows_cause(self):
        assert not is_retryable_error(ValidationError("Validation failed: invalid"))
        assert not is_retryable_error(ValidationError(cause=AuthenticationError()))
        assert is_retryable_error(ValidationError(cause=NetworkError("timeout")))


class TestRetryAsync:
    """Tests for retry_async."""

    async def test_success_first_try(self):
        calls = 0

        async def fn():
            nonlocal calls
            calls += 1
            return "ok"

        assert await retry_async(fn, RetryConfig(max_retries=3, delay_ms=1)) == "ok"
        assert calls == 1

    async def test_retries_until_success(self, caplog):
        calls = 0

        async def fn():
            nonlocal calls
            calls += 1
            if calls < 3:
                raise NetworkError("Connection refused")
            return "ok"

        assert await retry_async(fn, RetryConfig(max_retries=3, delay_ms=1)) == "ok"
        assert calls == 3
        assert "Attempt 2 of 3" in caplog.text

    async def test_exhausted(self):
        calls = 0
        error = NetworkError("Connection refused")

        async def fn():
            nonlocal calls
            calls += 1
            raise error

        with pytest.raises(RetryExhaustedError) as exc_info:
            await retry_async(fn, RetryConfig(max_retries=3, delay_ms=1))

        assert calls == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.cause is error
        assert "Failed after 3 retries" in str(exc_info.value)

    async def test_non_retryable_raised_immediately(self):
        calls = 0

        async def fn():
            nonlocal calls
            calls += 1
            raise ProtocolError()

        with pytest.raises(ProtocolError):
            await retry_async(fn, RetryConfig(max_retries=5, delay_ms=1))

        assert calls == 1
