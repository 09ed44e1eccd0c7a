import asyncio

import pytest

from sentiment_backend.services.llm.retry import (
    RetryConfig,
    is_rate_limit_error,
    is_transient_error,
    retry_async,
    with_retry,
)


def _fast_config(**kwargs):
    return RetryConfig(base_delay=0.0, rate_limit_delay=0.0, jitter=False, **kwargs)


class Flaky:
    def __init__(self, failures, error=RuntimeError("503 unavailable")):
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return value


@pytest.mark.asyncio
async def test_retry_async_succeeds_after_failures():
    flaky = Flaky(failures=2)

    result = await retry_async(flaky, "ok", config=_fast_config(max_attempts=3))

    assert result == "ok"
    assert flaky.calls == 3


@pytest.mark.asyncio
async def test_retry_async_raises_last_error_when_exhausted():
    flaky = Flaky(failures=5)

    with pytest.raises(RuntimeError, match="503"):
        await retry_async(flaky, "ok", config=_fast_config(max_attempts=2))

    assert flaky.calls == 2


@pytest.mark.asyncio
async def test_should_retry_predicate_stops_immediately():
    flaky = Flaky(failures=5, error=ValueError("API key not valid"))
    config = _fast_config(max_attempts=5, should_retry=lambda e: False)

    with pytest.raises(ValueError):
        await retry_async(flaky, "ok", config=config)

    assert flaky.calls == 1


@pytest.mark.asyncio
async def test_with_retry_only_catches_listed_exceptions():
    calls = []

    @with_retry(config=_fast_config(max_attempts=3), retryable_exceptions=(ConnectionError,))
    async def call():
        calls.append(1)
        raise KeyError("not retried")

    with pytest.raises(KeyError):
        await call()

    assert len(calls) == 1


def test_delay_grows_exponentially_and_is_capped():
    config = RetryConfig(base_delay=1.0, exponential_base=2.0, max_delay=5.0, jitter=False)

    assert config.get_delay(0) == 1.0
    assert config.get_delay(1) == 2.0
    assert config.get_delay(2) == 4.0
    assert config.get_delay(5) == 5.0


def test_rate_limit_errors_wait_longer():
    config = RetryConfig(base_delay=1.0, rate_limit_delay=5.0, jitter=False)

    assert config.get_delay(0, RuntimeError("429 RESOURCE_EXHAUSTED")) == 5.0


def test_jitter_stays_within_ten_percent():
    config = RetryConfig(base_delay=2.0, jitter=True)

    for _ in range(20):
        assert 2.0 <= config.get_delay(0) <= 2.2


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryConfig(max_attempts=0)


def test_error_classification():
    assert is_rate_limit_error(RuntimeError("Quota exceeded for requests"))
    assert not is_rate_limit_error(RuntimeError("bad request"))
    assert is_transient_error(asyncio.TimeoutError())
    assert is_transient_error(RuntimeError("The model is overloaded"))
    assert not is_transient_error(RuntimeError("invalid argument"))
