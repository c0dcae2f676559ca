import asyncio

import aiohttp
import pytest

from truthcheck.services.common.retry import (
    CircuitBreaker,
    CircuitOpenError,
    PermanentError,
    TransientError,
    backoff_delay,
    is_transient,
    with_retry,
)


class _HTTPError(Exception):
    def __init__(self, status: int) -> None:
        super().__init__(f"HTTP {status}")
        self.status = status


@pytest.mark.parametrize(
    "exc,expected",
    [
        (TransientError("flaky"), True),
        (PermanentError("bad request"), False),
        (asyncio.TimeoutError(), True),
        (aiohttp.ClientConnectionError("reset"), True),
        (_HTTPError(503), True),
        (_HTTPError(429), True),
        (_HTTPError(404), False),
        (ValueError("parse"), False),
    ],
)
def test_is_transient(exc, expected):
    assert is_transient(exc) is expected


def test_backoff_delay_doubles_and_caps():
    assert backoff_delay(0) == 1.0
    assert backoff_delay(3) == 8.0
    assert backoff_delay(10, base_delay=1.0, max_delay=30.0) == 30.0


class _Recorder:
    def __init__(self):
        self.sleeps = []

    async def __call__(self, seconds):
        self.sleeps.append(seconds)


@pytest.mark.asyncio
async def test_with_retry_recovers_from_transient_failures():
    attempts = {"n": 0}
    sleep = _Recorder()

    async def _call():
        attempts["n"] += 1
        if attempts["n"] < 3:
            raise TransientError("try again")
        return "ok"

    assert await with_retry(_call, sleep=sleep) == "ok"
    assert attempts["n"] == 3
    assert sleep.sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_with_retry_does_not_retry_client_errors():
    attempts = {"n": 0}

    async def _call():
        attempts["n"] += 1
        raise _HTTPError(400)

    with pytest.raises(_HTTPError):
        await with_retry(_call, sleep=_Recorder())
    assert attempts["n"] == 1


@pytest.mark.asyncio
async def test_with_retry_gives_up_after_max_retries():
    attempts = {"n": 0}
    sleep = _Recorder()

    async def _call():
        attempts["n"] += 1
        raise _HTTPError(502)

    with pytest.raises(_HTTPError):
        await with_retry(_call, max_retries=2, base_delay=0.5, sleep=sleep)
    assert attempts["n"] == 3
    assert sleep.sleeps == [0.5, 1.0]


async def _fail():
    raise TransientError("down")


async def _succeed():
    return "ok"


@pytest.mark.asyncio
async def test_circuit_breaker_opens_and_recovers(fake_clock):
    breaker = CircuitBreaker("crossref", failure_threshold=2, reset_timeout=60, clock=fake_clock)

    for _ in range(2):
        with pytest.raises(TransientError):
            await breaker.call(_fail)
    assert breaker.state == CircuitBreaker.OPEN

    called = {"n": 0}

    async def _tracked():
        called["n"] += 1
        return "ok"

    with pytest.raises(CircuitOpenError):
        await breaker.call(_tracked)
    assert called["n"] == 0

    fake_clock.advance(60)
    assert breaker.state == CircuitBreaker.HALF_OPEN
    assert await breaker.call(_succeed) == "ok"
    assert breaker.state == CircuitBreaker.CLOSED
    assert breaker.failures == 0


@pytest.mark.asyncio
async def test_failed_trial_call_reopens_circuit(fake_clock):
    breaker = CircuitBreaker("pubmed", failure_threshold=1, reset_timeout=30, clock=fake_clock)

    with pytest.raises(TransientError):
        await breaker.call(_fail)
    fake_clock.advance(30)
    assert breaker.state == CircuitBreaker.HALF_OPEN

    with pytest.raises(TransientError):
        await breaker.call(_fail)
    assert breaker.state == CircuitBreaker.OPEN


@pytest.mark.asyncio
async def test_success_resets_failure_count(fake_clock):
    breaker = CircuitBreaker("wikipedia", failure_threshold=3, clock=fake_clock)

    with pytest.raises(TransientError):
        await breaker.call(_fail)
    assert breaker.failures == 1

    await breaker.call(_succeed)
    assert breaker.failures == 0

    breaker.reset()
    assert breaker.state == CircuitBreaker.CLOSED
