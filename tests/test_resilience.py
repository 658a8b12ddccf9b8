"""Tests for retry with exponential backoff."""

import asyncio

import httpx
import pytest

from calorie_optimizer.domain.errors import (
    MalformedOutputError,
    NotFoundError,
    RateLimitError,
    UpstreamError,
)
from calorie_optimizer.services.events import EventBus
from calorie_optimizer.services.resilience import (
    RetryPolicy,
    call_with_retry,
    is_transient,
)


class _Recorder:
    def __init__(self) -> None:
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


def _failing(errors: list[Exception], result: str = "ok"):  # type: ignore[no-untyped-def]
    calls = {"count": 0}

    async def func() -> str:
        calls["count"] += 1
        if errors:
            raise errors.pop(0)
        return result

    return func, calls


def test_delay_doubles_and_caps() -> None:
    policy = RetryPolicy(max_attempts=10)

    assert [policy.delay_ms(n) for n in range(1, 9)] == [
        1000,
        2000,
        4000,
        8000,
        16000,
        32000,
        60000,
        60000,
    ]


def test_retries_until_success_with_backoff() -> None:
    recorder = _Recorder()
    events = EventBus()
    func, calls = _failing([RateLimitError("429"), UpstreamError(503, "down")])

    result = asyncio.run(
        call_with_retry(
            func,
            action="completion",
            policy=RetryPolicy(max_attempts=5),
            events=events,
            sleep=recorder.sleep,
        )
    )

    assert result == "ok"
    assert calls["count"] == 3
    assert recorder.sleeps == [1.0, 2.0]
    assert [event.type for event in events.events()] == [
        "attempt",
        "retry",
        "attempt",
        "retry",
        "attempt",
        "success",
    ]
    assert events.events("retry")[1].data["delay_ms"] == 2000


def test_gives_up_and_reraises_last_error() -> None:
    recorder = _Recorder()
    events = EventBus()
    last = MalformedOutputError("still bad")
    func, calls = _failing([MalformedOutputError("bad"), last])

    with pytest.raises(MalformedOutputError) as error:
        asyncio.run(
            call_with_retry(
                func,
                action="completion",
                policy=RetryPolicy(max_attempts=2),
                events=events,
                sleep=recorder.sleep,
            )
        )

    assert error.value is last
    assert calls["count"] == 2
    assert events.events("failure")[0].data["attempt"] == 2


def test_non_retryable_errors_fail_immediately() -> None:
    recorder = _Recorder()
    func, calls = _failing([UpstreamError(404, "missing")])

    with pytest.raises(UpstreamError):
        asyncio.run(
            call_with_retry(
                func,
                action="get_food:1",
                policy=RetryPolicy(max_attempts=5),
                sleep=recorder.sleep,
            )
        )

    assert calls["count"] == 1
    assert recorder.sleeps == []


def test_custom_predicate_is_honoured() -> None:
    recorder = _Recorder()
    func, calls = _failing([NotFoundError("x")])
    policy = RetryPolicy(max_attempts=2, is_retryable=lambda exc: True)

    result = asyncio.run(
        call_with_retry(func, action="search", policy=policy, sleep=recorder.sleep)
    )

    assert result == "ok"
    assert calls["count"] == 2


def test_is_transient_classification() -> None:
    assert is_transient(UpstreamError(429, ""))
    assert is_transient(UpstreamError(500, ""))
    assert not is_transient(UpstreamError(400, ""))
    assert is_transient(httpx.ConnectError("refused"))
    assert is_transient(TimeoutError())
    assert not is_transient(ValueError("bad input"))
