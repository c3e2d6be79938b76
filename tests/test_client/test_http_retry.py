from __future__ import annotations

import httpx
import pytest

from docchat.client.http import ApiError, RetryPolicy, request_json

_POLICY = RetryPolicy(max_retries=3, base_delay=1.0, max_delay=10.0)


class _Flaky:
    """Fails `failures` times with the given response, then answers 200."""

    def __init__(self, failures: int, fail_with=503) -> None:
        self.failures = failures
        self.fail_with = fail_with
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.calls <= self.failures:
            if self.fail_with == "connect":
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(self.fail_with, json={"error": "upstream down"})
        return httpx.Response(200, json={"ok": True})


async def _run(handler, policy: RetryPolicy = _POLICY):
    delays: list[float] = []

    async def sleep(delay: float) -> None:
        delays.append(delay)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test") as client:
        result = await request_json(client, "GET", "/status", retry=policy, sleep=sleep)
    return result, delays


async def test_three_transient_failures_then_success() -> None:
    handler = _Flaky(3)
    result, delays = await _run(handler)

    assert result == {"ok": True}
    assert handler.calls == 4
    assert delays == [1.0, 2.0, 4.0]


async def test_four_transient_failures_terminate() -> None:
    handler = _Flaky(4)

    with pytest.raises(ApiError) as exc_info:
        await _run(handler)

    assert handler.calls == 4
    assert exc_info.value.status_code == 503
    assert exc_info.value.message == "upstream down"


async def test_client_errors_are_not_retried() -> None:
    handler = _Flaky(1, fail_with=404)

    with pytest.raises(ApiError) as exc_info:
        await _run(handler)

    assert handler.calls == 1
    assert exc_info.value.status_code == 404
    assert not exc_info.value.is_transient


async def test_transport_errors_are_retried() -> None:
    handler = _Flaky(2, fail_with="connect")
    result, delays = await _run(handler)

    assert result == {"ok": True}
    assert delays == [1.0, 2.0]


async def test_no_retry_by_default() -> None:
    handler = _Flaky(1)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test") as client:
        with pytest.raises(ApiError):
            await request_json(client, "GET", "/status")

    assert handler.calls == 1


async def test_empty_response_returns_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204)

    result, _ = await _run(handler)
    assert result is None


def test_delay_is_capped() -> None:
    policy = RetryPolicy(max_retries=8, base_delay=1.0, max_delay=10.0)
    assert [policy.delay_for(i) for i in range(6)] == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]


async def test_error_body_details_are_kept() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Bad input", "details": "pdf_storage_url missing"})

    with pytest.raises(ApiError) as exc_info:
        await _run(handler)

    assert exc_info.value.message == "Bad input"
    assert exc_info.value.details == "pdf_storage_url missing"
