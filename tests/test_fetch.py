"""Tests for the envelope-aware fetch wrapper using ``httpx.MockTransport``."""

from collections.abc import Callable

import httpx
import pytest

from victry.client import api_fetch, is_retryable_fetch_error
from victry.core.errors import ApiError, AppError, ErrorCategory, ErrorCode, create_api_error

BASE_URL = "https://victry.test"


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_sleep(seconds: float) -> None:
        return None

    monkeypatch.setattr("victry.core.retry._sleep", fake_sleep)


@pytest.mark.asyncio
async def test_unwraps_success_envelope() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/resumes"
        assert request.headers["accept"] == "application/json"
        return httpx.Response(200, json={"data": [{"id": "r1"}], "metadata": {"count": 1}})

    async with _client(handler) as client:
        data = await api_fetch("/resumes", client=client)

    assert data == [{"id": "r1"}]


@pytest.mark.asyncio
async def test_plain_json_is_returned_as_is() -> None:
    async with _client(lambda request: httpx.Response(200, json={"status": "ok"})) as client:
        assert await api_fetch("/health", base_url="", client=client) == {"status": "ok"}


@pytest.mark.asyncio
async def test_error_envelope_raises_app_error() -> None:
    body = {
        "error": "Validation failed",
        "code": "validation_invalid_data",
        "validationErrors": [{"field": "email", "message": "Invalid"}],
        "requestId": "req-1",
    }

    async with _client(lambda request: httpx.Response(400, json=body)) as client:
        with pytest.raises(AppError) as exc_info:
            await api_fetch("/auth/forgot-password", method="POST", json={}, client=client)

    error = exc_info.value
    assert error.http_status == 400
    assert error.category == ErrorCategory.VALIDATION
    assert error.code == ErrorCode.VALIDATION_INVALID_DATA
    assert error.error.validation_errors[0].field == "email"
    assert error.error.request_id == "req-1"


@pytest.mark.asyncio
async def test_unknown_error_code_is_ignored() -> None:
    async with _client(lambda request: httpx.Response(404, json={"error": "Gone", "code": "weird"})) as client:
        with pytest.raises(AppError) as exc_info:
            await api_fetch("/resumes/x", client=client)

    assert exc_info.value.code is None
    assert exc_info.value.category == ErrorCategory.NOT_FOUND


@pytest.mark.asyncio
async def test_error_transformer_is_used() -> None:
    def transform(payload, response) -> ApiError:
        return create_api_error(f"custom: {payload['error']}", ErrorCategory.SERVICE)

    async with _client(lambda request: httpx.Response(409, json={"error": "dup"})) as client:
        with pytest.raises(AppError, match="custom: dup"):
            await api_fetch("/resumes", client=client, error_transformer=transform)


@pytest.mark.asyncio
async def test_retries_server_errors_when_enabled() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] < 3:
            return httpx.Response(503, json={"error": "Service unavailable"})
        return httpx.Response(200, json={"data": "ok"})

    async with _client(handler) as client:
        assert await api_fetch("/ai/analyze", client=client, retry=True, max_retries=3) == "ok"

    assert calls["count"] == 3


@pytest.mark.asyncio
async def test_does_not_retry_without_flag() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(503, json={"error": "Service unavailable"})

    async with _client(handler) as client:
        with pytest.raises(AppError):
            await api_fetch("/ai/analyze", client=client)

    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_zero_max_retries_means_single_attempt() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(503, json={"error": "Service unavailable"})

    async with _client(handler) as client:
        with pytest.raises(AppError) as exc_info:
            await api_fetch("/ai/analyze", client=client, retry=True, max_retries=0)

    assert exc_info.value.http_status == 503
    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_client_errors_are_not_retried() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(404, json={"error": "resume not found", "code": "not_found_resume"})

    async with _client(handler) as client:
        with pytest.raises(AppError):
            await api_fetch("/resumes/x", client=client, retry=True)

    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_transport_failure_becomes_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(AppError) as exc_info:
            await api_fetch("/resumes", client=client, retry=True, max_retries=2)

    assert exc_info.value.code == ErrorCode.NETWORK_CONNECTION_ERROR
    assert exc_info.value.message == "Network error"


@pytest.mark.asyncio
async def test_timeout_becomes_network_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    async with _client(handler) as client:
        with pytest.raises(AppError) as exc_info:
            await api_fetch("/resumes", client=client)

    assert exc_info.value.code == ErrorCode.NETWORK_TIMEOUT


@pytest.mark.asyncio
async def test_text_and_binary_bodies() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(".pdf"):
            return httpx.Response(200, content=b"%PDF-1.7", headers={"content-type": "application/pdf"})
        return httpx.Response(200, text="plain body")

    async with _client(handler) as client:
        assert await api_fetch("/export/cv.pdf", client=client) == b"%PDF-1.7"
        assert await api_fetch("/export/cv.txt", client=client) == "plain body"


@pytest.mark.asyncio
async def test_text_error_raises_service_error() -> None:
    async with _client(lambda request: httpx.Response(502, text="Bad gateway")) as client:
        with pytest.raises(AppError) as exc_info:
            await api_fetch("/resumes", client=client)

    assert exc_info.value.message == "Bad gateway"
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_empty_body_returns_none() -> None:
    async with _client(lambda request: httpx.Response(204)) as client:
        assert await api_fetch("/resumes/r1", method="DELETE", client=client) is None


@pytest.mark.asyncio
async def test_invalid_json() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"})

    async with _client(handler) as client:
        with pytest.raises(AppError, match="Invalid JSON response"):
            await api_fetch("/resumes", client=client)


@pytest.mark.asyncio
async def test_validator_rejects_data() -> None:
    async with _client(lambda request: httpx.Response(200, json={"data": {"id": 1}})) as client:
        with pytest.raises(AppError, match="Invalid response data"):
            await api_fetch("/resumes", client=client, validate_response=lambda data: isinstance(data, list))


def test_retry_predicate() -> None:
    server = AppError(create_api_error("x", ErrorCategory.SERVER), http_status=500)
    throttled = AppError(create_api_error("x", ErrorCategory.RATE_LIMIT), http_status=429)
    bad_request = AppError(create_api_error("x", ErrorCategory.VALIDATION), http_status=400)

    assert is_retryable_fetch_error(server, 1) is True
    assert is_retryable_fetch_error(throttled, 1) is True
    assert is_retryable_fetch_error(bad_request, 1) is False
    assert is_retryable_fetch_error(RuntimeError("request aborted"), 1) is True
    assert is_retryable_fetch_error(RuntimeError("boom"), 1) is False


def test_retry_predicate_accepts_raw_transport_errors() -> None:
    request = httpx.Request("GET", f"{BASE_URL}/api/resumes")

    assert is_retryable_fetch_error(httpx.ConnectError("refused", request=request), 1) is True
    assert is_retryable_fetch_error(httpx.RemoteProtocolError("dropped", request=request), 2) is True
