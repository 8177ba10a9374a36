"""Integration tests for POST /api/auth/forgot-password."""

import pytest
from fastapi.testclient import TestClient

from victry.core.errors import AppError, ErrorCategory, ErrorCode, create_api_error
from victry.services.password_reset_service import GENERIC_RESET_MESSAGE

from conftest import AUTH_HEADERS

URL = "/api/auth/forgot-password"


def _post(client: TestClient, email, ip: str = "203.0.113.10"):
    return client.post(URL, json={"email": email}, headers={**AUTH_HEADERS, "X-Forwarded-For": ip})


def test_valid_email_sends_reset_link(client: TestClient, auth_client) -> None:
    response = _post(client, "ada@example.com")

    assert response.status_code == 200
    body = response.json()
    assert body["data"] == {"message": GENERIC_RESET_MESSAGE, "email": "ada@example.com"}
    assert "requestId" in body

    assert len(auth_client.sent) == 1
    sent = auth_client.sent[0]
    assert sent.email == "ada@example.com"
    assert sent.redirect_to == "http://testserver/auth/confirm?next=/reset-password"


@pytest.mark.parametrize("email", ["not-an-email", "", None, "ada@localhost"])
def test_invalid_email_is_rejected(client: TestClient, auth_client, email) -> None:
    response = _post(client, email)

    assert response.status_code == 400
    assert response.json()["error"] == "Please provide a valid email address"
    assert response.json()["code"] == "validation_invalid_format"
    assert auth_client.sent == []


def test_missing_body_field_uses_same_message(client: TestClient) -> None:
    response = client.post(URL, json={}, headers=AUTH_HEADERS)

    assert response.status_code == 400
    assert response.json()["code"] == "validation_invalid_format"


def test_email_limit_answers_generically_without_sending(client: TestClient, auth_client) -> None:
    """The sixth request for one address within the hour is silently dropped."""
    responses = [_post(client, "ada@example.com", ip=f"198.51.100.{i}") for i in range(6)]

    assert [response.status_code for response in responses] == [200] * 6
    assert responses[-1].json()["data"]["message"] == GENERIC_RESET_MESSAGE
    assert len(auth_client.sent) == 5


def test_ip_limit_returns_429(client: TestClient, clock) -> None:
    for i in range(20):
        assert _post(client, f"user{i}@example.com").status_code == 200

    clock.advance(60)
    response = _post(client, "late@example.com")

    assert response.status_code == 429
    body = response.json()
    assert body["code"] == "rate_limit_exceeded"
    assert body["error"] == (
        "Too many password reset requests from this location. Please try again in 59 minutes."
    )


def test_provider_failure_is_hidden(client: TestClient, auth_client, memory_transport) -> None:
    async def failing(email: str, redirect_to: str) -> None:
        raise AppError(create_api_error("Auth down", ErrorCategory.SERVICE, code=ErrorCode.SERVICE_UNAVAILABLE))

    auth_client.send_password_reset = failing

    response = _post(client, "ada@example.com")

    assert response.status_code == 200
    assert response.json()["data"]["message"] == GENERIC_RESET_MESSAGE
    assert "password_reset.provider_failed" in memory_transport.messages("error")


@pytest.mark.parametrize("method", ["get", "put", "delete"])
def test_other_methods_are_not_allowed(client: TestClient, method: str) -> None:
    response = client.request(method.upper(), URL, headers=AUTH_HEADERS)

    assert response.status_code == 405
    assert response.headers["allow"] == "POST"
    assert response.json()["error"] == "Method not allowed"
    assert response.json()["code"] == "validation_invalid_data"


def test_requires_api_key(client: TestClient) -> None:
    missing = client.post(URL, json={"email": "ada@example.com"})
    invalid = client.post(URL, json={"email": "ada@example.com"}, headers={"X-API-Key": "nope"})

    assert missing.status_code == 401
    assert invalid.status_code == 403
