"""Integration tests for POST /api/ai/analyze with a fake LLM."""

from fastapi.testclient import TestClient

from victry.core.errors import AppError, handle_ai_error

from conftest import AUTH_HEADERS

HEADERS = {**AUTH_HEADERS, "X-User-ID": "user-1"}

JOB_TEXT = (
    "We are hiring a Senior Backend Engineer to build Python services on AWS. "
    "You have 5+ years of experience with FastAPI and PostgreSQL, a BSc in Computer "
    "Science, and you communicate clearly."
)


def test_analyze_returns_structured_requirements(client: TestClient, llm_client) -> None:
    llm_client.results = [
        {
            "hard_skills": [
                {"skill": "Python", "importance": "MUST_HAVE"},
                {"skill": "AWS", "importance": "sometimes"},
            ],
            "soft_skills": [{"skill": "Communication", "importance": "preferred"}],
            "experience": [{"description": "5+ years backend", "importance": "must_have"}],
            "education": [{"type": "BSc", "field": "Computer Science"}],
            "keywords": [{"text": "FastAPI", "frequency": 2}],
            "experience_level": "senior",
        }
    ]

    response = client.post("/api/ai/analyze", json={"text": JOB_TEXT, "temperature": 0.1}, headers=HEADERS)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["hard_skills"] == [
        {"skill": "Python", "importance": "must_have"},
        {"skill": "AWS", "importance": "nice_to_have"},
    ]
    assert data["education"][0]["importance"] == "nice_to_have"
    assert data["experience_level"] == "senior"
    assert data["certifications"] == []

    call = llm_client.calls[0]
    assert call["temperature"] == 0.1
    assert JOB_TEXT in call["prompt"]
    assert call["schema"]["title"] == "JobAnalysis"


def test_short_text_is_rejected(client: TestClient, llm_client) -> None:
    response = client.post("/api/ai/analyze", json={"text": "too short"}, headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["validationErrors"][0]["field"] == "text"
    assert llm_client.calls == []


def test_rate_limited_provider_is_retried_then_reported(client: TestClient, llm_client) -> None:
    rate_limited = AppError(
        handle_ai_error({"status": 429, "error": {"type": "rate_limit_error", "message": "slow"}})
    )
    llm_client.results = [rate_limited]

    response = client.post("/api/ai/analyze", json={"text": JOB_TEXT}, headers=HEADERS)

    assert response.status_code == 429
    assert response.json() == {
        "error": "AI service rate limit exceeded",
        "code": "rate_limit_exceeded",
        "requestId": response.headers["X-Request-ID"],
    }
    assert len(llm_client.calls) == 3


def test_malformed_output_is_generation_error(client: TestClient, llm_client) -> None:
    llm_client.results = [{"hard_skills": "not a list"}]

    response = client.post("/api/ai/analyze", json={"text": JOB_TEXT}, headers=HEADERS)

    assert response.status_code == 500
    assert response.json()["code"] == "ai_generation_error"
    assert len(llm_client.calls) == 1


def test_requires_user(client: TestClient) -> None:
    response = client.post("/api/ai/analyze", json={"text": JOB_TEXT}, headers=AUTH_HEADERS)

    assert response.status_code == 401
