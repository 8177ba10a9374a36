"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It ensures that the TESTING environment variable is set to prevent
loading the .env file during tests.
"""

import os

# Set before anything imports victry.core.config, which skips .env loading when TESTING is true
os.environ["TESTING"] = "true"

# Set default env vars that all tests might need
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("APP_STORAGE_BACKEND", "memory")

from typing import Any  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from victry.adapters.auth.in_memory import InMemoryAuthClient  # noqa: E402
from victry.adapters.llm.base import AbstractLLMClient  # noqa: E402
from victry.adapters.log_transport.memory import MemoryLogTransport  # noqa: E402
from victry.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter  # noqa: E402
from victry.adapters.storage.in_memory import InMemoryResumeRepository  # noqa: E402
from victry.core.logger import Logger  # noqa: E402
from victry.core.retry import RetryOptions  # noqa: E402

API_KEY = "test-api-key-123"
AUTH_HEADERS = {"X-API-Key": API_KEY}


class FakeLLMClient(AbstractLLMClient):
    """LLM double returning queued results (dicts) or raising queued exceptions."""

    def __init__(self, *results: Any) -> None:
        self.results = list(results)
        self.calls: list[dict[str, Any]] = []

    async def generate_json(self, prompt, *, temperature=0.3, schema=None, **kwargs):
        self.calls.append({"prompt": prompt, "temperature": temperature, "schema": schema})
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeClock:
    """Manually advanced time source for limiter tests."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def memory_transport() -> MemoryLogTransport:
    return MemoryLogTransport()


@pytest.fixture
def test_logger(memory_transport: MemoryLogTransport) -> Logger:
    return Logger(min_level="debug", transports=[memory_transport])


@pytest.fixture
def fast_retry() -> RetryOptions:
    """Three attempts with no backoff delay."""
    return RetryOptions(max_attempts=3, initial_delay=0.0, max_delay=0.0, jitter=0.0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(clock: FakeClock) -> InMemoryFixedWindowRateLimiter:
    return InMemoryFixedWindowRateLimiter(clock=clock)


@pytest.fixture
def auth_client() -> InMemoryAuthClient:
    return InMemoryAuthClient()


@pytest.fixture
def resume_repository() -> InMemoryResumeRepository:
    return InMemoryResumeRepository()


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient({"hard_skills": [{"skill": "Python", "importance": "must_have"}]})


@pytest.fixture
def app(
    test_logger: Logger,
    rate_limiter: InMemoryFixedWindowRateLimiter,
    llm_client: FakeLLMClient,
    auth_client: InMemoryAuthClient,
    resume_repository: InMemoryResumeRepository,
    fast_retry: RetryOptions,
) -> FastAPI:
    from victry.core.app_factory import create_app

    return create_app(
        app_logger=test_logger,
        rate_limiter=rate_limiter,
        llm_client=llm_client,
        auth_client=auth_client,
        resume_repository=resume_repository,
        retry_options=fast_retry,
    )


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
