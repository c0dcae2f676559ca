"""
Pytest configuration and fixtures for test suite.

This module:
- Detects CI environment and skips tests requiring external services
- Provides fake LLM and clock fixtures shared by the async tests
"""

import os
from typing import Any, List, Optional

import pytest

from truthcheck.services.common.cache import CacheStore
from truthcheck.services.llms.parsing import LLMResponse

# Detect CI environment
IS_CI = os.environ.get("CI") or os.environ.get("GITHUB_ACTIONS") or os.environ.get("GITLAB_CI")


def is_groq_available():
    """Check if Groq API key is configured."""
    return bool(os.environ.get("GROQ_API_KEY"))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "groq_required: mark test as requiring Groq API")
    config.addinivalue_line("markers", "integration: mark test as hitting real lookup APIs")


def pytest_collection_modifyitems(config, items):
    """Automatically skip tests based on environment."""
    for item in items:
        if "groq_required" in item.keywords and not is_groq_available():
            item.add_marker(pytest.mark.skip(reason="Groq API key not configured"))

        if "integration" in item.keywords and (IS_CI or not os.environ.get("RUN_INTEGRATION_TESTS")):
            item.add_marker(pytest.mark.skip(reason="Integration tests need RUN_INTEGRATION_TESTS=1"))


class FakeLLM:
    """Returns queued responses in order; an Exception in the queue is raised instead."""

    def __init__(self, *responses: Any) -> None:
        self.responses: List[Any] = list(responses)
        self.calls: List[dict] = []

    async def ainvoke(
        self,
        prompt: str,
        response_format: str = "text",
        max_tokens: Optional[int] = None,
        purpose: str = "general",
    ) -> LLMResponse:
        self.calls.append({"prompt": prompt, "response_format": response_format, "purpose": purpose})
        if not self.responses:
            raise RuntimeError("no fake response queued")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, LLMResponse):
            return item
        if isinstance(item, str):
            return LLMResponse(text=item)
        return LLMResponse(data=item)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def cache(fake_clock):
    return CacheStore(clock=fake_clock)


@pytest.fixture
def make_llm():
    return FakeLLM
