"""
Test configuration and fixtures for Fleet NL2SQL.

This module provides common test fixtures for both unit and integration tests:
a fixed-seed dataset, the mock query engine and chat-completion clients backed
by an in-process httpx transport instead of the network.
"""
import json
from datetime import datetime, timezone

import httpx
import pytest
from openai import AsyncOpenAI

from fleet_nl2sql.services.dataset import FleetDataset
from fleet_nl2sql.services.error_handler import ErrorHandler
from fleet_nl2sql.services.query_engine import MockQueryEngine

FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
TEST_BASE_URL = "https://llm.test/openai/v1"
TEST_API_KEY = "test-key"


def chat_completion_body(content):
    """JSON body of a successful, non-streamed chat completion."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "llama-3.3-70b-versatile",
        "choices": [{
            "index": 0,
            "message": {"role": "assistant", "content": content},
            "finish_reason": "stop",
        }],
        "usage": {"prompt_tokens": 10, "completion_tokens": 10, "total_tokens": 20},
    }


class FakeLLM:
    """Records requests and answers them with a canned response or exception."""

    def __init__(self, status_code=200, content="SELECT 1 LIMIT 100;", exc=None, body=None, html=None):
        self.status_code = status_code
        self.content = content
        self.exc = exc
        self.body = body
        self.html = html
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc(f"simulated {self.exc.__name__}", request=request)
        if self.html is not None:
            return httpx.Response(self.status_code, html=self.html)
        if self.status_code != 200:
            return httpx.Response(
                self.status_code,
                json={"error": {"message": f"status {self.status_code}", "type": "api_error"}},
            )
        return httpx.Response(200, json=self.body or chat_completion_body(self.content))

    @property
    def payloads(self):
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture(scope="session")
def dataset():
    """Seeded dataset shared by read-only tests."""
    return FleetDataset.generate(seed=7, size=200, now=FIXED_NOW)


@pytest.fixture
def engine(dataset):
    return MockQueryEngine(dataset)


@pytest.fixture
def error_handler():
    """Fresh handler so error statistics do not leak between tests."""
    return ErrorHandler()


@pytest.fixture
def fake_llm():
    """
    Build (fake, client) pairs.

    The client is an AsyncOpenAI whose requests are answered by `fake`;
    keyword arguments configure the FakeLLM response.
    """
    def factory(**kwargs):
        fake = FakeLLM(**kwargs)
        client = AsyncOpenAI(
            api_key=TEST_API_KEY,
            base_url=TEST_BASE_URL,
            max_retries=0,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake)),
        )
        return fake, client
    return factory
