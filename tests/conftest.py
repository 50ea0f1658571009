"""Shared fixtures: isolated settings and a fake upstream behind httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from capability_router.config import Settings
from capability_router.discovery import ModelCatalog
from capability_router.retry import RetryPolicy

BASE_URL = "https://upstream.test/api/v1"

CATALOG: list[dict[str, Any]] = [
    {
        "id": "meta-llama/llama-3.1-8b-instruct",
        "name": "Llama 3.1 8B",
        "architecture": {"input_modalities": ["text"], "modality": "text->text"},
        "supported_parameters": ["temperature", "max_tokens"],
    },
    {
        "id": "anthropic/claude-3.5-sonnet",
        "name": "Claude 3.5 Sonnet",
        "architecture": {"input_modalities": ["text", "image"], "modality": "text+image->text"},
        "supported_parameters": ["temperature", "max_tokens", "tools"],
    },
    {
        "id": "openai/gpt-4o",
        "name": "GPT-4o",
        "architecture": {"input_modalities": ["text", "image"]},
        "supported_parameters": ["temperature", "max_tokens"],
    },
    {
        "id": "deepseek/deepseek-r1",
        "name": "DeepSeek R1",
        "architecture": {"input_modalities": ["text"]},
        "supported_parameters": ["reasoning", "include_reasoning"],
    },
]


def completion_body(content: str = "ok", model: str = "anthropic/claude-3.5-sonnet", **extra: Any):
    body: dict[str, Any] = {
        "id": "gen-1",
        "model": model,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 8, "total_tokens": 20},
    }
    body.update(extra)
    return body


class FakeUpstream:
    """Scripted stand-in for the provider.

    ``responses`` is a list of ``(status, json_body)`` tuples or exceptions,
    consumed in order by chat-completion calls; the last one repeats.
    """

    def __init__(
        self,
        catalog: Any = None,
        responses: list[Any] | None = None,
        catalog_status: int = 200,
    ) -> None:
        self.catalog = CATALOG if catalog is None else catalog
        self.catalog_status = catalog_status
        self.responses = list(responses or [(200, completion_body())])
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/models"):
            if isinstance(self.catalog, Exception):
                raise self.catalog
            return httpx.Response(self.catalog_status, json=self.catalog)
        if path.endswith("/chat/completions"):
            item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
            if isinstance(item, Exception):
                raise item
            status, body = item
            if isinstance(body, str):
                return httpx.Response(status, text=body)
            return httpx.Response(status, json=body)
        return httpx.Response(404, json={"error": {"message": "not found"}})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def catalog_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/models")]

    @property
    def chat_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/chat/completions")]

    def chat_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.chat_requests]


@pytest.fixture
def make_settings():
    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "api_key": "sk-test",
            "base_url": BASE_URL,
            "vision_model": None,
            "reasoning_model": None,
            "default_model": None,
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def upstream():
    return FakeUpstream


@pytest.fixture
def make_catalog(make_settings):
    """Catalog seeded from a payload instead of a fetch."""

    def _make(items: Any = None) -> ModelCatalog:
        catalog = ModelCatalog(make_settings(), FakeUpstream().client())
        if items is not None:
            catalog.load_from(items)
        return catalog

    return _make


@pytest.fixture
def catalog_payload():
    return [dict(item) for item in CATALOG]


@pytest.fixture
def completion():
    return completion_body


@pytest.fixture
def sleeps():
    """A list that records every back-off delay instead of sleeping."""
    return []


@pytest.fixture
def make_policy(sleeps):
    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    def _make(**overrides: Any) -> RetryPolicy:
        values: dict[str, Any] = {
            "max_attempts": 3,
            "base_delay": 1.0,
            "max_jitter": 0.5,
            "sleep": fake_sleep,
            "jitter": lambda low, high: 0.25,
        }
        values.update(overrides)
        return RetryPolicy(**values)

    return _make
