from __future__ import annotations

import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from sitescout.core.config import Settings
from sitescout.main import create_app
from sitescout.services.history_service import MemoryKeyValueStore
from sitescout.services.llm_service import ModelReply


def analysis_payload(url: str = "https://a.com", **overrides) -> dict:
    payload = {
        "url": url,
        "summary": "A payments platform.",
        "purpose": "Sell payment processing to online businesses.",
        "howItWorks": "Merchants integrate an API and a hosted checkout.",
        "requirements": {
            "functional": ["Accept card payments", "Plan 3 billing"],
            "technical": ["REST API"],
            "userExperience": ["Fast checkout"],
        },
        "structure": [
            {"page": "/", "description": "Landing page"},
            {"page": "/pricing", "description": "Pricing tiers"},
        ],
    }
    payload.update(overrides)
    return payload


def web_chunk(uri: str | None, title: str | None = None):
    return SimpleNamespace(web=SimpleNamespace(uri=uri, title=title))


class FakeGeminiClient:
    """Stands in for GeminiClient; replies are queued per call shape."""

    def __init__(self):
        self.analysis_replies: list = []
        self.answer_replies: list = []
        self.prompts: list[str] = []

    async def generate_analysis(self, prompt, schema) -> ModelReply:
        self.prompts.append(prompt)
        return self._next(self.analysis_replies)

    async def generate_answer(self, prompt) -> ModelReply:
        self.prompts.append(prompt)
        return self._next(self.answer_replies)

    @staticmethod
    def _next(queue: list) -> ModelReply:
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fake_client() -> FakeGeminiClient:
    return FakeGeminiClient()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(GEMINI_API_KEY=None, LOG_LEVEL="WARNING")


@pytest.fixture
def client(fake_client, store, test_settings):
    app = create_app(test_settings, client=fake_client, store=store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def analysis_reply():
    def _make(url: str = "https://a.com", chunks=None, **overrides) -> ModelReply:
        return ModelReply(
            text=json.dumps(analysis_payload(url, **overrides)),
            grounding_chunks=list(chunks or []),
        )
    return _make


