"""
Shared fixtures: fake clock, in-memory store, settings and mocked provider HTTP.
"""

import json
import time
from typing import Callable, List

import httpx
import pytest

from explainer_gateway.shared.clients import MemoryStore
from explainer_gateway.shared.core.config import ExplainerSettings, Settings
from explainer_gateway.shared.providers import provider_registry


OPENAI_KEY = "sk-test0123456789abcdefghijklmnop"
CLAUDE_KEY = "sk-ant-REDACTED"
CREDENTIAL_SECRET = "test-credential-secret"
BROWSER_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0"


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def openai_completion(content: str = "A short explanation.", total_tokens: int = 42) -> dict:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 30, "completion_tokens": total_tokens - 30, "total_tokens": total_tokens},
    }


def claude_message(text: str = "A short explanation.", input_tokens: int = 20, output_tokens: int = 15) -> dict:
    return {
        "id": "msg_test",
        "type": "message",
        "content": [{"type": "text", "text": text}],
        "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
    }


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


def json_transport(status_code: int = 200, payload=None) -> RecordingTransport:
    payload = openai_completion() if payload is None else payload
    return RecordingTransport(lambda request: httpx.Response(status_code, json=payload))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def registry():
    return provider_registry


@pytest.fixture
def explainer_settings():
    return ExplainerSettings()


@pytest.fixture
def app_settings():
    return Settings(
        _env_file=None,
        environment="test",
        store_backend="memory",
        credential_secret=CREDENTIAL_SECRET,
        jwt_secret="test-jwt-secret",
        admin_token="test-admin-token",
        openai_api_key=None,
        claude_api_key=None,
        log_format="text",
    )


@pytest.fixture
def fresh_timestamp():
    return time.time()
