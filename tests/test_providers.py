"""
Tests for provider adapters: request shape, response parsing, quota detection.
"""

import json

import httpx
import pytest

from explainer_gateway.shared.models.internal import ProviderErrorKind
from explainer_gateway.shared.providers import (
    GENERIC_FAILURE_MESSAGE,
    ClaudeProvider,
    OpenAIProvider,
    ProviderRegistry,
)

from .conftest import CLAUDE_KEY, OPENAI_KEY, claude_message, json_transport, openai_completion


def response(status_code: int, payload=None, content: bytes = None) -> httpx.Response:
    if content is not None:
        return httpx.Response(status_code, content=content)
    return httpx.Response(status_code, json=payload)


class TestOpenAIProvider:

    @pytest.fixture
    def provider(self):
        return OpenAIProvider(max_tokens=150, temperature=0.7, timeout=8.0)

    def test_request_shape(self, provider):
        request = provider.build_request(OPENAI_KEY, "Explain: gravity", "gpt-4o")
        body = json.loads(request.content)

        assert request.url == "https://api.openai.com/v1/chat/completions"
        assert request.headers["Authorization"] == f"Bearer {OPENAI_KEY}"
        assert body["model"] == "gpt-4o"
        assert body["messages"][0]["role"] == "system"
        assert body["messages"][1] == {"role": "user", "content": "Explain: gravity"}
        assert body["max_tokens"] == 150
        assert body["temperature"] == 0.7

    def test_success(self, provider):
        result = provider.parse_response(response(200, openai_completion("  Gravity pulls.  ", 1000)), "gpt-3.5-turbo")
        assert result.success
        assert result.explanation == "Gravity pulls."
        assert result.tokens_used == 1000
        assert result.cost == pytest.approx(0.0015)

    def test_insufficient_quota_on_403(self, provider):
        payload = {"error": {"message": "You exceeded your current quota", "type": "insufficient_quota"}}
        result = provider.parse_response(response(403, payload), "gpt-3.5-turbo")
        assert not result.success
        assert result.is_quota_exceeded
        assert result.detail == "You exceeded your current quota"
        assert "automatically disabled" in result.error

    def test_rate_limit_is_not_quota(self, provider):
        payload = {"error": {"message": "Rate limit reached for requests per min", "type": "requests"}}
        result = provider.parse_response(response(429, payload), "gpt-3.5-turbo")
        assert result.error_kind == ProviderErrorKind.PROVIDER_ERROR
        assert result.error == GENERIC_FAILURE_MESSAGE

    def test_billing_wording_on_429_is_quota(self, provider):
        payload = {"error": {"message": "Your billing details are incomplete", "type": "invalid_request_error"}}
        assert provider.parse_response(response(429, payload), "gpt-4").is_quota_exceeded

    def test_server_error(self, provider):
        result = provider.parse_response(response(500, content=b"upstream exploded"), "gpt-4")
        assert result.error_kind == ProviderErrorKind.PROVIDER_ERROR
        assert "upstream exploded" in result.detail
        assert result.status_code == 500

    def test_malformed_success_body(self, provider):
        result = provider.parse_response(response(200, {"choices": []}), "gpt-4")
        assert result.error_kind == ProviderErrorKind.MALFORMED

        result = provider.parse_response(response(200, content=b"<html>oops</html>"), "gpt-4")
        assert result.error_kind == ProviderErrorKind.MALFORMED

        result = provider.parse_response(response(200, openai_completion("   ")), "gpt-4")
        assert result.error_kind == ProviderErrorKind.MALFORMED

    def test_error_inside_200(self, provider):
        result = provider.parse_response(response(200, {"error": {"message": "bad"}}), "gpt-4")
        assert result.error_kind == ProviderErrorKind.PROVIDER_ERROR
        assert result.detail == "bad"

    def test_unknown_model_uses_default_pricing(self, provider):
        assert provider.estimate_cost(1000, "gpt-unknown") == pytest.approx(0.0015)

    def test_key_format(self, provider):
        assert provider.validate_key_format(OPENAI_KEY)
        assert not provider.validate_key_format("sk-short")
        assert not provider.validate_key_format("pk-" + "a" * 30)
        assert not provider.validate_key_format("sk-has spaces in it 1234567")

    @pytest.mark.asyncio
    async def test_send_over_transport(self, provider):
        transport = json_transport(200, openai_completion("It falls.", 10))
        async with httpx.AsyncClient(transport=transport) as client:
            result = await provider.send(client, OPENAI_KEY, "prompt", "gpt-3.5-turbo")

        assert result.success
        assert result.explanation == "It falls."
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_timeout_is_transport_failure(self, provider):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await provider.send(client, OPENAI_KEY, "prompt", "gpt-3.5-turbo")

        assert not result.success
        assert result.error_kind == ProviderErrorKind.TRANSPORT
        assert not result.is_quota_exceeded

    @pytest.mark.asyncio
    async def test_verify_api_key(self, provider):
        async with httpx.AsyncClient(transport=json_transport(200)) as client:
            assert (await provider.verify_api_key(client, OPENAI_KEY))["success"]

        async with httpx.AsyncClient(transport=json_transport(401, {"error": {"message": "bad key"}})) as client:
            result = await provider.verify_api_key(client, OPENAI_KEY)
        assert not result["success"]
        assert "Invalid API key" in result["message"]

        async with httpx.AsyncClient(transport=json_transport(200)) as client:
            result = await provider.verify_api_key(client, "nope")
        assert result == {"success": False, "message": "Invalid API key format."}


class TestClaudeProvider:

    @pytest.fixture
    def provider(self):
        return ClaudeProvider(max_tokens=100, temperature=0.2)

    def test_request_shape(self, provider):
        request = provider.build_request(CLAUDE_KEY, "Explain: tides", "claude-3-haiku-20240307")
        body = json.loads(request.content)

        assert request.url == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == CLAUDE_KEY
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert "Authorization" not in request.headers
        assert body["system"]
        assert body["messages"] == [{"role": "user", "content": "Explain: tides"}]
        assert body["max_tokens"] == 100

    def test_tokens_count_input_and_output(self, provider):
        result = provider.parse_response(response(200, claude_message("Moon pull.", 600_000, 400_000)),
                                         "claude-3-haiku-20240307")
        assert result.tokens_used == 1_000_000
        assert result.cost == pytest.approx(1.25)

    def test_billing_error_is_quota(self, provider):
        payload = {"type": "error", "error": {"type": "billing_error", "message": "Insufficient credits"}}
        assert provider.parse_response(response(400, payload), "claude-3-haiku-20240307").is_quota_exceeded

    def test_credit_balance_message_is_quota(self, provider):
        payload = {"type": "error", "error": {
            "type": "invalid_request_error",
            "message": "Your credit balance is too low to access the Anthropic API.",
        }}
        assert provider.parse_response(response(400, payload), "claude-3-haiku-20240307").is_quota_exceeded

    def test_overloaded_is_not_quota(self, provider):
        payload = {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}
        result = provider.parse_response(response(529, payload), "claude-3-haiku-20240307")
        assert result.error_kind == ProviderErrorKind.PROVIDER_ERROR

    def test_rate_limit_error_is_not_quota(self, provider):
        payload = {"type": "error", "error": {"type": "rate_limit_error", "message": "quota of requests per minute"}}
        assert not provider.parse_response(response(429, payload), "claude-3-haiku-20240307").is_quota_exceeded

    def test_key_format(self, provider):
        assert provider.validate_key_format(CLAUDE_KEY)
        assert not provider.validate_key_format(OPENAI_KEY)


class TestProviderRegistry:

    @pytest.fixture
    def local_registry(self):
        registry = ProviderRegistry()
        registry.register("openai", OpenAIProvider, aliases=["gpt"])
        registry.register("claude", ClaudeProvider, aliases=["anthropic"])
        return registry

    def test_aliases_resolve(self, local_registry):
        assert local_registry.resolve_name("Anthropic") == "claude"
        assert local_registry.get_provider_class("gpt") is OpenAIProvider
        assert local_registry.resolve_name("mistral") is None

    def test_create(self, local_registry):
        provider = local_registry.create("anthropic", timeout=3.0)
        assert isinstance(provider, ClaudeProvider)
        assert provider.timeout == 3.0

        with pytest.raises(KeyError):
            local_registry.create("mistral")

    def test_register_rejects_non_provider(self, local_registry):
        with pytest.raises(ValueError):
            local_registry.register("bogus", dict)

    def test_provider_info(self, local_registry):
        info = local_registry.get_provider_info("claude")
        assert info["default_model"] == "claude-3-haiku-20240307"
        assert info["aliases"] == ["anthropic"]

    def test_unregister(self, local_registry):
        assert local_registry.unregister("gpt")
        assert not local_registry.is_provider_registered("openai")
        assert local_registry.list_providers() == ["claude"]

    def test_global_registry_has_both_adapters(self, registry):
        assert set(registry.list_providers()) >= {"openai", "claude"}
