"""
Anthropic Claude provider implementation.
"""

import re
from typing import Any, Dict, Optional

from .base import BaseProvider, SYSTEM_PROMPT
from .enums import Provider


ANTHROPIC_VERSION = "2023-06-01"

# Error types Claude uses for transient refusals; never billing
TRANSIENT_ERROR_TYPES = {"rate_limit_error", "overloaded_error"}


class ClaudeProvider(BaseProvider):
    """Anthropic Claude messages provider."""

    NAME = "Claude"
    PROVIDER = Provider.CLAUDE
    API_ENDPOINT = "https://api.anthropic.com/v1/messages"

    MODELS = {
        "claude-3-haiku-20240307": "Claude 3 Haiku (Fast, Cost-effective)",
        "claude-3-sonnet-20240229": "Claude 3 Sonnet (Balanced)",
        "claude-3-opus-20240229": "Claude 3 Opus (Most Capable)",
        "claude-3-5-sonnet-20240620": "Claude 3.5 Sonnet (Latest)",
    }
    DEFAULT_MODEL = "claude-3-haiku-20240307"

    # USD per token
    PRICING = {
        "claude-3-haiku-20240307": 1.25 / 1_000_000,
        "claude-3-sonnet-20240229": 15 / 1_000_000,
        "claude-3-opus-20240229": 75 / 1_000_000,
        "claude-3-5-sonnet-20240620": 15 / 1_000_000,
    }

    KEY_PREFIX = "sk-ant-"
    KEY_PATTERN = re.compile(r"^sk-ant-[a-zA-Z0-9_-]+$")

    def build_headers(self, api_key: str) -> Dict[str, str]:
        headers = self.common_headers()
        headers["x-api-key"] = api_key
        headers["anthropic-version"] = ANTHROPIC_VERSION
        return headers

    def build_body(self, prompt: str, model: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        options = options or {}
        return {
            "model": model,
            "max_tokens": options.get("max_tokens", self.max_tokens),
            "temperature": options.get("temperature", self.temperature),
            "system": SYSTEM_PROMPT,
            "messages": [
                {"role": "user", "content": prompt},
            ],
        }

    def extract_explanation(self, data: Dict[str, Any]) -> str:
        return data["content"][0]["text"]

    def extract_tokens(self, data: Dict[str, Any]) -> int:
        """Claude reports input and output separately; billing counts both."""
        usage = data.get("usage") or {}
        return int(usage.get("input_tokens", 0)) + int(usage.get("output_tokens", 0))

    def is_quota_exceeded(self, status_code: int, data: Dict[str, Any]) -> bool:
        error = data.get("error") if isinstance(data, dict) else None
        if not isinstance(error, dict):
            return False

        error_type = str(error.get("type") or "").lower()
        if error_type in TRANSIENT_ERROR_TYPES:
            return False

        if error_type == "billing_error":
            return True

        if status_code in (400, 402, 403):
            return self.message_suggests_quota(error.get("message"))

        return False


# Self-register with the provider registry
from .registry import provider_registry
provider_registry.register(Provider.CLAUDE.value, ClaudeProvider, aliases=["anthropic"])
