"""
OpenAI provider implementation.
"""

import re
from typing import Any, Dict, Optional

from .base import BaseProvider, SYSTEM_PROMPT
from .enums import Provider


# Structured error identifiers OpenAI uses for billing refusals
QUOTA_ERROR_CODES = {
    "insufficient_quota",
    "billing_hard_limit_reached",
    "billing_not_active",
    "access_terminated",
}


class OpenAIProvider(BaseProvider):
    """OpenAI chat completions provider."""

    NAME = "OpenAI"
    PROVIDER = Provider.OPENAI
    API_ENDPOINT = "https://api.openai.com/v1/chat/completions"

    MODELS = {
        "gpt-3.5-turbo": "GPT-3.5 Turbo (Fast, Cost-effective)",
        "gpt-4": "GPT-4 (High Quality)",
        "gpt-4-turbo": "GPT-4 Turbo (Balanced)",
        "gpt-4o": "GPT-4o (Latest, Most Capable)",
        "gpt-4o-mini": "GPT-4o Mini (Fast, Efficient)",
    }
    DEFAULT_MODEL = "gpt-3.5-turbo"

    # USD per token
    PRICING = {
        "gpt-3.5-turbo": 0.0015 / 1000,
        "gpt-4": 0.03 / 1000,
        "gpt-4-turbo": 0.01 / 1000,
        "gpt-4o": 0.005 / 1000,
        "gpt-4o-mini": 0.00015 / 1000,
    }

    KEY_PREFIX = "sk-"
    KEY_PATTERN = re.compile(r"^sk-[a-zA-Z0-9_-]+$")

    def build_headers(self, api_key: str) -> Dict[str, str]:
        headers = self.common_headers()
        headers["Authorization"] = f"Bearer {api_key}"
        return headers

    def build_body(self, prompt: str, model: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        options = options or {}
        return {
            "model": model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": options.get("max_tokens", self.max_tokens),
            "temperature": options.get("temperature", self.temperature),
            "top_p": 1.0,
            "frequency_penalty": 0,
            "presence_penalty": 0,
        }

    def extract_explanation(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]

    def extract_tokens(self, data: Dict[str, Any]) -> int:
        usage = data.get("usage") or {}
        return int(usage.get("total_tokens", 0))

    def is_quota_exceeded(self, status_code: int, data: Dict[str, Any]) -> bool:
        error = data.get("error") if isinstance(data, dict) else None
        if not isinstance(error, dict):
            return False

        error_type = str(error.get("type") or "").lower()
        error_code = str(error.get("code") or "").lower()
        if error_type in QUOTA_ERROR_CODES or error_code in QUOTA_ERROR_CODES:
            return True

        # 429 also covers ordinary rate limiting, hence the phrasing check
        if status_code in (402, 403, 429):
            return self.message_suggests_quota(error.get("message"))

        return False


# Self-register with the provider registry
from .registry import provider_registry
provider_registry.register(Provider.OPENAI.value, OpenAIProvider, aliases=["openai-api", "gpt"])
