"""
Base provider class for AI explanation providers.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Pattern

import httpx
from loguru import logger

from .enums import Provider
from ..models.internal import ProviderErrorKind, ProviderResult


GENERIC_FAILURE_MESSAGE = "Explanation temporarily unavailable. Please try again later."

SYSTEM_PROMPT = (
    "You are a helpful assistant that explains text in simple, clear terms. "
    "Keep explanations concise and accessible."
)

TEST_PROMPT = 'Say "API key is working" if you can read this.'

# Free-text hints that a provider is refusing for billing reasons
QUOTA_KEYWORDS = ("quota", "billing", "insufficient", "credit balance", "payment required")

# Transient throttling phrasing; never a billing signal
RATE_LIMIT_PHRASES = (
    "rate limit",
    "rate_limit",
    "too many requests",
    "requests per min",
    "tokens per min",
    "per minute",
    "slow down",
    "overloaded",
)


class BaseProvider(ABC):
    """
    Abstract base class for AI providers.

    Subclasses describe one vendor's wire contract: endpoint, headers, body,
    where the explanation and token counts live in the response, the pricing
    table, and how a billing/quota refusal looks. Instances carry only static
    request options, so one instance can serve any number of concurrent calls.
    """

    NAME: str = ""
    PROVIDER: Provider
    API_ENDPOINT: str = ""
    MODELS: Dict[str, str] = {}
    DEFAULT_MODEL: str = ""
    PRICING: Dict[str, float] = {}

    KEY_PREFIX: str = ""
    KEY_PATTERN: Pattern[str] = re.compile(r"^$")
    KEY_MIN_LENGTH: int = 20
    KEY_MAX_LENGTH: int = 200

    def __init__(
        self,
        max_tokens: int = 150,
        temperature: float = 0.7,
        timeout: float = 8.0,
        user_agent: str = "ExplainerGateway/1.0",
    ):
        """
        Initialize a provider with static request options.

        Args:
            max_tokens: Completion token cap sent with every request
            temperature: Sampling temperature sent with every request
            timeout: Outbound request timeout in seconds
            user_agent: User-Agent header sent upstream
        """
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.user_agent = user_agent

    @property
    def name(self) -> str:
        """Human readable provider name."""
        return self.NAME

    @property
    def key(self) -> str:
        """Registry key for this provider."""
        return self.PROVIDER.value

    @property
    def endpoint(self) -> str:
        return self.API_ENDPOINT

    # ==================== KEY FORMAT ====================

    def validate_key_format(self, api_key: Optional[str]) -> bool:
        """
        Check whether a string looks like an API key for this provider.

        Pure predicate: prefix, allowed characters and length range.
        """
        if not api_key or not isinstance(api_key, str):
            return False

        api_key = api_key.strip()
        if not api_key.startswith(self.KEY_PREFIX):
            return False

        if not self.KEY_MIN_LENGTH <= len(api_key) <= self.KEY_MAX_LENGTH:
            return False

        return bool(self.KEY_PATTERN.match(api_key))

    # ==================== REQUEST CONSTRUCTION ====================

    def common_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }

    @abstractmethod
    def build_headers(self, api_key: str) -> Dict[str, str]:
        pass

    @abstractmethod
    def build_body(self, prompt: str, model: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        pass

    def build_request(
        self,
        api_key: str,
        prompt: str,
        model: str,
        options: Optional[Dict[str, Any]] = None
    ) -> httpx.Request:
        """
        Build the outbound HTTP request.

        Args:
            api_key: Decrypted provider API key
            prompt: Fully built prompt text
            model: Provider model id
            options: Optional body overrides (max_tokens, temperature, ...)

        Returns:
            An httpx.Request carrying this provider's timeout
        """
        return httpx.Request(
            "POST",
            self.endpoint,
            headers=self.build_headers(api_key),
            content=json.dumps(self.build_body(prompt, model, options)).encode("utf-8"),
            extensions={"timeout": httpx.Timeout(self.timeout).as_dict()},
        )

    # ==================== RESPONSE PARSING ====================

    @abstractmethod
    def extract_explanation(self, data: Dict[str, Any]) -> str:
        """Pull the explanation text out of a 2xx body. May raise KeyError/IndexError/TypeError."""
        pass

    @abstractmethod
    def extract_tokens(self, data: Dict[str, Any]) -> int:
        pass

    @abstractmethod
    def is_quota_exceeded(self, status_code: int, data: Dict[str, Any]) -> bool:
        """
        Decide whether a failed response is a billing/quota refusal.

        This is the only signal that trips the circuit breaker, so
        implementations must err on the side of returning False.
        """
        pass

    def extract_error_message(self, data: Any) -> Optional[str]:
        """Get the provider's error text from an error body, if any."""
        if not isinstance(data, dict):
            return None
        error = data.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            return str(message) if message else None
        if isinstance(error, str):
            return error
        return None

    def quota_exceeded_message(self) -> str:
        return (
            f"API usage limit exceeded for {self.name}. The explainer has been automatically "
            f"disabled to prevent further charges. Please check your {self.name} account billing "
            "and usage limits, then manually re-enable it when ready."
        )

    def parse_response(
        self,
        response: Optional[httpx.Response],
        model: str,
        transport_error: Optional[str] = None
    ) -> ProviderResult:
        """
        Parse a provider response into a ProviderResult.

        Args:
            response: HTTP response, or None when the request never completed
            model: Model the request was made with, for cost calculation
            transport_error: Description of the transport failure when response is None

        Returns:
            ProviderResult. Failures carry a user-safe ``error`` and the
            provider's own text in ``detail``.
        """
        if response is None:
            return self._failure(
                ProviderErrorKind.TRANSPORT,
                detail=transport_error or "No response from provider",
            )

        status_code = response.status_code
        data = self._decode_body(response)

        if not 200 <= status_code < 300:
            payload = data if isinstance(data, dict) else {}
            provider_message = self.extract_error_message(payload)

            if self.is_quota_exceeded(status_code, payload):
                return ProviderResult(
                    success=False,
                    error=self.quota_exceeded_message(),
                    detail=provider_message or f"HTTP {status_code}",
                    error_kind=ProviderErrorKind.QUOTA_EXCEEDED,
                    status_code=status_code,
                )

            return self._failure(
                ProviderErrorKind.PROVIDER_ERROR,
                detail=f"HTTP {status_code}: {provider_message or self._snippet(response)}",
                status_code=status_code,
            )

        if not isinstance(data, dict):
            return self._failure(
                ProviderErrorKind.MALFORMED,
                detail=f"Invalid JSON body: {self._snippet(response)}",
                status_code=status_code,
            )

        if data.get("error"):
            return self._failure(
                ProviderErrorKind.PROVIDER_ERROR,
                detail=self.extract_error_message(data) or "Unknown API error",
                status_code=status_code,
            )

        try:
            explanation = self.extract_explanation(data)
            tokens_used = self.extract_tokens(data)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            return self._failure(
                ProviderErrorKind.MALFORMED,
                detail=f"No explanation received from API ({type(e).__name__}: {e})",
                status_code=status_code,
            )

        explanation = (explanation or "").strip() if isinstance(explanation, str) else ""
        if not explanation:
            return self._failure(
                ProviderErrorKind.MALFORMED,
                detail="Empty explanation received from API",
                status_code=status_code,
            )

        return ProviderResult(
            success=True,
            explanation=explanation,
            tokens_used=tokens_used,
            cost=self.estimate_cost(tokens_used, model),
            status_code=status_code,
        )

    # ==================== COST ====================

    def estimate_cost(self, tokens: int, model: str) -> float:
        """Estimate USD cost for a token count. Unknown models use the default model's rate."""
        rate = self.PRICING.get(model, self.PRICING.get(self.DEFAULT_MODEL, 0.0))
        return tokens * rate

    # ==================== TRANSPORT ====================

    async def send(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        prompt: str,
        model: str
    ) -> ProviderResult:
        """
        Send one explanation request. No retries; a timeout is a transport failure.
        """
        request = self.build_request(api_key, prompt, model)
        logger.debug(f"Using {self.name} - {model} endpoint to send explanation request")

        try:
            response = await client.send(request)
        except httpx.TimeoutException as e:
            return self.parse_response(None, model, transport_error=f"Timeout after {self.timeout}s: {e!r}")
        except httpx.HTTPError as e:
            return self.parse_response(None, model, transport_error=f"{type(e).__name__}: {e}")

        return self.parse_response(response, model)

    async def verify_api_key(self, client: httpx.AsyncClient, api_key: str) -> Dict[str, Any]:
        """
        Check an API key with a minimal live request.

        Returns:
            Dictionary with ``success`` and a user-facing ``message``
        """
        if not api_key:
            return {"success": False, "message": "API key is required."}

        if not self.validate_key_format(api_key):
            return {"success": False, "message": "Invalid API key format."}

        request = self.build_request(
            api_key,
            TEST_PROMPT,
            self.DEFAULT_MODEL,
            options={"max_tokens": 10, "temperature": 0},
        )

        try:
            response = await client.send(request)
        except httpx.HTTPError as e:
            logger.warning(f"{self.name} key verification transport failure: {e!r}")
            return {"success": False, "message": "Connection failed. Please check your internet connection."}

        if response.status_code == 401:
            return {"success": False, "message": f"Invalid API key. Please check your {self.name} API key."}

        if response.status_code == 429:
            return {"success": False, "message": "Rate limit exceeded. Please try again later."}

        if response.status_code != 200:
            return {"success": False, "message": f"API error (HTTP {response.status_code}). Please try again."}

        return {"success": True, "message": f"{self.name} API key is valid and working."}

    # ==================== HELPERS ====================

    @staticmethod
    def message_suggests_quota(message: Optional[str]) -> bool:
        """Keyword heuristic: billing wording present and no rate-limit wording."""
        if not message:
            return False
        lowered = message.lower()
        if any(phrase in lowered for phrase in RATE_LIMIT_PHRASES):
            return False
        return any(keyword in lowered for keyword in QUOTA_KEYWORDS)

    def _failure(
        self,
        kind: ProviderErrorKind,
        detail: str,
        status_code: Optional[int] = None
    ) -> ProviderResult:
        return ProviderResult(
            success=False,
            error=GENERIC_FAILURE_MESSAGE,
            detail=detail,
            error_kind=kind,
            status_code=status_code,
        )

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except (ValueError, UnicodeDecodeError):
            return None

    @staticmethod
    def _snippet(response: httpx.Response, max_length: int = 200) -> str:
        try:
            text = response.text
        except (UnicodeDecodeError, httpx.ResponseNotRead):
            return "<unreadable body>"
        return text[:max_length]

    def summary(self) -> str:
        """Get a summary string for this provider."""
        return f"{self.name} ({self.key}, {len(self.MODELS)} models)"
