"""
Explanation gateway - the single entry point from untrusted input to a paid
AI provider call.
"""

import asyncio
import time
from typing import Optional

import httpx
from loguru import logger

from ..breaker.circuit_breaker import CircuitBreaker, DISABLED_MESSAGE
from ..cache.cache_service import ExplanationCache
from ..prompt.prompt_builder import PromptBuilder
from ..rate_limit.rate_limiter import RateLimiter, RATE_LIMITED_MESSAGE
from ..sanitizer.content_sanitizer import ContentSanitizer
from ..security.request_guard import RequestGuard, RequestMetadata
from ..vault.credential_vault import CredentialVault
from ...core.config import ExplainerSettings, Settings
from ...middleware.monitoring import record_explain_result, record_llm_request
from ...models.internal import (
    ExplainResult,
    ExplainStatus,
    Rejection,
    SanitizedText,
    SelectionContext,
    UserIdentity,
)
from ...providers import BaseProvider, GENERIC_FAILURE_MESSAGE, ProviderRegistry
from ...utils.security import sanitize_prompt_for_logging


INVALID_REQUEST_MESSAGE = "Invalid request."
NOT_CONFIGURED_MESSAGE = "AI explanations are not configured. Please contact the site administrator."


class ExplanationGateway:
    """
    Runs an explain request through, in order: circuit breaker, request
    security checks, sanitizer, rate limiter, cache, provider.

    Every outcome is an ExplainResult; only predefined messages are returned
    to the caller and provider detail goes to the log.
    """

    def __init__(
        self,
        settings: ExplainerSettings,
        provider: BaseProvider,
        breaker: CircuitBreaker,
        guard: RequestGuard,
        sanitizer: ContentSanitizer,
        rate_limiter: RateLimiter,
        cache: ExplanationCache,
        vault: CredentialVault,
        prompt_builder: PromptBuilder,
        http_client: httpx.AsyncClient
    ):
        self.settings = settings
        self.provider = provider
        self.breaker = breaker
        self.guard = guard
        self.sanitizer = sanitizer
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.vault = vault
        self.prompt_builder = prompt_builder
        self.http_client = http_client

    @classmethod
    def build(
        cls,
        settings: ExplainerSettings,
        app_settings: Settings,
        store,
        http_client: httpx.AsyncClient,
        registry: ProviderRegistry
    ) -> "ExplanationGateway":
        """
        Wire a gateway from settings and shared connections.

        Args:
            settings: Validated explanation behaviour
            app_settings: Process settings (secrets, timeouts, request security)
            store: Shared key-value store
            http_client: Shared outbound HTTP client
            registry: Provider registry
        """
        provider = registry.create(
            settings.provider,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            timeout=app_settings.provider_timeout,
            user_agent=app_settings.provider_user_agent,
        )
        vault = CredentialVault(
            app_settings.credential_secret,
            registry,
            store=store,
            fallback_keys={
                "openai": app_settings.openai_api_key,
                "claude": app_settings.claude_api_key,
            },
        )
        return cls(
            settings=settings,
            provider=provider,
            breaker=CircuitBreaker(store),
            guard=RequestGuard.from_settings(app_settings),
            sanitizer=ContentSanitizer.from_settings(settings),
            rate_limiter=RateLimiter.from_settings(store, settings),
            cache=ExplanationCache.from_settings(store, settings),
            vault=vault,
            prompt_builder=PromptBuilder.from_settings(settings),
            http_client=http_client,
        )

    @property
    def model(self) -> str:
        return self.settings.model or self.provider.DEFAULT_MODEL

    async def explain(
        self,
        text: Optional[str],
        context: Optional[SelectionContext],
        identity: UserIdentity,
        request_meta: RequestMetadata
    ) -> ExplainResult:
        """
        Explain a text selection.

        Args:
            text: Raw selection as submitted
            context: Optional text around the selection
            identity: Rate-limit identity of the caller
            request_meta: Transport facts for the security checks

        Returns:
            ExplainResult; ``status`` says which stage decided the outcome
        """
        result = await self._explain(text, context, identity, request_meta)
        record_explain_result(result.status.value)
        return result

    async def _explain(
        self,
        text: Optional[str],
        context: Optional[SelectionContext],
        identity: UserIdentity,
        request_meta: RequestMetadata
    ) -> ExplainResult:
        if await self.breaker.is_disabled():
            return self._failure(ExplainStatus.DISABLED, DISABLED_MESSAGE)

        if not self.guard.check(request_meta):
            return self._failure(ExplainStatus.INVALID_REQUEST, INVALID_REQUEST_MESSAGE)

        sanitized = self.sanitizer.sanitize(text)
        if isinstance(sanitized, Rejection):
            logger.info(f"Selection rejected ({sanitized.reason.value}): {sanitize_prompt_for_logging(text or '')}")
            return ExplainResult(
                success=False,
                status=ExplainStatus.REJECTED,
                error_message=sanitized.message,
                reason=sanitized.reason,
                matched_term=sanitized.matched_term,
            )

        decision = await self.rate_limiter.check_and_increment(identity)
        if not decision.allowed:
            return self._failure(ExplainStatus.RATE_LIMITED, RATE_LIMITED_MESSAGE)

        cached = await self.cache.get(sanitized.text)
        if cached is not None:
            return ExplainResult(
                success=True,
                status=ExplainStatus.OK,
                explanation=cached.explanation,
                cached=True,
                tokens_used=0,
                cost=0.0,
                provider=cached.provider,
            )

        api_key = await self.vault.load_credential(self.provider.key)
        if not api_key:
            logger.error(f"No usable API key configured for {self.provider.name}")
            return self._failure(ExplainStatus.NOT_CONFIGURED, NOT_CONFIGURED_MESSAGE)

        # Completes even if the caller is cancelled
        return await asyncio.shield(self._dispatch(sanitized, context, api_key))

    async def _dispatch(
        self,
        sanitized: SanitizedText,
        context: Optional[SelectionContext],
        api_key: str
    ) -> ExplainResult:
        prompt = self.prompt_builder.build(sanitized.text, context)
        model = self.model

        start_time = time.time()
        result = await self.provider.send(self.http_client, api_key, prompt, model)
        duration = time.time() - start_time
        record_llm_request(self.provider.key, model, duration, result.success, result.tokens_used)

        if result.is_quota_exceeded:
            await self.breaker.trip(result.detail or result.error or "Quota exceeded", self.provider.key)
            return self._failure(ExplainStatus.DISABLED, DISABLED_MESSAGE)

        if not result.success:
            logger.error(
                f"{self.provider.name} request failed ({result.error_kind.value if result.error_kind else 'unknown'}): "
                f"{result.detail}"
            )
            return self._failure(ExplainStatus.FAILED, GENERIC_FAILURE_MESSAGE)

        await self.cache.put(sanitized.text, result.explanation, self.provider.key, model)
        logger.info(
            f"Explained selection via {self.provider.name} {model}: "
            f"{result.tokens_used} tokens, ${result.cost:.6f}"
        )

        return ExplainResult(
            success=True,
            status=ExplainStatus.OK,
            explanation=result.explanation,
            cached=False,
            tokens_used=result.tokens_used,
            cost=result.cost,
            provider=self.provider.key,
        )

    @staticmethod
    def _failure(status: ExplainStatus, message: str) -> ExplainResult:
        return ExplainResult(success=False, status=status, error_message=message)
