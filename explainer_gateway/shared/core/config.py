"""
Configuration management for the explainer gateway.

Two layers:
- ``Settings``: process settings loaded from the environment (EXPLAINER_*).
- ``ExplainerSettings``: explanation behaviour (limits, provider, prompt),
  loaded from YAML at startup and validated once.
"""

import re
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings
from loguru import logger

from ..utils.security import validate_origin


DEFAULT_PROMPT_TEMPLATE = (
    "Please provide a clear, concise explanation of the following text in 1-2 sentences: {{snippet}}"
)
SNIPPET_PLACEHOLDER = "{{snippet}}"
MAX_PROMPT_TEMPLATE_LENGTH = 500

# Placeholder secrets refused in production
DEFAULT_SECRET = "change-me-in-production"

MAX_BLOCKED_WORDS = 500
MAX_BLOCKED_WORD_LENGTH = 100
BLOCKED_WORD_DISALLOWED = re.compile(r"[^a-zA-Z0-9\s\-_.,!?'\"]")

LANGUAGE_DIRECTIVES = {
    "en_US": "Please respond in American English.",
    "en_GB": "Please respond in British English.",
    "es_ES": "Por favor responde en español.",
    "de_DE": "Bitte antworten Sie auf Deutsch.",
    "fr_FR": "Veuillez répondre en français.",
    "hi_IN": "कृपया हिंदी में उत्तर दें।",
    "zh_CN": "请用中文回答。",
}


class Settings(BaseSettings):
    """
    Application settings with environment variable support.
    Uses pydantic-settings for automatic env var loading and validation.
    """

    # Application
    app_name: str = "Explainer Gateway"
    environment: str = "production"
    debug: bool = False
    version: str = "1.0.0"

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Shared state store
    store_backend: str = "redis"  # redis or memory
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 100
    redis_socket_keepalive: bool = True
    redis_health_check_interval: int = 30

    # Explanation behaviour file (YAML); missing file means defaults
    explainer_config_file: str = "explainer.yaml"

    # API settings
    api_prefix: str = "/api"

    # Logging settings
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = "json"  # json or text

    # CORS settings
    cors_origins: str = "*"  # Comma-separated list
    cors_allow_credentials: bool = False
    cors_max_age: int = 600

    # JWT Authentication settings
    jwt_secret: str = DEFAULT_SECRET
    jwt_algorithm: str = "HS256"

    # Admin surface
    admin_token: Optional[str] = None

    # Credential encryption
    credential_secret: str = DEFAULT_SECRET
    openai_api_key: Optional[str] = None
    claude_api_key: Optional[str] = None

    # Outbound provider calls
    provider_timeout: float = 8.0
    provider_user_agent: str = "ExplainerGateway/1.0"
    http_max_connections: int = 100
    http_keepalive_connections: int = 20
    enable_http2: bool = True

    # Request security
    allowed_origins: str = ""  # Comma-separated; empty allows any origin
    trust_proxy_headers: bool = False
    request_max_skew_seconds: int = 300
    max_proxy_headers: int = 2

    # Monitoring
    enable_metrics: bool = True

    class Config:
        """Pydantic config."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_prefix = "EXPLAINER_"
        extra = "ignore"

    def get_cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def get_allowed_origins(self) -> list[str]:
        """
        Origins the explain endpoint accepts. An empty list accepts any origin.

        Raises:
            SecurityValidationError: If an entry is not a valid URL
        """
        return [validate_origin(origin) for origin in self.allowed_origins.split(",") if origin.strip()]

    def uses_memory_store(self) -> bool:
        return self.store_backend.lower() == "memory"

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    def check_production_secrets(self) -> None:
        """
        Refuse placeholder secrets when running in production.

        Raises:
            ValueError: If a secret is unset or still the placeholder
        """
        if not self.is_production():
            return
        weak = [
            name for name in ("jwt_secret", "credential_secret")
            if not getattr(self, name) or getattr(self, name) == DEFAULT_SECRET
        ]
        if weak:
            names = ", ".join(f"EXPLAINER_{name.upper()}" for name in weak)
            raise ValueError(f"Placeholder secrets in production: {names}")

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary (excluding sensitive data)."""
        data = self.model_dump()
        sensitive_fields = {
            "jwt_secret",
            "redis_url",
            "admin_token",
            "credential_secret",
            "openai_api_key",
            "claude_api_key",
        }
        for field in sensitive_fields:
            if data.get(field):
                data[field] = "***hidden***"
        return data


def sanitize_blocked_words(raw: Union[str, List[str], None]) -> List[str]:
    """
    Normalize a blocked-word list.

    Accepts a newline separated string or a list. Disallowed characters are
    removed, empty and over-long terms dropped, duplicates removed, and the
    list capped at MAX_BLOCKED_WORDS.
    """
    if not raw:
        return []

    terms = raw.splitlines() if isinstance(raw, str) else [str(term) for term in raw]

    cleaned: List[str] = []
    seen = set()
    for term in terms:
        term = BLOCKED_WORD_DISALLOWED.sub("", term).strip()
        if not term or len(term) > MAX_BLOCKED_WORD_LENGTH:
            continue
        if term in seen:
            continue
        seen.add(term)
        cleaned.append(term)
        if len(cleaned) >= MAX_BLOCKED_WORDS:
            break

    return cleaned


class ExplainerSettings(BaseModel):
    """
    Validated explanation behaviour.

    Numeric settings outside their range fail validation at load time. A bad
    prompt template falls back to the default instead of failing.
    """

    # Selection bounds
    min_selection_length: int = Field(default=3, ge=1, le=50)
    max_selection_length: int = Field(default=200, ge=50, le=1000)
    min_words: int = Field(default=1, ge=1, le=10)
    max_words: int = Field(default=30, ge=5, le=100)

    # Cache
    cache_enabled: bool = True
    cache_duration_hours: int = Field(default=24, ge=1, le=168)

    # Rate limits
    rate_limit_enabled: bool = True
    rate_limit_per_minute_authenticated: int = Field(default=20, ge=1, le=100)
    rate_limit_per_minute_anonymous: int = Field(default=10, ge=1, le=50)
    rate_limit_per_hour_authenticated: int = Field(default=100, ge=1, le=10000)
    rate_limit_per_hour_anonymous: int = Field(default=50, ge=1, le=5000)
    rate_limit_per_day_authenticated: int = Field(default=500, ge=1, le=100000)
    rate_limit_per_day_anonymous: int = Field(default=200, ge=1, le=50000)

    # Provider
    provider: str = "openai"
    model: Optional[str] = None
    max_tokens: int = Field(default=150, ge=1, le=4096)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    # Prompt
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE
    language: Optional[str] = None
    language_directive: Optional[str] = None
    context_max_chars: int = Field(default=200, ge=0, le=2000)

    # Blocked words
    blocked_words: List[str] = Field(default_factory=list)
    blocked_words_case_sensitive: bool = False
    blocked_words_whole_word_only: bool = False

    @field_validator("prompt_template", mode="before")
    @classmethod
    def validate_prompt_template(cls, value: Any) -> str:
        if not isinstance(value, str):
            return DEFAULT_PROMPT_TEMPLATE
        value = value.strip()
        if SNIPPET_PLACEHOLDER not in value or len(value) > MAX_PROMPT_TEMPLATE_LENGTH:
            logger.warning("Invalid prompt template, falling back to default")
            return DEFAULT_PROMPT_TEMPLATE
        return value

    @field_validator("blocked_words", mode="before")
    @classmethod
    def validate_blocked_words(cls, value: Any) -> List[str]:
        return sanitize_blocked_words(value)

    @field_validator("language")
    @classmethod
    def validate_language(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in LANGUAGE_DIRECTIVES:
            raise ValueError(f"Unsupported language: {value}")
        return value

    @model_validator(mode="after")
    def validate_provider_and_bounds(self) -> "ExplainerSettings":
        # Imported here; the providers package imports the models package
        from ..providers import provider_registry

        provider_class = provider_registry.get_provider_class(self.provider)
        if provider_class is None:
            raise ValueError(f"Unknown provider: {self.provider}")
        self.provider = provider_registry.resolve_name(self.provider)

        if self.model is None:
            self.model = provider_class.DEFAULT_MODEL
        elif self.model not in provider_class.MODELS:
            raise ValueError(f"Model {self.model} is not supported by {self.provider}")

        if self.min_selection_length > self.max_selection_length:
            raise ValueError("min_selection_length must not exceed max_selection_length")
        if self.min_words > self.max_words:
            raise ValueError("min_words must not exceed max_words")

        if self.language and not self.language_directive:
            self.language_directive = LANGUAGE_DIRECTIVES[self.language]

        return self

    @property
    def cache_ttl_seconds(self) -> int:
        return self.cache_duration_hours * 3600
