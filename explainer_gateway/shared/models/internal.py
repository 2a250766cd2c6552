"""
Internal domain models.
"""

from enum import Enum
from typing import Optional, Union
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field


class ProviderErrorKind(str, Enum):
    """Failure classes a provider call can end in."""
    TRANSPORT = "transport"
    PROVIDER_ERROR = "provider_error"
    MALFORMED = "malformed"
    QUOTA_EXCEEDED = "quota_exceeded"


class AuthenticatedIdentity(BaseModel):
    """A logged-in user, keyed by user id."""
    model_config = ConfigDict(frozen=True)

    id: str

    @property
    def authenticated(self) -> bool:
        return True

    def rate_limit_key(self) -> str:
        return f"user:{self.id}"


class AnonymousIdentity(BaseModel):
    """An anonymous visitor, keyed by client IP."""
    model_config = ConfigDict(frozen=True)

    ip: str

    @property
    def authenticated(self) -> bool:
        return False

    def rate_limit_key(self) -> str:
        return f"ip:{self.ip}"


UserIdentity = Union[AuthenticatedIdentity, AnonymousIdentity]


class SelectionContext(BaseModel):
    """Text surrounding the selection on the page."""
    before: Optional[str] = None
    after: Optional[str] = None


class RejectionReason(str, Enum):
    """Reason codes for rejected selections."""
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    WORD_COUNT = "word_count"
    DANGEROUS_PATTERN = "dangerous_pattern"
    SUSPICIOUS_CONTENT = "suspicious_content"
    BLOCKED_WORD = "blocked_word"


class SanitizedText(BaseModel):
    """Selection text that passed every sanitizer check."""
    model_config = ConfigDict(frozen=True)

    text: str
    word_count: int


class Rejection(BaseModel):
    """A sanitizer rejection. Always recoverable by the user."""
    model_config = ConfigDict(frozen=True)

    reason: RejectionReason
    message: str
    matched_term: Optional[str] = None


class ProviderResult(BaseModel):
    """Parsed outcome of a single provider call."""
    success: bool
    explanation: Optional[str] = None
    tokens_used: int = 0
    cost: float = 0.0
    error: Optional[str] = None
    detail: Optional[str] = None
    error_kind: Optional[ProviderErrorKind] = None
    status_code: Optional[int] = None

    @property
    def is_quota_exceeded(self) -> bool:
        return self.error_kind == ProviderErrorKind.QUOTA_EXCEEDED


class CacheEntry(BaseModel):
    """Cached explanation for a normalized selection."""
    key: str
    explanation: str
    provider: str
    model: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class CircuitState(BaseModel):
    """Global auto-disable state."""
    disabled: bool = False
    reason: Optional[str] = None
    provider: Optional[str] = None
    disabled_at: Optional[str] = None


class RateLimitWindow(str, Enum):
    """Fixed counting windows, in evaluation order."""
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"

    @property
    def seconds(self) -> int:
        return {"minute": 60, "hour": 3600, "day": 86400}[self.value]


class RateLimitDecision(BaseModel):
    """Outcome of a rate limit check."""
    allowed: bool
    window: Optional[RateLimitWindow] = None


class ExplainStatus(str, Enum):
    """Outcome classes for an explain call."""
    OK = "ok"
    DISABLED = "disabled"
    INVALID_REQUEST = "invalid_request"
    REJECTED = "rejected"
    RATE_LIMITED = "rate_limited"
    NOT_CONFIGURED = "not_configured"
    FAILED = "failed"


class ExplainResult(BaseModel):
    """What the gateway hands back to the HTTP layer."""
    success: bool
    status: ExplainStatus
    explanation: Optional[str] = None
    cached: Optional[bool] = None
    tokens_used: Optional[int] = None
    cost: Optional[float] = None
    provider: Optional[str] = None
    error_message: Optional[str] = None
    reason: Optional[RejectionReason] = None
    matched_term: Optional[str] = None
