"""
Data models for the explainer gateway.
"""

from .requests import (
    ExplainRequest,
    CredentialUpdateRequest,
    CredentialTestRequest,
)

from .responses import (
    ExplainResponse,
    ProviderInfo,
    ProvidersResponse,
    HealthResponse,
    AdminStatusResponse,
    AdminActionResponse,
    ErrorResponse,
)

from .internal import (
    AnonymousIdentity,
    AuthenticatedIdentity,
    CacheEntry,
    CircuitState,
    ExplainResult,
    ExplainStatus,
    ProviderErrorKind,
    ProviderResult,
    RateLimitDecision,
    RateLimitWindow,
    Rejection,
    RejectionReason,
    SanitizedText,
    SelectionContext,
    UserIdentity,
)

__all__ = [
    # Request models
    "ExplainRequest",
    "CredentialUpdateRequest",
    "CredentialTestRequest",

    # Response models
    "ExplainResponse",
    "ProviderInfo",
    "ProvidersResponse",
    "HealthResponse",
    "AdminStatusResponse",
    "AdminActionResponse",
    "ErrorResponse",

    # Internal models
    "AnonymousIdentity",
    "AuthenticatedIdentity",
    "CacheEntry",
    "CircuitState",
    "ExplainResult",
    "ExplainStatus",
    "ProviderErrorKind",
    "ProviderResult",
    "RateLimitDecision",
    "RateLimitWindow",
    "Rejection",
    "RejectionReason",
    "SanitizedText",
    "SelectionContext",
    "UserIdentity",
]
