"""
Response models for API endpoints.
"""

from typing import Dict, List, Optional, Any
from pydantic import BaseModel, Field

from .internal import CircuitState, ExplainStatus, RejectionReason


class ExplainResponse(BaseModel):
    """Response for an explain request."""
    success: bool
    status: ExplainStatus
    explanation: Optional[str] = None
    cached: Optional[bool] = None
    tokens_used: Optional[int] = None
    cost: Optional[float] = None
    provider: Optional[str] = None
    error_message: Optional[str] = None
    reason: Optional[RejectionReason] = Field(None, description="Rejection reason code for rejected selections")
    matched_term: Optional[str] = Field(None, description="Blocked term that caused a rejection")


class ProviderInfo(BaseModel):
    """Information about one registered provider."""
    key: str
    name: str
    models: Dict[str, str]
    default_model: str
    aliases: List[str] = Field(default_factory=list)


class ProvidersResponse(BaseModel):
    """Response with available providers."""
    model_config = {"protected_namespaces": ()}

    providers: Dict[str, ProviderInfo] = Field(..., description="Provider key to provider info")
    active_provider: Optional[str] = None
    active_model: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    uptime: float = Field(..., description="Uptime in seconds")
    checks: Dict[str, bool] = Field(default_factory=dict, description="Per-dependency health")
    explanations_enabled: Optional[bool] = None


class AdminStatusResponse(BaseModel):
    """Administrative view of the gateway."""
    model_config = {"protected_namespaces": ()}

    enabled: bool
    circuit: CircuitState
    provider: str
    model: str
    credential_configured: bool
    masked_key: Optional[str] = None
    cache: Dict[str, Any] = Field(default_factory=dict)


class AdminActionResponse(BaseModel):
    """Result of an administrative action."""
    success: bool
    message: str
    detail: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str
    detail: Optional[str] = None
