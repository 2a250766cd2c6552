"""
Request models for API endpoints.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from .internal import SelectionContext


# Context is truncated to this; the selection itself is bounded by the sanitizer
MAX_REQUEST_TEXT_LENGTH = 20000


class ExplainRequest(BaseModel):
    """Request model for explaining a text selection."""
    text: str = Field(..., description="Selected text to explain")
    context: Optional[SelectionContext] = Field(None, description="Text surrounding the selection")
    client_id: Optional[str] = Field(None, description="Client-generated request identifier")
    timestamp: Optional[float] = Field(None, description="Client time of the request, Unix seconds")

    @field_validator('context')
    @classmethod
    def limit_context(cls, v: Optional[SelectionContext]) -> Optional[SelectionContext]:
        if v is None:
            return v
        return SelectionContext(
            before=(v.before or "")[:MAX_REQUEST_TEXT_LENGTH] or None,
            after=(v.after or "")[:MAX_REQUEST_TEXT_LENGTH] or None,
        )


class CredentialUpdateRequest(BaseModel):
    """Request model for storing a provider API key."""
    api_key: str = Field(..., min_length=1, max_length=500, description="Plaintext provider API key")

    @field_validator('api_key')
    @classmethod
    def strip_api_key(cls, v: str) -> str:
        return v.strip()


class CredentialTestRequest(BaseModel):
    """Request model for testing a provider API key. Omit the key to test the stored one."""
    api_key: Optional[str] = Field(None, max_length=500)
