"""
Custom exceptions for the explainer gateway HTTP layer.
"""

from typing import Optional, Dict, Any
from fastapi import HTTPException, status


class APIError(HTTPException):
    """Base API error class."""

    def __init__(
        self,
        status_code: int,
        detail: Any,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class InvalidProviderError(APIError):
    """Raised when an unknown provider key is requested."""

    def __init__(self, provider: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown provider: {provider}"
        )


class InvalidCredentialError(APIError):
    """Raised when a submitted API key does not match the provider's key format."""

    def __init__(self, provider: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid API key format for {provider}"
        )


class ServiceUnavailableError(APIError):
    """Raised when a required service is unavailable."""

    def __init__(self, service_name: str):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{service_name} service is unavailable"
        )


class AuthenticationError(APIError):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=message,
            headers={"WWW-Authenticate": "Bearer"}
        )
