"""
Core explainer gateway components.
"""

from .config import ExplainerSettings, Settings
from .exceptions import (
    APIError,
    AuthenticationError,
    InvalidCredentialError,
    InvalidProviderError,
    ServiceUnavailableError,
)

__all__ = [
    "ExplainerSettings",
    "Settings",
    "APIError",
    "AuthenticationError",
    "InvalidCredentialError",
    "InvalidProviderError",
    "ServiceUnavailableError",
]
