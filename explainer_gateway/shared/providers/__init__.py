"""
AI explanation provider implementations.
"""

from .base import BaseProvider, GENERIC_FAILURE_MESSAGE
from .enums import Provider
from ..models.internal import ProviderErrorKind
from .registry import ProviderRegistry, provider_registry, get_provider_registry

# Import all provider implementations
from .openai import OpenAIProvider
from .anthropic import ClaudeProvider

__all__ = [
    "BaseProvider",
    "GENERIC_FAILURE_MESSAGE",
    "Provider",
    "ProviderErrorKind",
    "ProviderRegistry",
    "provider_registry",
    "get_provider_registry",
    "OpenAIProvider",
    "ClaudeProvider",
]
