"""
Provider Registry - maps provider keys to adapter classes.
"""

from typing import Any, Dict, List, Optional, Type

from loguru import logger

from .base import BaseProvider


class ProviderRegistry:
    """
    Registry of provider adapter classes.

    Adapters register themselves on import. Lookups are case-insensitive and
    accept aliases (e.g. "anthropic" for "claude").
    """

    def __init__(self):
        self._providers: Dict[str, Type[BaseProvider]] = {}
        self._aliases: Dict[str, str] = {}
        logger.debug("ProviderRegistry initialized")

    def register(self, name: str, provider_class: Type[BaseProvider], aliases: Optional[List[str]] = None) -> None:
        """
        Register a provider adapter.

        Args:
            name: Primary key for the provider (e.g., "openai")
            provider_class: Class implementing BaseProvider
            aliases: Optional alternative keys

        Raises:
            ValueError: If provider_class is not a BaseProvider subclass
        """
        if not isinstance(provider_class, type) or not issubclass(provider_class, BaseProvider):
            raise ValueError(f"Provider class {provider_class!r} must inherit from BaseProvider")

        name_lower = name.lower()
        if name_lower in self._providers:
            logger.warning(f"Provider '{name}' already registered, overwriting with {provider_class.__name__}")

        self._providers[name_lower] = provider_class
        logger.debug(f"Registered provider: {name} -> {provider_class.__name__}")

        for alias in aliases or []:
            self._aliases[alias.lower()] = name_lower

    def resolve_name(self, name: Optional[str]) -> Optional[str]:
        """Map a key or alias to its primary key."""
        if not name:
            return None
        name_lower = name.lower()
        if name_lower in self._providers:
            return name_lower
        return self._aliases.get(name_lower)

    def get_provider_class(self, name: Optional[str]) -> Optional[Type[BaseProvider]]:
        """
        Get provider class by key or alias.

        Returns:
            Provider class if found, None otherwise
        """
        primary = self.resolve_name(name)
        return self._providers.get(primary) if primary else None

    def create(self, name: str, **options: Any) -> BaseProvider:
        """
        Instantiate the adapter registered under ``name``.

        Args:
            name: Provider key or alias
            **options: Static request options (max_tokens, temperature, timeout, user_agent)

        Raises:
            KeyError: If no adapter is registered under ``name``
        """
        provider_class = self.get_provider_class(name)
        if provider_class is None:
            raise KeyError(f"Unknown provider: {name}")
        return provider_class(**options)

    def is_provider_registered(self, name: Optional[str]) -> bool:
        return self.get_provider_class(name) is not None

    def list_providers(self) -> List[str]:
        """List all registered primary provider keys."""
        return list(self._providers.keys())

    def matches_any_key_format(self, api_key: Optional[str]) -> bool:
        """True when ``api_key`` looks like a key for at least one registered provider."""
        return any(cls().validate_key_format(api_key) for cls in self._providers.values())

    def get_provider_info(self, name: str) -> Optional[Dict[str, Any]]:
        """
        Describe a provider for listing endpoints.

        Returns:
            Dictionary with key, display name, models and default model, or None
        """
        primary = self.resolve_name(name)
        if primary is None:
            return None

        provider_class = self._providers[primary]
        return {
            "key": primary,
            "name": provider_class.NAME,
            "class_name": provider_class.__name__,
            "models": dict(provider_class.MODELS),
            "default_model": provider_class.DEFAULT_MODEL,
            "aliases": [alias for alias, target in self._aliases.items() if target == primary],
        }

    def unregister(self, name: str) -> bool:
        primary = self.resolve_name(name)
        if primary is None:
            return False

        del self._providers[primary]
        for alias in [alias for alias, target in self._aliases.items() if target == primary]:
            del self._aliases[alias]

        logger.info(f"Unregistered provider: {name}")
        return True


# Global registry instance
provider_registry = ProviderRegistry()


def get_provider_registry() -> ProviderRegistry:
    """
    Get the global provider registry instance.

    Returns:
        Global ProviderRegistry instance
    """
    return provider_registry
