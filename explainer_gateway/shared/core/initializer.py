"""
Explainer Initializer - loads explanation settings and wires the gateway.
"""

import os
from typing import Optional

import aiofiles
import yaml
from loguru import logger
from pydantic import ValidationError

from .config import ExplainerSettings, Settings
from .connection_manager import ConnectionManager
from ..providers import ProviderRegistry, get_provider_registry
from ..services.gateway import ExplanationGateway


class Initializer:
    """
    Loads ExplainerSettings from YAML and builds the ExplanationGateway on
    top of the shared connections.
    """

    def __init__(
        self,
        settings: Settings,
        connection_manager: ConnectionManager,
        registry: Optional[ProviderRegistry] = None,
        explainer_settings: Optional[ExplainerSettings] = None
    ):
        """
        Args:
            settings: Application settings
            connection_manager: Initialized connection manager
            registry: Provider registry (defaults to the global one)
            explainer_settings: Pre-validated settings; skips loading the YAML file
        """
        self.settings = settings
        self.connection_manager = connection_manager
        self.registry = registry or get_provider_registry()
        self.explainer_settings = explainer_settings
        self.gateway: Optional[ExplanationGateway] = None

        logger.info(f"Initializer configured with explainer config file: {settings.explainer_config_file}")

    async def initialize(self) -> None:
        try:
            if self.explainer_settings is None:
                self.explainer_settings = await self._load_explainer_settings()

            self.gateway = ExplanationGateway.build(
                self.explainer_settings,
                self.settings,
                self.connection_manager.get_store(),
                self.connection_manager.get_http_client(),
                self.registry,
            )

            logger.info(
                f"Explainer ready: {self.gateway.provider.summary()}, "
                f"model={self.gateway.model}"
            )

        except Exception as e:
            logger.error(f"Explainer initialization failed: {str(e)}")
            raise

    async def _load_explainer_settings(self) -> ExplainerSettings:
        """Load explanation settings from YAML. A missing file means defaults."""
        config_file = self.settings.explainer_config_file

        if not os.path.exists(config_file):
            logger.warning(f"Explainer config file not found: {config_file}, using defaults")
            return ExplainerSettings()

        async with aiofiles.open(config_file, 'r', encoding='utf-8') as file:
            content = await file.read()

        raw = yaml.safe_load(content) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Explainer config file {config_file} must contain a mapping")

        try:
            explainer_settings = ExplainerSettings.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Invalid explainer configuration in {config_file}: {e}")
            raise

        logger.info(f"Loaded explainer configuration from {config_file}")
        return explainer_settings

    def get_gateway(self) -> ExplanationGateway:
        if not self.gateway:
            raise RuntimeError("Gateway not initialized. Call initialize() first.")
        return self.gateway

    def get_explainer_settings(self) -> ExplainerSettings:
        if not self.explainer_settings:
            raise RuntimeError("Explainer settings not loaded. Call initialize() first.")
        return self.explainer_settings
