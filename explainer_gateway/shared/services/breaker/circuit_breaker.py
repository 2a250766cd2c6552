"""
Circuit breaker that disables explanations when a provider reports
billing or quota exhaustion.
"""

import json
from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from ...clients.base import BaseStore
from ...middleware.monitoring import record_breaker_trip
from ...models.internal import CircuitState


CIRCUIT_KEY = "explainer:circuit"

DISABLED_MESSAGE = "AI explanations are temporarily unavailable. Please try again later."


class CircuitBreaker:
    """
    Global Enabled/Disabled switch kept in the shared store.

    Only ``trip`` disables and only ``reenable`` enables; there is no
    time-based recovery. Concurrent trips are idempotent on the flag and
    the last writer's reason is kept.
    """

    def __init__(self, store: BaseStore):
        self.store = store

    async def get_state(self) -> CircuitState:
        raw = await self.store.get(CIRCUIT_KEY)
        if not raw:
            return CircuitState()

        try:
            return CircuitState.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.error(f"Unreadable circuit state, treating as disabled: {e}")
            return CircuitState(disabled=True, reason="Unreadable circuit state")

    async def is_disabled(self) -> bool:
        return (await self.get_state()).disabled

    async def trip(self, reason: str, provider: Optional[str] = None) -> CircuitState:
        """
        Disable explanations.

        Args:
            reason: Diagnostic text, usually the provider's error message
            provider: Provider key that reported the quota failure
        """
        state = CircuitState(
            disabled=True,
            reason=reason,
            provider=provider,
            disabled_at=datetime.now(timezone.utc).isoformat(),
        )
        await self.store.set(CIRCUIT_KEY, state.model_dump_json())
        record_breaker_trip(provider or "unknown")
        logger.critical(f"Explanations auto-disabled after quota failure from {provider}: {reason}")
        return state

    async def reenable(self) -> CircuitState:
        """Re-enable explanations. Administrative action only."""
        await self.store.delete(CIRCUIT_KEY)
        logger.warning("Explanations re-enabled by administrator")
        return CircuitState()
