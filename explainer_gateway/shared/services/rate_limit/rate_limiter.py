"""
Per-identity fixed-window rate limiter (minute, hour, day).
"""

from typing import Dict, List

from loguru import logger

from ...clients.base import BaseStore, WindowSpec
from ...models.internal import RateLimitDecision, RateLimitWindow, UserIdentity


RATE_LIMIT_PREFIX = "explainer:rate"

RATE_LIMITED_MESSAGE = "Rate limit exceeded. Please wait before requesting another explanation."

WINDOW_ORDER = [RateLimitWindow.MINUTE, RateLimitWindow.HOUR, RateLimitWindow.DAY]


class RateLimiter:
    """
    Counts requests per identity across three fixed windows.

    Every window must allow the request. The check and the increments run as
    one atomic store operation, so concurrent requests for the same identity
    cannot both take the last slot.
    """

    def __init__(
        self,
        store: BaseStore,
        authenticated_limits: Dict[RateLimitWindow, int],
        anonymous_limits: Dict[RateLimitWindow, int],
        enabled: bool = True
    ):
        self.store = store
        self.authenticated_limits = authenticated_limits
        self.anonymous_limits = anonymous_limits
        self.enabled = enabled

    @classmethod
    def from_settings(cls, store: BaseStore, settings) -> "RateLimiter":
        return cls(
            store,
            authenticated_limits={
                RateLimitWindow.MINUTE: settings.rate_limit_per_minute_authenticated,
                RateLimitWindow.HOUR: settings.rate_limit_per_hour_authenticated,
                RateLimitWindow.DAY: settings.rate_limit_per_day_authenticated,
            },
            anonymous_limits={
                RateLimitWindow.MINUTE: settings.rate_limit_per_minute_anonymous,
                RateLimitWindow.HOUR: settings.rate_limit_per_hour_anonymous,
                RateLimitWindow.DAY: settings.rate_limit_per_day_anonymous,
            },
            enabled=settings.rate_limit_enabled,
        )

    @staticmethod
    def counter_key(identity: UserIdentity, window: RateLimitWindow) -> str:
        return f"{RATE_LIMIT_PREFIX}:{window.value}:{identity.rate_limit_key()}"

    def limits_for(self, identity: UserIdentity) -> Dict[RateLimitWindow, int]:
        return self.authenticated_limits if identity.authenticated else self.anonymous_limits

    def _windows(self, identity: UserIdentity) -> List[WindowSpec]:
        limits = self.limits_for(identity)
        return [
            (self.counter_key(identity, window), limits[window], window.seconds)
            for window in WINDOW_ORDER
        ]

    async def check_and_increment(self, identity: UserIdentity) -> RateLimitDecision:
        """
        Count one request for ``identity``.

        Store errors propagate; a limiter that cannot count does not allow.

        Returns:
            RateLimitDecision naming the denying window when not allowed
        """
        if not self.enabled:
            return RateLimitDecision(allowed=True)

        denied_index = await self.store.increment_windows(self._windows(identity))
        if denied_index is None:
            return RateLimitDecision(allowed=True)

        window = WINDOW_ORDER[denied_index]
        logger.warning(
            f"Possible abuse: {identity.rate_limit_key()} exceeded the per-{window.value} "
            f"limit of {self.limits_for(identity)[window]}"
        )
        return RateLimitDecision(allowed=False, window=window)
