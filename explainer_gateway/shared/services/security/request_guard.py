"""
Request-level security checks run before any text processing.
"""

import re
import time
from typing import Callable, List, Optional

from loguru import logger
from pydantic import BaseModel


BOT_PATTERNS = re.compile(r"bot|crawler|spider|scraper|curl|wget|python|java", re.IGNORECASE)

MIN_USER_AGENT_LENGTH = 10
MIN_CLIENT_ID_LENGTH = 8


class RequestMetadata(BaseModel):
    """Transport-level facts about an explain request."""
    method: str = "POST"
    origin: Optional[str] = None
    user_agent: Optional[str] = None
    client_id: Optional[str] = None
    timestamp: Optional[float] = None
    proxy_header_count: int = 0


class RequestGuard:
    """
    Bot, replay and spoofing heuristics.

    ``check`` returns False on the first failing rule and logs which rule
    failed; the caller only ever sees a generic invalid-request outcome.
    """

    def __init__(
        self,
        allowed_origins: Optional[List[str]] = None,
        max_skew_seconds: int = 300,
        max_proxy_headers: int = 2,
        clock: Callable[[], float] = time.time
    ):
        self.allowed_origins = [origin.rstrip("/").lower() for origin in allowed_origins or []]
        self.max_skew_seconds = max_skew_seconds
        self.max_proxy_headers = max_proxy_headers
        self._clock = clock

    @classmethod
    def from_settings(cls, settings) -> "RequestGuard":
        return cls(
            allowed_origins=settings.get_allowed_origins(),
            max_skew_seconds=settings.request_max_skew_seconds,
            max_proxy_headers=settings.max_proxy_headers,
        )

    def failed_rule(self, meta: RequestMetadata) -> Optional[str]:
        """Name of the first rule ``meta`` fails, or None."""
        if meta.method.upper() != "POST":
            return "method"

        if self.allowed_origins:
            origin = (meta.origin or "").rstrip("/").lower()
            if origin not in self.allowed_origins:
                return "origin"

        if not meta.client_id or len(meta.client_id) < MIN_CLIENT_ID_LENGTH:
            return "client_id"

        user_agent = meta.user_agent or ""
        if len(user_agent) < MIN_USER_AGENT_LENGTH:
            return "user_agent"
        if BOT_PATTERNS.search(user_agent):
            return "bot_user_agent"

        if meta.timestamp is None or abs(self._clock() - meta.timestamp) > self.max_skew_seconds:
            return "timestamp"

        if meta.proxy_header_count > self.max_proxy_headers:
            return "proxy_headers"

        return None

    def check(self, meta: RequestMetadata) -> bool:
        rule = self.failed_rule(meta)
        if rule is not None:
            logger.warning(f"Request rejected by security check: {rule}")
            return False
        return True
