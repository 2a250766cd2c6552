"""
Middleware components for the explainer gateway.
"""

from .monitoring import (
    add_monitoring_middleware,
    record_breaker_trip,
    record_cache_lookup,
    record_explain_result,
    record_llm_request,
)

__all__ = [
    "add_monitoring_middleware",
    "record_breaker_trip",
    "record_cache_lookup",
    "record_explain_result",
    "record_llm_request",
]
