from .cache_service import ExplanationCache, CACHE_NAMESPACE

__all__ = ["ExplanationCache", "CACHE_NAMESPACE"]
