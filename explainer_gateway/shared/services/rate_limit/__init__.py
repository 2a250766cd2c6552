from .rate_limiter import RateLimiter, RATE_LIMITED_MESSAGE

__all__ = ["RateLimiter", "RATE_LIMITED_MESSAGE"]
