from .circuit_breaker import CircuitBreaker, CIRCUIT_KEY, DISABLED_MESSAGE

__all__ = ["CircuitBreaker", "CIRCUIT_KEY", "DISABLED_MESSAGE"]
