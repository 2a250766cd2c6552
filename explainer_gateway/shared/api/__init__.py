"""
Shared API - endpoints used by the webapp and by operators.
"""

from . import providers, health

__all__ = ["providers", "health"]
