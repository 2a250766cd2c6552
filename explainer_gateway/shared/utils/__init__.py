"""
Utility modules for the explainer gateway.
"""

from .security import (
    SecurityValidationError,
    extract_client_ip,
    sanitize_prompt_for_logging,
)

__all__ = [
    "SecurityValidationError",
    "extract_client_ip",
    "sanitize_prompt_for_logging",
]
