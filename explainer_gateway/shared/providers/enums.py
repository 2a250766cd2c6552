"""
Provider enums for AI explanation providers.
"""

from enum import Enum


class Provider(Enum):
    """AI provider enumeration."""
    OPENAI = "openai"
    CLAUDE = "claude"
