from .content_sanitizer import (
    ContentSanitizer,
    SanitizerLimits,
    find_blocked_word,
    normalize_text,
    sanitize,
)

__all__ = ["ContentSanitizer", "SanitizerLimits", "find_blocked_word", "normalize_text", "sanitize"]
