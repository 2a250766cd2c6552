"""
Content sanitizer for user-selected text.

``sanitize`` is a pure function: it never raises for bad input and returns
either a SanitizedText or a Rejection with a reason code.
"""

import html
import re
from typing import List, Optional, Union

import bleach
from pydantic import BaseModel

from ...models.internal import Rejection, RejectionReason, SanitizedText


# Hard ceiling on raw input, independent of the configured maximum
MAX_RAW_BYTES = 5000

SPECIAL_CHAR_DENSITY_LIMIT = 0.3

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
WHITESPACE_RUN = re.compile(r"\s+")
SPECIAL_CHARS = re.compile(r"[<>{}\[\]()&|`~!@#$%^*+=\\/]")

# Markup left in text after entity decoding
RESIDUAL_MARKUP = re.compile(r"<[a-zA-Z!?/]")

ENCODING_PATTERNS = [
    re.compile(r"%[0-9a-fA-F]{2}"),
    re.compile(r"&#x?[0-9a-fA-F]+;?"),
    re.compile(r"&[a-zA-Z]+;"),
]

DANGEROUS_PATTERNS = [
    # Script and frame tags
    re.compile(r"<\s*/?\s*script\b", re.IGNORECASE),
    re.compile(r"<\s*/?\s*iframe\b", re.IGNORECASE),
    # Script URIs
    re.compile(r"javascript\s*:", re.IGNORECASE),
    re.compile(r"vbscript\s*:", re.IGNORECASE),
    # Inline event handlers
    re.compile(r"\bon[a-z]+\s*=", re.IGNORECASE),
    # Data URIs
    re.compile(r"data\s*:\s*text/html", re.IGNORECASE),
    re.compile(r"data\s*:\s*application/(?:x-)?javascript", re.IGNORECASE),
    re.compile(r"data\s*:[\w/+.-]*;\s*base64\s*,", re.IGNORECASE),
    # Code execution markers
    re.compile(r"\b(?:eval|exec|system|passthru|shell_exec)\s*\(", re.IGNORECASE),
    re.compile(r"<\?(?:php|=)", re.IGNORECASE),
    re.compile(r"\$\{[^}]*\}"),
    # SQL injection combinations
    re.compile(r"\bunion\s+(?:all\s+)?select\b", re.IGNORECASE),
    re.compile(r"\bdrop\s+(?:table|database)\b", re.IGNORECASE),
    re.compile(r"\binsert\s+into\s+\w+\s*(?:\(|values\b)", re.IGNORECASE),
    re.compile(r"\bdelete\s+from\s+\w+\s*(?:where\b|;)", re.IGNORECASE),
    re.compile(r"'\s*or\s+'?\d+'?\s*=\s*'?\d+", re.IGNORECASE),
]


class SanitizerLimits(BaseModel):
    """Bounds and blocked-word configuration the sanitizer applies."""
    min_chars: int = 3
    max_chars: int = 200
    min_words: int = 1
    max_words: int = 30
    blocked_words: List[str] = []
    case_sensitive: bool = False
    whole_word_only: bool = False

    @classmethod
    def from_settings(cls, settings) -> "SanitizerLimits":
        return cls(
            min_chars=settings.min_selection_length,
            max_chars=settings.max_selection_length,
            min_words=settings.min_words,
            max_words=settings.max_words,
            blocked_words=list(settings.blocked_words),
            case_sensitive=settings.blocked_words_case_sensitive,
            whole_word_only=settings.blocked_words_whole_word_only,
        )


SanitizeResult = Union[SanitizedText, Rejection]


def _reject(reason: RejectionReason, message: str, matched_term: Optional[str] = None) -> Rejection:
    return Rejection(reason=reason, message=message, matched_term=matched_term)


def _has_dangerous_pattern(text: str) -> bool:
    return any(pattern.search(text) for pattern in DANGEROUS_PATTERNS)


def normalize_text(raw: str) -> str:
    """
    Strip control characters and markup, decode entities, collapse whitespace.

    This is the normalization the cache key is computed over.
    """
    text = CONTROL_CHARS.sub("", raw)
    # bleach escapes bare &, < and > in text; unescape reverses that together
    # with any entities that were in the input
    text = bleach.clean(text, tags=[], attributes={}, strip=True, strip_comments=True)
    text = html.unescape(text)
    return WHITESPACE_RUN.sub(" ", text).strip()


def special_char_density(text: str) -> float:
    if not text:
        return 0.0
    return len(SPECIAL_CHARS.findall(text)) / len(text)


def has_encoded_content(text: str) -> bool:
    """True when percent-encoding or character references survive decoding."""
    return any(pattern.search(text) for pattern in ENCODING_PATTERNS)


def find_blocked_word(
    text: str,
    blocked_words: List[str],
    case_sensitive: bool = False,
    whole_word_only: bool = False
) -> Optional[str]:
    """
    Return the first blocked term present in ``text``, or None.

    Whole-word matching requires no word character on either side of the term,
    so "class" does not match inside "classic".
    """
    flags = 0 if case_sensitive else re.IGNORECASE
    for term in blocked_words:
        if not term:
            continue
        escaped = re.escape(term)
        pattern = rf"(?<!\w){escaped}(?!\w)" if whole_word_only else escaped
        if re.search(pattern, text, flags):
            return term
    return None


def count_words(text: str) -> int:
    return len(text.split())


def sanitize(raw: Optional[str], limits: SanitizerLimits) -> SanitizeResult:
    """
    Validate and clean a text selection.

    Steps, short-circuiting on the first failure:
    1. raw byte ceiling
    2. normalization (control chars, markup, entities, whitespace)
    3. dangerous patterns, on the raw and the decoded text
    4. character and word bounds
    5. special-character density and leftover encodings
    6. blocked words

    Args:
        raw: Text as submitted by the client
        limits: Bounds and blocked-word configuration

    Returns:
        SanitizedText on success, otherwise a Rejection
    """
    if not raw or not isinstance(raw, str):
        return _reject(
            RejectionReason.TOO_SHORT,
            f"Text selection is too short (minimum {limits.min_chars} characters)",
        )

    if len(raw.encode("utf-8")) > MAX_RAW_BYTES:
        return _reject(
            RejectionReason.TOO_LONG,
            f"Text selection is too long (maximum {limits.max_chars} characters)",
        )

    if _has_dangerous_pattern(CONTROL_CHARS.sub("", raw)):
        return _reject(RejectionReason.DANGEROUS_PATTERN, "Text selection contains invalid content")

    text = normalize_text(raw)

    if _has_dangerous_pattern(text) or RESIDUAL_MARKUP.search(text):
        return _reject(RejectionReason.DANGEROUS_PATTERN, "Text selection contains invalid content")

    if len(text) < limits.min_chars:
        return _reject(
            RejectionReason.TOO_SHORT,
            f"Text selection is too short (minimum {limits.min_chars} characters)",
        )

    if len(text) > limits.max_chars:
        return _reject(
            RejectionReason.TOO_LONG,
            f"Text selection is too long (maximum {limits.max_chars} characters)",
        )

    word_count = count_words(text)
    if word_count < limits.min_words:
        return _reject(
            RejectionReason.WORD_COUNT,
            f"Text selection has too few words (minimum {limits.min_words} words)",
        )
    if word_count > limits.max_words:
        return _reject(
            RejectionReason.WORD_COUNT,
            f"Text selection has too many words (maximum {limits.max_words} words)",
        )

    if special_char_density(text) > SPECIAL_CHAR_DENSITY_LIMIT or has_encoded_content(text):
        return _reject(RejectionReason.SUSPICIOUS_CONTENT, "Text selection contains invalid content")

    matched = find_blocked_word(text, limits.blocked_words, limits.case_sensitive, limits.whole_word_only)
    if matched is not None:
        return _reject(
            RejectionReason.BLOCKED_WORD,
            "This content cannot be explained because it contains a blocked term",
            matched_term=matched,
        )

    return SanitizedText(text=text, word_count=word_count)


class ContentSanitizer:
    """Holds the limits for one settings snapshot and applies ``sanitize``."""

    def __init__(self, limits: SanitizerLimits):
        self.limits = limits

    @classmethod
    def from_settings(cls, settings) -> "ContentSanitizer":
        return cls(SanitizerLimits.from_settings(settings))

    def sanitize(self, raw: Optional[str]) -> SanitizeResult:
        return sanitize(raw, self.limits)
