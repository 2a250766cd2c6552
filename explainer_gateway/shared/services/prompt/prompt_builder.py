"""
Prompt construction shared by all providers.
"""

from typing import Optional

from loguru import logger

from ..sanitizer.content_sanitizer import DANGEROUS_PATTERNS, normalize_text
from ...core.config import (
    DEFAULT_PROMPT_TEMPLATE,
    MAX_PROMPT_TEMPLATE_LENGTH,
    SNIPPET_PLACEHOLDER,
)
from ...models.internal import SelectionContext


CONTEXT_DELIMITER = '"""'


def _is_dangerous(text: str) -> bool:
    return any(pattern.search(text) for pattern in DANGEROUS_PATTERNS)


class PromptBuilder:
    """
    Builds the user prompt from the template, the sanitized selection and
    optional page context. The language directive is prepended and the
    context block is appended between triple-quote delimiters.
    """

    def __init__(
        self,
        template: str = DEFAULT_PROMPT_TEMPLATE,
        language_directive: Optional[str] = None,
        context_max_chars: int = 200
    ):
        if SNIPPET_PLACEHOLDER not in template or len(template) > MAX_PROMPT_TEMPLATE_LENGTH:
            logger.warning("Prompt template rejected, using default")
            template = DEFAULT_PROMPT_TEMPLATE
        self.template = template
        self.language_directive = (language_directive or "").strip() or None
        self.context_max_chars = context_max_chars

    @classmethod
    def from_settings(cls, settings) -> "PromptBuilder":
        return cls(
            template=settings.prompt_template,
            language_directive=settings.language_directive,
            context_max_chars=settings.context_max_chars,
        )

    def _clean_context(self, value: Optional[str], keep_tail: bool) -> str:
        if not value or self.context_max_chars <= 0:
            return ""

        text = normalize_text(value).replace(CONTEXT_DELIMITER, "")
        if _is_dangerous(value) or _is_dangerous(text):
            return ""

        if len(text) > self.context_max_chars:
            text = text[-self.context_max_chars:] if keep_tail else text[:self.context_max_chars]
        return text.strip()

    def build(self, selection: str, context: Optional[SelectionContext] = None) -> str:
        """
        Args:
            selection: Sanitized selection text
            context: Text before and after the selection on the page

        Returns:
            Prompt text for the provider
        """
        prompt = self.template.replace(SNIPPET_PLACEHOLDER, selection)
        if self.language_directive:
            prompt = f"{self.language_directive} {prompt}"

        if context is None:
            return prompt

        before = self._clean_context(context.before, keep_tail=True)
        after = self._clean_context(context.after, keep_tail=False)
        if not before and not after:
            return prompt

        context_text = ""
        if before:
            context_text += f"...{before}"
        context_text += f"[{selection}]"
        if after:
            context_text += f"{after}..."

        return f"{prompt}\n\nContext: {CONTEXT_DELIMITER}{context_text}{CONTEXT_DELIMITER}"
