"""Token estimation for messages and prompts."""

import math
import unicodedata
from typing import Any, Iterable, Optional

from .config import ContextConfig
from .types import Message, TokenCount, content_to_text


CHARS_PER_TOKEN = 4.0
WIDE_CHAR_TOKENS = 1.5


def is_wide_char(ch: str) -> bool:
    """CJK and other East Asian wide/fullwidth characters."""
    return unicodedata.east_asian_width(ch) in ("W", "F")


def heuristic_tokens(text: Optional[str]) -> int:
    """
    Approximate sub-word token count without a tokenizer.

    Narrow characters cost 1/4 token, wide characters 1.5 tokens.
    Any non-empty string costs at least one token.
    """
    if not text or not isinstance(text, str):
        return 0

    wide = 0
    narrow = 0
    for ch in text:
        if is_wide_char(ch):
            wide += 1
        else:
            narrow += 1

    weighted = wide * WIDE_CHAR_TOKENS + narrow / CHARS_PER_TOKEN
    return max(1, math.ceil(weighted))


class TokenEstimator:
    """
    Estimates token cost of text and messages.

    Uses the character heuristic unless a tiktoken encoding is
    configured, in which case real token counts are used for text.
    """

    def __init__(self, config: Optional[ContextConfig] = None):
        self.config = config or ContextConfig()
        self._tokenizer = None

    @property
    def tokenizer(self):
        """Lazy-load tiktoken encoding when one is configured."""
        if self._tokenizer is None and self.config.token_encoding:
            import tiktoken
            self._tokenizer = tiktoken.get_encoding(self.config.token_encoding)
        return self._tokenizer

    def estimate_tokens(self, text: Optional[str]) -> int:
        if not text or not isinstance(text, str):
            return 0
        if self.tokenizer is not None:
            return len(self.tokenizer.encode(text))
        return heuristic_tokens(text)

    def estimate_content_tokens(self, content: Any) -> int:
        if isinstance(content, list):
            return sum(self.estimate_tokens(content_to_text([block])) for block in content)
        return self.estimate_tokens(content_to_text(content))

    def estimate_message_tokens(self, message: Optional[Message]) -> int:
        """Content tokens plus the fixed role-tag overhead."""
        if message is None:
            return 0
        content = getattr(message, "content", None)
        return self.config.message_overhead_tokens + self.estimate_content_tokens(content)

    def count_tokens(
        self,
        messages: Iterable[Message],
        system_prompt: Optional[str] = None,
    ) -> TokenCount:
        message_tokens = sum(self.estimate_message_tokens(m) for m in messages or [])
        prompt_tokens = self.estimate_tokens(system_prompt) if system_prompt else 0
        total = message_tokens + prompt_tokens

        return TokenCount(
            messages=message_tokens,
            system_prompt=prompt_tokens,
            total=total,
            available=self.config.max_tokens - total,
        )
