"""
Conversation summarization for context compression.

Condenses a span of messages into a short role-prefixed digest that
keeps questions, first statements and actions taken.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from datetime import datetime
import re

from .config import ContextConfig
from .tokens import TokenEstimator, is_wide_char
from .types import ConversationSummary, Message


LABELS = {
    "en": {
        "header": "Summary of {count} earlier messages:",
        "system": "System",
        "user": "User",
        "assistant": "Assistant",
    },
    "zh": {
        "header": "此前 {count} 条消息摘要：",
        "system": "系统",
        "user": "用户",
        "assistant": "助手",
    },
}

MIN_ITEM_CHARS = 8

SENTENCE_END = re.compile(r"(?<=[.!?])\s+|(?<=[。！？])")
ACTION_LINE = re.compile(
    r"^\s*(?:[-*]\s*)?(?:i\s+|we\s+)?(?:have\s+|will\s+)?"
    r"(created|updated|fixed|added|removed|deleted|implemented|changed|renamed|"
    r"installed|ran|wrote|moved|refactored|decided|chose|agreed|switched)\b",
    re.IGNORECASE,
)
DECISION_LINE = re.compile(r"\b(decision|decided|conclusion|next step|todo)\b|决定|结论", re.IGNORECASE)


class Summarizer(ABC):
    """
    Abstract base class for conversation summarization.

    Implementations:
    - ExtractiveSummarizer: Heuristic, no model calls
    """

    @abstractmethod
    def summarize(self, messages: List[Message]) -> str:
        """
        Summarize a span of messages.

        Args:
            messages: Messages to condense, in conversation order

        Returns:
            Summary text
        """
        pass


class ExtractiveSummarizer(Summarizer):
    """
    Picks salient lines out of each message.

    - User: questions asked, else the first sentence
    - Assistant: first sentence plus action / decision lines
    - System: first sentence

    Output is held to summary_token_ratio of the summarized tokens.
    When the full digest is over that budget the header is dropped
    and items are clipped shorter until it fits. Labels follow the
    dominant script of the conversation unless summary_language
    pins them.
    """

    def __init__(
        self,
        config: Optional[ContextConfig] = None,
        estimator: Optional[TokenEstimator] = None,
    ):
        self.config = config or ContextConfig()
        self.estimator = estimator or TokenEstimator(self.config)

    def summarize(self, messages: List[Message]) -> str:
        if not messages:
            return ""

        labels = LABELS[self._language(messages)]
        header = labels["header"].format(count=len(messages))
        items = [
            (message.role, labels.get(message.role, message.role.capitalize()), item)
            for message in messages
            for item in self._salient_items(message)
        ]
        budget = self._token_budget(messages)

        best = None
        for limit in self._item_limits():
            for with_header in (True, False):
                text = self._render(header if with_header else None, items, limit)
                tokens = self.estimator.estimate_tokens(text)
                if budget is None or tokens <= budget:
                    return text
                if best is None or tokens < best[0]:
                    best = (tokens, text)

        # Nothing fits; the most compact rendering is the best effort
        return best[1]

    def _render(self, header: Optional[str], items: List[Tuple[str, str, str]], limit: int) -> str:
        max_chars = self.config.summary_max_chars
        if header:
            max_chars = max(len(header), max_chars)
            lines = [header]
            used = len(header)
        else:
            lines = []
            used = -1
        seen = set()

        for role, label, item in items:
            item = self._clip(item, limit)
            key = (role, item)
            if not item or key in seen:
                continue
            seen.add(key)

            line = f"- {label}: {item}"
            if used + 1 + len(line) > max_chars:
                break
            lines.append(line)
            used += 1 + len(line)

        return "\n".join(lines)

    def _token_budget(self, messages: List[Message]) -> Optional[int]:
        ratio = self.config.summary_token_ratio
        if ratio <= 0:
            return None
        original = self.estimator.count_tokens(messages).messages
        return max(1, int(original * ratio))

    def _item_limits(self) -> List[int]:
        base = self.config.summary_item_chars
        if base <= 0:
            return [0]
        limits = [base]
        for limit in (base * 3 // 4, base // 2, base // 3, base // 4, base // 6, base // 8):
            if limit >= MIN_ITEM_CHARS and limit not in limits:
                limits.append(limit)
        return limits

    def _language(self, messages: List[Message]) -> str:
        language = self.config.summary_language
        if language in LABELS:
            return language

        wide = narrow = 0
        for message in messages:
            for ch in message.text:
                if is_wide_char(ch):
                    wide += 1
                elif ch.isalpha():
                    narrow += 1
        return "zh" if wide > narrow else "en"

    def _salient_items(self, message: Message) -> List[str]:
        text = message.text.strip()
        if not text:
            return []

        if message.role == "user":
            questions = [s for s in sentences(text) if s.endswith(("?", "？"))]
            return questions[:2] or [first_sentence(text)]

        if message.role == "assistant":
            items = [first_sentence(text)]
            for line in text.splitlines()[1:]:
                if ACTION_LINE.search(line) or DECISION_LINE.search(line):
                    items.append(line.strip(" -*\t"))
            return items

        return [first_sentence(text)]

    def _clip(self, text: str, limit: int) -> str:
        text = " ".join(text.split())
        if limit <= 0 or len(text) <= limit:
            return text

        cut = text[:max(1, limit - 3)]
        if text[len(cut)] != " " and " " in cut:
            # Prefer a word boundary unless it loses most of the cut
            head = cut.rsplit(" ", 1)[0]
            if len(head) >= len(cut) // 2:
                cut = head
        return cut.rstrip() + "..."




def sentences(text: str) -> List[str]:
    """Split text into trimmed sentences, line by line."""
    result = []
    for line in text.splitlines():
        result.extend(s.strip() for s in SENTENCE_END.split(line) if s.strip())
    return result


def first_sentence(text: str) -> str:
    """First sentence (or first line) of a text."""
    found = sentences(text)
    return found[0] if found else ""


def build_summary(
    summarizer: Summarizer,
    estimator: TokenEstimator,
    messages: List[Message],
) -> ConversationSummary:
    """Summarize messages and record the token accounting."""
    content = summarizer.summarize(messages)
    return ConversationSummary(
        content=content,
        message_count=len(messages),
        original_tokens=estimator.count_tokens(messages).messages,
        summary_tokens=estimator.estimate_tokens(content),
        created_at=datetime.now(),
    )


def create_summarizer(
    backend: str = "extractive",
    config: Optional[ContextConfig] = None,
) -> Summarizer:
    """
    Factory function to create a summarizer.

    Args:
        backend: Summarizer backend name
        config: Context configuration

    Returns:
        Summarizer instance
    """
    if backend == "extractive":
        return ExtractiveSummarizer(config)
    raise ValueError(f"Unknown summarizer backend: {backend}")
