"""
Message history compression.

Strategies:
- remove_old: drop unprotected messages oldest-first
- truncate:   shorten unprotected messages oldest-first
- summarize:  replace the unprotected span with one summary message
- smart:      drop low-value messages by score; if that is not enough,
              replace the dropped ones with a summary

Protected messages are the recent tail and, when requested, every
system message. Output order always follows input order, and the
result never costs more tokens than the input.
"""

from dataclasses import dataclass, replace
from functools import partial
from typing import Callable, List, Optional, Set

from .config import ContextConfig
from .logger import ContextLogger
from .monitor import ContextWindowMonitor
from .scorer import ImportanceScorer
from .summarizer import build_summary, create_summarizer
from .tokens import TokenEstimator
from .types import (
    STRATEGIES,
    AutoManageResult,
    CompressionConfig,
    CompressionResult,
    ConversationSummary,
    Message,
    TextBlock,
    ToolResultBlock,
    new_message_id,
)


@dataclass
class _Plan:
    """Output of one strategy before accounting."""
    messages: List[Message]
    present: int  # input messages still present (possibly truncated)
    summary: Optional[ConversationSummary] = None


class CompressionEngine:
    """
    Reduces a message sequence to fit a token budget.

    Compression is best-effort: if the target cannot be reached the
    most compressed result is returned, never an error.
    """

    def __init__(
        self,
        config: Optional[ContextConfig] = None,
        estimator: Optional[TokenEstimator] = None,
        scorer: Optional[ImportanceScorer] = None,
        monitor: Optional[ContextWindowMonitor] = None,
        summarize: Optional[Callable[[List[Message]], ConversationSummary]] = None,
        logger: Optional[ContextLogger] = None,
    ):
        """
        Initialize engine.

        Args:
            config: ContextConfig instance
            estimator: Token estimator (built from config if omitted)
            scorer: Importance scorer for the smart strategy
            monitor: Window monitor used by needs_compression
            summarize: Callback turning messages into a ConversationSummary
            logger: ContextLogger for compression events
        """
        self.config = config or ContextConfig()
        self.estimator = estimator or TokenEstimator(self.config)
        self.scorer = scorer or ImportanceScorer(self.config, self.estimator)
        self.monitor = monitor or ContextWindowMonitor(self.config, self.estimator)
        self.logger = logger or ContextLogger()

        if summarize is None:
            summarizer = create_summarizer(self.config.summary_backend, self.config)
            summarize = partial(build_summary, summarizer, self.estimator)
        self._summarize = summarize

    def compress_messages(
        self,
        messages: List[Message],
        options: Optional[CompressionConfig] = None,
    ) -> CompressionResult:
        """
        Compress messages with the selected strategy.

        Args:
            messages: Conversation history, oldest first
            options: Strategy, target and retention options

        Returns:
            CompressionResult with the new sequence and token accounting
        """
        result = self._compress(messages, options or CompressionConfig())
        self.logger.log_compression(result)
        return result

    def _compress(self, messages: List[Message], options: CompressionConfig) -> CompressionResult:
        if options.strategy not in STRATEGIES:
            raise ValueError(f"Unknown compression strategy: {options.strategy}")

        messages = list(messages or [])
        tokens = [self.estimator.estimate_message_tokens(m) for m in messages]
        original = sum(tokens)

        keep_recent = options.keep_recent_messages
        if keep_recent is None:
            keep_recent = self.config.keep_recent_messages
        keep_recent = min(max(keep_recent, 0), len(messages))

        protected = set(range(len(messages) - keep_recent, len(messages)))
        if options.keep_system_messages:
            protected.update(i for i, m in enumerate(messages) if m.role == "system")

        target = max(options.target_tokens, 0)
        if options.strategy == "remove_old":
            plan = self._remove_old(messages, tokens, protected, target)
        elif options.strategy == "truncate":
            plan = self._truncate(messages, tokens, protected, target)
        elif options.strategy == "summarize":
            plan = self._summarize_span(messages, tokens, protected, target, options)
        else:
            plan = self._smart(messages, tokens, protected, target, options)

        compressed = self.estimator.count_tokens(plan.messages).messages
        if compressed > original:
            plan = _Plan(messages=list(messages), present=len(messages))
            compressed = original

        return CompressionResult(
            messages=plan.messages,
            removed_count=len(messages) - plan.present,
            original_tokens=original,
            compressed_tokens=compressed,
            saved_tokens=original - compressed,
            summary=plan.summary,
            strategy=options.strategy,
        )

    def needs_compression(
        self,
        messages: List[Message],
        system_prompt: Optional[str] = None,
    ) -> bool:
        return self.monitor.get_context_window_state(messages, system_prompt).needs_compression

    def auto_manage_context(
        self,
        messages: List[Message],
        system_prompt: Optional[str] = None,
    ) -> AutoManageResult:
        """
        Compress with the smart strategy only when the window needs it.

        The target leaves room for the system prompt, which is not part
        of the message history.
        """
        if not self.needs_compression(messages, system_prompt):
            return AutoManageResult(compressed=False, messages=messages, result=None)

        target = int(self.config.effective_budget * self.config.compression_target_ratio)
        target -= self.estimator.estimate_tokens(system_prompt)

        result = self._compress(messages, CompressionConfig(
            strategy="smart",
            target_tokens=max(target, 0),
            keep_recent_messages=self.config.keep_recent_messages,
            keep_system_messages=True,
            generate_summary=True,
        ))
        self.logger.log_compression(result, auto=True)
        return AutoManageResult(compressed=True, messages=result.messages, result=result)

    # Strategies

    def _remove_old(
        self,
        messages: List[Message],
        tokens: List[int],
        protected: Set[int],
        target: int,
    ) -> _Plan:
        total = sum(tokens)
        dropped = set()

        for i in range(len(messages)):
            if total <= target:
                break
            if i in protected:
                continue
            dropped.add(i)
            total -= tokens[i]

        kept = [m for i, m in enumerate(messages) if i not in dropped]
        return _Plan(messages=kept, present=len(kept))

    def _truncate(
        self,
        messages: List[Message],
        tokens: List[int],
        protected: Set[int],
        target: int,
    ) -> _Plan:
        total = sum(tokens)
        result = list(messages)

        for i, message in enumerate(messages):
            if total <= target:
                break
            if i in protected:
                continue
            shortened = self._truncated(message)
            if shortened is None:
                continue
            new_tokens = self.estimator.estimate_message_tokens(shortened)
            if new_tokens < tokens[i]:
                result[i] = shortened
                total -= tokens[i] - new_tokens

        return _Plan(messages=result, present=len(result))

    def _summarize_span(
        self,
        messages: List[Message],
        tokens: List[int],
        protected: Set[int],
        target: int,
        options: CompressionConfig,
    ) -> _Plan:
        span = [i for i in range(len(messages)) if i not in protected]
        if not options.generate_summary or not span:
            return self._remove_old(messages, tokens, protected, target)

        plan = self._replace_with_summary(messages, span)
        span_tokens = sum(tokens[i] for i in span)
        if self.estimator.estimate_message_tokens(plan.messages[span[0]]) >= span_tokens:
            # Summary did not shrink the span
            return self._remove_old(messages, tokens, protected, target)
        return plan

    def _smart(
        self,
        messages: List[Message],
        tokens: List[int],
        protected: Set[int],
        target: int,
        options: CompressionConfig,
    ) -> _Plan:
        scored = self.scorer.score_messages(messages)
        protected = protected | {
            i for i, s in enumerate(scored) if s.importance == "critical"
        }

        candidates = sorted(
            (i for i, s in enumerate(scored)
             if i not in protected and s.importance in ("low", "medium")),
            key=lambda i: (scored[i].score, i),
        )

        total = sum(tokens)
        dropped = set()
        for i in candidates:
            if total <= target:
                break
            dropped.add(i)
            total -= tokens[i]

        kept = [m for i, m in enumerate(messages) if i not in dropped]
        drop_plan = _Plan(messages=kept, present=len(kept))
        if total <= target or not options.generate_summary or not dropped:
            return drop_plan

        # Still over budget: keep a summary of what was dropped
        span = sorted(dropped)
        plan = self._replace_with_summary(messages, span)
        span_tokens = sum(tokens[i] for i in span)
        if self.estimator.estimate_message_tokens(plan.messages[span[0]]) < span_tokens:
            return plan
        return drop_plan

    # Helpers

    def _replace_with_summary(self, messages: List[Message], span: List[int]) -> _Plan:
        """Replace the messages at span indexes with one summary message."""
        span_set = set(span)
        summary = self._summarize([messages[i] for i in span])
        summary_message = Message(
            role="assistant",
            content=summary.content,
            id=new_message_id("summary"),
        )

        result = []
        for i, message in enumerate(messages):
            if i == span[0]:
                result.append(summary_message)
            elif i not in span_set:
                result.append(message)

        return _Plan(
            messages=result,
            present=len(messages) - len(span),
            summary=summary,
        )

    def _truncated(self, message: Message) -> Optional[Message]:
        """Copy of message with long text cut to a prefix, or None."""
        content = message.content
        if isinstance(content, str):
            cut = self._cut(content)
            return replace(message, content=cut) if cut is not None else None

        if not isinstance(content, list):
            return None

        changed = False
        blocks = []
        for block in content:
            if isinstance(block, TextBlock):
                cut = self._cut(block.text)
                if cut is not None:
                    block = replace(block, text=cut)
                    changed = True
            elif isinstance(block, ToolResultBlock) and isinstance(block.content, str):
                cut = self._cut(block.content)
                if cut is not None:
                    block = replace(block, content=cut)
                    changed = True
            blocks.append(block)

        return replace(message, content=blocks) if changed else None

    def _cut(self, text: Optional[str]) -> Optional[str]:
        limit = max(self.config.truncate_chars, 0)
        marker = self.config.truncation_marker
        if not text or len(text) <= limit + len(marker):
            return None
        return text[:limit].rstrip() + marker
