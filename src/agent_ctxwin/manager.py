"""
Context Manager for agent-ctxwin.

Per-session entry point tying together:
- Token estimation and window state
- Importance scoring
- Multi-strategy compression
- Conversation summaries (owned log, per instance)
- File fragment extraction

Usage:
    from agent_ctxwin import ContextManager, ContextConfig

    ctx = ContextManager(ContextConfig(max_tokens=100000))

    # Once per turn, before sending history to the model
    managed = ctx.auto_manage_context(history, system_prompt)
    history = managed.messages

    # When assembling file context for a query
    fragments = ctx.extract_file_fragments(source, "app.py", "load config")
"""

from dataclasses import replace
from typing import List, Optional

from .compression import CompressionEngine
from .config import ContextConfig
from .fragments import FragmentExtractor
from .logger import ContextLogger
from .monitor import ContextWindowMonitor
from .scorer import ImportanceScorer
from .summarizer import Summarizer, build_summary, create_summarizer
from .tokens import TokenEstimator
from .types import (
    AutoManageResult,
    CompressionConfig,
    CompressionResult,
    ContextWindowState,
    ConversationSummary,
    FileFragment,
    Message,
    ScoredMessage,
    TokenCount,
)


class ContextManager:
    """
    Main context management orchestrator.

    Holds one mutable piece of state, the summary log. The caller is
    expected to run at most one compression pass per conversation at
    a time.
    """

    def __init__(
        self,
        config: Optional[ContextConfig] = None,
        config_path: Optional[str] = None,
        summarizer: Optional[Summarizer] = None,
    ):
        """
        Initialize context manager.

        Args:
            config: ContextConfig instance (takes precedence)
            config_path: Path to YAML config, used when config is omitted
            summarizer: Custom summarizer backend
        """
        if config is None:
            config = ContextConfig.load(config_path) if config_path else ContextConfig()
        self.config = config
        self._custom_summarizer = summarizer
        self._summaries: List[ConversationSummary] = []
        self._build_components()

    def _build_components(self):
        self.logger = ContextLogger(self.config.log_path)
        self.estimator = TokenEstimator(self.config)
        self.scorer = ImportanceScorer(self.config, self.estimator)
        self.monitor = ContextWindowMonitor(self.config, self.estimator)
        self.fragments = FragmentExtractor(self.config)
        self.summarizer = self._custom_summarizer or create_summarizer(
            self.config.summary_backend, self.config
        )
        self.engine = CompressionEngine(
            self.config,
            estimator=self.estimator,
            scorer=self.scorer,
            monitor=self.monitor,
            summarize=self.generate_summary,
            logger=self.logger,
        )

    # Configuration

    def get_config(self) -> ContextConfig:
        """Return a copy of the current configuration."""
        return replace(self.config, scoring=replace(self.config.scoring))

    def update_config(self, **changes) -> ContextConfig:
        """Apply config changes and rebuild components."""
        merged = self.config.to_dict()
        unknown = set(changes) - set(merged)
        if unknown:
            raise ValueError(f"Unknown config options: {', '.join(sorted(unknown))}")
        merged.update(changes)
        self.config = ContextConfig.from_dict(merged)
        self._build_components()
        return self.get_config()

    # Tokens

    def estimate_tokens(self, text: Optional[str]) -> int:
        return self.estimator.estimate_tokens(text)

    def estimate_message_tokens(self, message: Message) -> int:
        return self.estimator.estimate_message_tokens(message)

    def count_tokens(
        self,
        messages: List[Message],
        system_prompt: Optional[str] = None,
    ) -> TokenCount:
        return self.estimator.count_tokens(messages, system_prompt)

    def get_context_window_state(
        self,
        messages: List[Message],
        system_prompt: Optional[str] = None,
    ) -> ContextWindowState:
        state = self.monitor.get_context_window_state(messages, system_prompt)
        self.logger.log_health(state, len(messages))
        return state

    # Scoring

    def score_message(self, message: Message, index_from_start: int, total_count: int) -> ScoredMessage:
        return self.scorer.score_message(message, index_from_start, total_count)

    def score_messages(self, messages: List[Message]) -> List[ScoredMessage]:
        return self.scorer.score_messages(messages)

    # Summaries

    def generate_summary(self, messages: List[Message]) -> ConversationSummary:
        """Summarize messages and append the result to the summary log."""
        summary = build_summary(self.summarizer, self.estimator, list(messages))
        self._summaries.append(summary)
        self.logger.log_summary(summary)
        return summary

    def get_summaries(self) -> List[ConversationSummary]:
        return list(self._summaries)

    def clear_summaries(self):
        self._summaries.clear()

    # Compression

    def compress_messages(
        self,
        messages: List[Message],
        options: Optional[CompressionConfig] = None,
    ) -> CompressionResult:
        return self.engine.compress_messages(messages, options)

    def needs_compression(
        self,
        messages: List[Message],
        system_prompt: Optional[str] = None,
    ) -> bool:
        return self.engine.needs_compression(messages, system_prompt)

    def auto_manage_context(
        self,
        messages: List[Message],
        system_prompt: Optional[str] = None,
    ) -> AutoManageResult:
        return self.engine.auto_manage_context(messages, system_prompt)

    # Files

    def extract_file_fragments(
        self,
        file_text: str,
        file_path: str,
        query: str,
        max_fragments: int = 3,
        max_lines_per_fragment: int = 50,
    ) -> List[FileFragment]:
        return self.fragments.extract(
            file_text, file_path, query, max_fragments, max_lines_per_fragment
        )

    def health_check(self) -> dict:
        """Return health metrics for monitoring."""
        return {
            "summaries": len(self._summaries),
            "last_compression": self.logger.last_compression_time(),
            "compression_stats": self.logger.get_compression_stats(),
            "config": {
                "max_tokens": self.config.max_tokens,
                "compression_threshold": self.config.compression_threshold,
                "keep_recent_messages": self.config.keep_recent_messages,
            },
        }
