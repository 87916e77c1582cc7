"""Context window usage tracking."""

from typing import List, Optional

from .config import ContextConfig
from .tokens import TokenEstimator
from .types import ContextWindowState, Message


class ContextWindowMonitor:
    """
    Computes live context window usage against the configured budget.

    Usage is measured against the effective budget, i.e. max_tokens
    minus the share reserved for tool output. State is recomputed on
    every call since the history changes between turns.
    """

    def __init__(
        self,
        config: Optional[ContextConfig] = None,
        estimator: Optional[TokenEstimator] = None,
    ):
        self.config = config or ContextConfig()
        self.estimator = estimator or TokenEstimator(self.config)

    def get_context_window_state(
        self,
        messages: List[Message],
        system_prompt: Optional[str] = None,
    ) -> ContextWindowState:
        used = self.estimator.count_tokens(messages, system_prompt).total
        usage = self.usage_percent(used)

        return ContextWindowState(
            max_tokens=self.config.max_tokens,
            used_tokens=used,
            usage_percent=usage,
            near_limit=usage >= self.config.near_limit_threshold,
            needs_compression=usage >= self.config.compression_threshold,
        )

    def usage_percent(self, used_tokens: int) -> float:
        """Fraction of the effective budget in use (may exceed 1.0)."""
        budget = self.config.effective_budget
        if budget <= 0:
            return float("inf") if used_tokens > 0 else 0.0
        return used_tokens / budget
