"""
Importance scoring for conversation messages.
"""

from typing import List, Optional
import re

from .config import ContextConfig, ScoringConfig
from .tokens import TokenEstimator
from .types import Message, ScoredMessage


CODE_FENCE = re.compile(r"```")
ERROR_KEYWORDS = re.compile(
    r"\b(error|exception|traceback|warning|failed|failure|fatal)\b|错误|警告|异常",
    re.IGNORECASE,
)
TOOL_MARKERS = re.compile(r"\btool[_ ](use|call|result)\b|\[tool", re.IGNORECASE)


class ImportanceScorer:
    """
    Scores messages for how much they are worth keeping.

    Formula (non-system messages):
        score = base_score
              + recency × recency_weight
              + min(markers × marker_bonus, max_marker_bonus)

    recency is index / (total - 1): 0.0 for the oldest message,
    1.0 for the newest. Markers are code fences, error/warning
    keywords and tool invocation records.

    System messages always get system_score and the critical tier.
    """

    def __init__(
        self,
        config: Optional[ContextConfig] = None,
        estimator: Optional[TokenEstimator] = None,
    ):
        self.config = config or ContextConfig()
        self.estimator = estimator or TokenEstimator(self.config)

    @property
    def weights(self) -> ScoringConfig:
        return self.config.scoring

    def score_message(
        self,
        message: Message,
        index_from_start: int,
        total_count: int,
    ) -> ScoredMessage:
        """
        Score a single message at a position in its sequence.

        Args:
            message: Message to score
            index_from_start: 0-based position (0 = oldest)
            total_count: Length of the sequence

        Returns:
            ScoredMessage with score, tier and token estimate
        """
        score = self._raw_score(message, index_from_start, total_count)
        return ScoredMessage(
            message=message,
            score=score,
            importance=self.classify(score, message.role),
            estimated_tokens=self.estimator.estimate_message_tokens(message),
        )

    def score_messages(self, messages: List[Message]) -> List[ScoredMessage]:
        """
        Score a whole sequence, preserving input order.

        A message never scores below an older message of the same
        role, so markers on old turns cannot outrank newer ones.
        """
        total = len(messages)
        scored = []
        floor_by_role = {}

        for i, message in enumerate(messages):
            item = self.score_message(message, i, total)
            floor = floor_by_role.get(message.role)
            if floor is not None and item.score < floor:
                item.score = floor
                item.importance = self.classify(floor, message.role)
            floor_by_role[message.role] = item.score
            scored.append(item)

        return scored

    def classify(self, score: float, role: str = "") -> str:
        """Map a score to critical / high / medium / low."""
        if role == "system":
            return "critical"
        w = self.weights
        if score >= w.critical_threshold:
            return "critical"
        elif score >= w.high_threshold:
            return "high"
        elif score >= w.medium_threshold:
            return "medium"
        return "low"

    def _raw_score(self, message: Message, index: int, total: int) -> float:
        w = self.weights
        if message.role == "system":
            return w.system_score

        if total <= 1:
            recency = 1.0
        else:
            recency = min(max(index / (total - 1), 0.0), 1.0)

        score = w.base_score + recency * w.recency_weight
        score += min(self._count_markers(message) * w.marker_bonus, w.max_marker_bonus)
        return score

    def _count_markers(self, message: Message) -> int:
        text = message.text
        markers = 0
        if CODE_FENCE.search(text):
            markers += 1
        if ERROR_KEYWORDS.search(text):
            markers += 1
        if message.has_tool_blocks() or TOOL_MARKERS.search(text):
            markers += 1
        return markers
