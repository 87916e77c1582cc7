"""
agent-ctxwin: Context Window Management for AI Agents

Keeps a long-running conversation inside a fixed token budget:
- Token estimation (heuristic, or tiktoken when configured)
- Importance scoring (role, recency, content markers)
- Compression strategies: remove_old, truncate, summarize, smart
- Query-relevant file fragment extraction

Usage:
    from agent_ctxwin import ContextManager, ContextConfig, Message

    ctx = ContextManager(ContextConfig(max_tokens=100000))
    history = [Message(role="user", content="Hello!")]

    state = ctx.get_context_window_state(history)
    managed = ctx.auto_manage_context(history)
"""

from .config import ContextConfig, ScoringConfig
from .manager import ContextManager
from .compression import CompressionEngine
from .monitor import ContextWindowMonitor
from .scorer import ImportanceScorer
from .fragments import FragmentExtractor
from .summarizer import Summarizer, ExtractiveSummarizer, create_summarizer
from .tokens import TokenEstimator
from .logger import ContextLogger
from .types import (
    Message,
    TextBlock,
    ToolUseBlock,
    ToolResultBlock,
    ScoredMessage,
    TokenCount,
    ContextWindowState,
    CompressionConfig,
    CompressionResult,
    ConversationSummary,
    FileFragment,
    AutoManageResult,
)

__version__ = "0.1.0"
__all__ = [
    "ContextManager",
    "ContextConfig",
    "ScoringConfig",
    "CompressionEngine",
    "ContextWindowMonitor",
    "ImportanceScorer",
    "FragmentExtractor",
    "Summarizer",
    "ExtractiveSummarizer",
    "create_summarizer",
    "TokenEstimator",
    "ContextLogger",
    "Message",
    "TextBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "ScoredMessage",
    "TokenCount",
    "ContextWindowState",
    "CompressionConfig",
    "CompressionResult",
    "ConversationSummary",
    "FileFragment",
    "AutoManageResult",
]
