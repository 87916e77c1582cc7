"""Core data types for context window management."""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Union
from datetime import datetime
import json
import uuid


ROLES = ("system", "user", "assistant")
IMPORTANCE_LEVELS = ("critical", "high", "medium", "low")
STRATEGIES = ("remove_old", "truncate", "summarize", "smart")


def new_message_id(prefix: str = "msg") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@dataclass
class TextBlock:
    """Plain text content block."""
    text: str
    type: str = "text"


@dataclass
class ToolUseBlock:
    """Tool invocation requested by the assistant."""
    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)
    type: str = "tool_use"


@dataclass
class ToolResultBlock:
    """Output returned by a tool."""
    tool_use_id: str
    content: Union[str, List[Any]] = ""
    is_error: bool = False
    type: str = "tool_result"


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock]
Content = Union[str, List[ContentBlock]]


def block_from_dict(data: dict) -> ContentBlock:
    """Build a content block from its JSON form."""
    block_type = data.get("type", "text")
    if block_type == "tool_use":
        return ToolUseBlock(
            id=data.get("id", ""),
            name=data.get("name", ""),
            input=data.get("input") or {},
        )
    if block_type == "tool_result":
        return ToolResultBlock(
            tool_use_id=data.get("tool_use_id", ""),
            content=data.get("content", ""),
            is_error=bool(data.get("is_error", False)),
        )
    return TextBlock(text=data.get("text", ""))


def block_to_dict(block: ContentBlock) -> dict:
    if isinstance(block, ToolUseBlock):
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    if isinstance(block, ToolResultBlock):
        return {
            "type": "tool_result",
            "tool_use_id": block.tool_use_id,
            "content": block.content,
            "is_error": block.is_error,
        }
    return {"type": "text", "text": block.text}


def block_to_text(block: Any) -> str:
    """Render one content block as plain text."""
    if isinstance(block, str):
        return block
    if isinstance(block, dict):
        block = block_from_dict(block)
    if isinstance(block, TextBlock):
        return block.text or ""
    if isinstance(block, ToolUseBlock):
        return f"[tool_use {block.name}] {json.dumps(block.input, ensure_ascii=False, default=str)}"
    if isinstance(block, ToolResultBlock):
        content = block.content
        if not isinstance(content, str):
            content = json.dumps(content, ensure_ascii=False, default=str)
        return f"[tool_result] {content}"
    return ""


def content_to_text(content: Any) -> str:
    """
    Render message content as plain text.

    Strings pass through, block lists are joined line by line,
    anything else (including None) renders as an empty string.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(block_to_text(b) for b in content)
    return ""


@dataclass
class Message:
    """A single conversation message."""
    role: str
    content: Content
    id: str = field(default_factory=new_message_id)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def text(self) -> str:
        return content_to_text(self.content)

    def has_tool_blocks(self) -> bool:
        if not isinstance(self.content, list):
            return False
        return any(isinstance(b, (ToolUseBlock, ToolResultBlock)) for b in self.content)

    def to_dict(self) -> dict:
        if isinstance(self.content, list):
            content = [block_to_dict(b) for b in self.content]
        else:
            content = self.content
        return {
            "id": self.id,
            "role": self.role,
            "content": content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        content = data.get("content", "")
        if isinstance(content, list):
            content = [
                block_from_dict(b) if isinstance(b, dict) else TextBlock(text=str(b))
                for b in content
            ]
        elif content is None:
            content = ""

        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            try:
                timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
            except ValueError:
                timestamp = None

        return cls(
            role=data.get("role", "user"),
            content=content,
            id=data.get("id") or new_message_id(),
            timestamp=timestamp or datetime.now(),
        )


@dataclass
class ScoredMessage:
    """Message with its importance score for one compression pass."""
    message: Message
    score: float
    importance: str
    estimated_tokens: int


@dataclass
class TokenCount:
    """Token usage breakdown."""
    messages: int
    system_prompt: int
    total: int
    available: int  # max_tokens - total, negative on overflow


@dataclass
class ContextWindowState:
    """Live usage of the context window."""
    max_tokens: int
    used_tokens: int
    usage_percent: float
    near_limit: bool
    needs_compression: bool


@dataclass
class ConversationSummary:
    """Condensed rendering of a span of messages."""
    content: str
    message_count: int
    original_tokens: int
    summary_tokens: int
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "message_count": self.message_count,
            "original_tokens": self.original_tokens,
            "summary_tokens": self.summary_tokens,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class FileFragment:
    """Line-ranged excerpt of a file (1-based, inclusive)."""
    path: str
    content: str
    start_line: int
    end_line: int
    relevance_score: float = 0.0


@dataclass
class CompressionConfig:
    """
    Options for a single compression call.

    keep_recent_messages defaults to the engine's configured floor
    when left as None.
    """
    strategy: str = "smart"
    target_tokens: int = 0
    keep_recent_messages: Optional[int] = None
    keep_system_messages: bool = True
    generate_summary: bool = True


@dataclass
class CompressionResult:
    """Result of a compression pass."""
    messages: List[Message]
    removed_count: int
    original_tokens: int
    compressed_tokens: int
    saved_tokens: int
    summary: Optional[ConversationSummary] = None
    strategy: str = ""


@dataclass
class AutoManageResult:
    """Result of a per-turn automatic context check."""
    compressed: bool
    messages: List[Message]
    result: Optional[CompressionResult] = None
