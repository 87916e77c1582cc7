"""
Context window configuration for agent-ctxwin.
"""

from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Optional
import yaml


DEFAULT_CONFIG_PATHS = [
    "./ctxwin.yaml",
    "./ctxwin.yml",
    str(Path.home() / ".ctxwin" / "ctxwin.yaml"),
]


@dataclass
class ScoringConfig:
    """Importance scoring constants (score range is 0-100)."""
    system_score: float = 100.0       # System messages, always critical
    base_score: float = 30.0           # user / assistant base
    recency_weight: float = 40.0       # Full bonus for the most recent message
    marker_bonus: float = 10.0         # Per content marker found
    max_marker_bonus: float = 20.0     # Cap across all markers

    # Tier cut points (score >= threshold)
    critical_threshold: float = 95.0
    high_threshold: float = 70.0
    medium_threshold: float = 50.0


@dataclass
class ContextConfig:
    """Configuration for context window management."""

    # Budget
    max_tokens: int = 200000
    tool_output_reserve_ratio: float = 0.2   # Reserved for tool output
    compression_threshold: float = 0.8       # Mandatory compression
    near_limit_threshold: float = 0.7        # Early warning band
    keep_recent_messages: int = 5            # Verbatim tail floor
    compression_target_ratio: float = 0.5    # Auto-compress down to this

    # Token estimation
    message_overhead_tokens: int = 4
    token_encoding: Optional[str] = None     # e.g. "cl100k_base" (needs tiktoken)

    # Truncation
    truncate_chars: int = 200
    truncation_marker: str = "... [truncated]"

    # Summarization
    summary_backend: str = "extractive"
    summary_max_chars: int = 1200
    summary_item_chars: int = 80
    summary_token_ratio: float = 0.8         # Summary budget vs. summarized tokens
    summary_language: str = "auto"           # Role labels: auto, en or zh

    # Fragment extraction
    fragment_merge_gap: int = 3
    fragment_context_lines: int = 2

    # Logging (JSONL, disabled when unset)
    log_path: Optional[str] = None

    scoring: ScoringConfig = field(default_factory=ScoringConfig)

    def __post_init__(self):
        """Convert nested dicts to config objects."""
        if isinstance(self.scoring, dict):
            self.scoring = ScoringConfig(**{
                k: v for k, v in self.scoring.items() if k in _field_names(ScoringConfig)
            })

    @property
    def effective_budget(self) -> float:
        """Token budget left for history once tool output is reserved."""
        return self.max_tokens * (1.0 - self.tool_output_reserve_ratio)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "ContextConfig":
        """
        Load config from YAML file or return defaults.

        An explicit path must exist; without one the default
        locations are tried before falling back to defaults.
        """
        if config_path:
            if not Path(config_path).exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
        else:
            for path in DEFAULT_CONFIG_PATHS:
                if Path(path).exists():
                    config_path = path
                    break

        if not config_path:
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        # Handle nested context config
        if "context" in data:
            data = data["context"] or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "ContextConfig":
        """Create config from dictionary, ignoring unknown keys."""
        known = _field_names(cls)
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict:
        """Export config to dict."""
        return asdict(self)

    def save(self, path: str):
        """Save config to YAML file."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def _field_names(cls) -> set:
    return {f.name for f in fields(cls)}
