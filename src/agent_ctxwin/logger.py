"""
Logging utilities for context management.
"""

from pathlib import Path
from typing import Optional
import json
from datetime import datetime


class ContextLogger:
    """
    Logs context management activity to JSONL files.

    Files:
    - health.jsonl: Context window state checks
    - compression.jsonl: Compression passes
    - summaries.jsonl: Generated summaries

    With no log path the logger is disabled and writes nothing.
    """

    def __init__(self, log_path: Optional[str] = None):
        """
        Initialize logger.

        Args:
            log_path: Path to log directory, or None to disable
        """
        self.log_path = Path(log_path) if log_path else None
        if self.log_path:
            self.log_path.mkdir(parents=True, exist_ok=True)

        self._last_compression: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.log_path is not None

    def _log(self, file: str, entry: dict):
        """Write a log entry to file."""
        if not self.enabled:
            return
        entry["timestamp"] = datetime.now().isoformat()
        with open(self.log_path / file, "a") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")

    def log_health(self, state, message_count: int):
        """Log a context window state check."""
        self._log("health.jsonl", {
            "event": "health_check",
            "max_tokens": state.max_tokens,
            "used_tokens": state.used_tokens,
            "usage_percent": state.usage_percent,
            "near_limit": state.near_limit,
            "needs_compression": state.needs_compression,
            "message_count": message_count,
        })

    def log_compression(self, result, auto: bool = False):
        """Log a compression pass."""
        self._last_compression = datetime.now().isoformat()
        self._log("compression.jsonl", {
            "event": "compression",
            "strategy": result.strategy,
            "auto": auto,
            "original_tokens": result.original_tokens,
            "compressed_tokens": result.compressed_tokens,
            "saved_tokens": result.saved_tokens,
            "removed_count": result.removed_count,
            "summarized": result.summary is not None,
        })

    def log_summary(self, summary):
        """Log a generated summary."""
        self._log("summaries.jsonl", {
            "event": "summary",
            "message_count": summary.message_count,
            "original_tokens": summary.original_tokens,
            "summary_tokens": summary.summary_tokens,
        })

    def last_compression_time(self) -> Optional[str]:
        """Get timestamp of last compression."""
        return self._last_compression

    def get_compression_stats(self, hours: int = 24) -> dict:
        """Get compression statistics for the last N hours."""
        if not self.enabled:
            return {}
        log_file = self.log_path / "compression.jsonl"
        if not log_file.exists():
            return {}

        since = datetime.now().timestamp() - (hours * 3600)
        count = 0
        total_savings = 0
        by_strategy = {}

        with open(log_file) as f:
            for line in f:
                entry = json.loads(line)
                ts = datetime.fromisoformat(entry["timestamp"]).timestamp()
                if ts > since:
                    count += 1
                    total_savings += entry.get("saved_tokens", 0)
                    strategy = entry.get("strategy", "unknown")
                    by_strategy[strategy] = by_strategy.get(strategy, 0) + 1

        return {
            "compression_count": count,
            "total_saved_tokens": total_savings,
            "compressions_by_strategy": by_strategy,
        }
