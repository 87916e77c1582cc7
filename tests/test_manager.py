"""Tests for ContextManager: window state, auto management, config and logging."""

import json
import pytest
import tempfile
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from agent_ctxwin import (
    CompressionConfig,
    ContextConfig,
    ContextManager,
    Message,
    Summarizer,
)


def make_messages(count, chars=1000):
    return [
        Message(role="user" if i % 2 == 0 else "assistant", content="x" * chars, id=f"msg-{i}")
        for i in range(count)
    ]


@pytest.fixture
def ctx():
    return ContextManager(ContextConfig(
        max_tokens=10000,
        tool_output_reserve_ratio=0.2,
        compression_threshold=0.8,
        keep_recent_messages=5,
    ))


@pytest.fixture
def log_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "logs"


class TestWindowState:
    """Test context window state."""

    def test_small_history(self, ctx):
        state = ctx.get_context_window_state([
            Message(role="user", content="Hello"),
            Message(role="assistant", content="Hi there!"),
        ])

        assert state.max_tokens == 10000
        assert state.used_tokens > 0
        assert 0 <= state.usage_percent < 0.1
        assert not state.near_limit
        assert not state.needs_compression

    def test_detects_near_limit(self, ctx):
        state = ctx.get_context_window_state([Message(role="user", content="x" * 30000)])

        # 7504 tokens against an 8000 token effective budget
        assert state.used_tokens == 7504
        assert state.usage_percent == pytest.approx(7504 / 8000)
        assert state.near_limit
        assert state.needs_compression

    def test_usage_can_exceed_one(self, ctx):
        state = ctx.get_context_window_state([Message(role="user", content="x" * 50000)])
        assert state.usage_percent > 1.0
        assert state.needs_compression

    def test_warning_band(self, ctx):
        state = ctx.get_context_window_state([Message(role="user", content="x" * 23984)])

        assert state.usage_percent == pytest.approx(0.75)
        assert state.near_limit
        assert not state.needs_compression

    def test_system_prompt_counts(self, ctx):
        messages = [Message(role="user", content="Hello")]
        without = ctx.get_context_window_state(messages)
        with_prompt = ctx.get_context_window_state(messages, "You are a careful assistant. " * 20)
        assert with_prompt.used_tokens > without.used_tokens

    def test_zero_budget(self):
        ctx = ContextManager(ContextConfig(max_tokens=0))
        state = ctx.get_context_window_state([Message(role="user", content="Hello")])
        assert state.needs_compression
        assert state.near_limit


class TestNeedsCompression:
    def test_small_history(self, ctx):
        assert not ctx.needs_compression([Message(role="user", content="Hello")])

    def test_large_history(self, ctx):
        assert ctx.needs_compression([Message(role="user", content="x" * 35000)])


class TestAutoManage:
    """Test automatic context management."""

    def test_no_compression_needed(self, ctx):
        messages = [
            Message(role="user", content="Hello"),
            Message(role="assistant", content="Hi!"),
        ]
        managed = ctx.auto_manage_context(messages)

        assert managed.compressed is False
        assert managed.messages == messages
        assert managed.result is None

    def test_compresses_when_needed(self, ctx):
        messages = [
            Message(role="user", content="x" * 30000),
            Message(role="assistant", content="y" * 30000),
        ]
        managed = ctx.auto_manage_context(messages)

        assert managed.compressed is True
        # Both messages fall inside the recent tail, so nothing can go
        assert managed.result.compressed_tokens <= managed.result.original_tokens

    def test_brings_history_under_threshold(self, ctx):
        messages = make_messages(40)
        assert ctx.needs_compression(messages)

        managed = ctx.auto_manage_context(messages)

        assert managed.compressed
        assert managed.result.strategy == "smart"
        assert managed.result.compressed_tokens <= 4000
        assert not ctx.needs_compression(managed.messages)
        assert [m.id for m in managed.messages[-5:]] == [f"msg-{i}" for i in range(35, 40)]

    def test_target_leaves_room_for_system_prompt(self, ctx):
        system_prompt = "p" * 4000  # 1000 tokens
        managed = ctx.auto_manage_context(make_messages(40), system_prompt)

        assert managed.compressed
        assert managed.result.compressed_tokens <= 3000

    def test_keeps_system_messages(self, ctx):
        messages = [Message(role="system", content="Rules", id="sys-1")] + make_messages(40)
        managed = ctx.auto_manage_context(messages)
        assert managed.messages[0].id == "sys-1"


class TestConfig:
    """Test runtime configuration."""

    def test_defaults(self):
        config = ContextManager().get_config()
        assert config.max_tokens == 200000
        assert config.tool_output_reserve_ratio == 0.2
        assert config.compression_threshold == 0.8
        assert config.keep_recent_messages == 5

    def test_update(self, ctx):
        ctx.update_config(max_tokens=50000)
        assert ctx.get_config().max_tokens == 50000
        assert ctx.get_context_window_state([]).max_tokens == 50000

    def test_update_takes_effect(self, ctx):
        messages = [Message(role="user", content="x" * 30000)]
        assert ctx.needs_compression(messages)

        ctx.update_config(max_tokens=100000)
        assert not ctx.needs_compression(messages)

    def test_update_unknown_key(self, ctx):
        with pytest.raises(ValueError):
            ctx.update_config(max_tokenz=5)

    def test_get_config_is_copy(self, ctx):
        config = ctx.get_config()
        config.max_tokens = 1
        config.scoring.base_score = 0
        assert ctx.config.max_tokens == 10000
        assert ctx.config.scoring.base_score == 30.0

    def test_config_path(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "ctxwin.yaml"
            path.write_text("context:\n  max_tokens: 32000\n")
            ctx = ContextManager(config_path=str(path))
            assert ctx.config.max_tokens == 32000


class TestSummaryLog:
    """Test the per-instance summary log."""

    def test_store_and_clear(self, ctx):
        ctx.generate_summary([Message(role="user", content="What is a heap?")])
        assert len(ctx.get_summaries()) == 1

        ctx.clear_summaries()
        assert ctx.get_summaries() == []

    def test_log_is_per_instance(self):
        first = ContextManager()
        second = ContextManager()
        first.generate_summary([Message(role="user", content="Hello?")])

        assert len(first.get_summaries()) == 1
        assert second.get_summaries() == []

    def test_get_summaries_returns_copy(self, ctx):
        ctx.generate_summary([Message(role="user", content="Hello?")])
        ctx.get_summaries().clear()
        assert len(ctx.get_summaries()) == 1


class ShortSummarizer(Summarizer):
    def summarize(self, messages):
        return f"{len(messages)} messages"


class TestCustomSummarizer:
    def test_injected_backend(self):
        ctx = ContextManager(ContextConfig(max_tokens=10000), summarizer=ShortSummarizer())
        result = ctx.compress_messages(make_messages(10, chars=200), CompressionConfig(
            strategy="summarize", target_tokens=0, keep_recent_messages=2,
        ))

        assert result.summary.content == "8 messages"
        assert result.messages[0].content == "8 messages"

    def test_survives_config_update(self):
        ctx = ContextManager(summarizer=ShortSummarizer())
        ctx.update_config(max_tokens=1000)
        assert ctx.generate_summary(make_messages(3)).content == "3 messages"


class TestLogging:
    """Test JSONL activity logs."""

    def test_disabled_by_default(self, ctx):
        assert not ctx.logger.enabled
        assert ctx.health_check()["compression_stats"] == {}

    def test_writes_logs(self, log_dir):
        ctx = ContextManager(ContextConfig(max_tokens=10000, log_path=str(log_dir)))
        messages = make_messages(20, chars=100)

        ctx.get_context_window_state(messages)
        ctx.compress_messages(messages, CompressionConfig(strategy="summarize", target_tokens=100))

        health = [json.loads(l) for l in (log_dir / "health.jsonl").read_text().splitlines()]
        assert health[0]["message_count"] == 20

        compression = [json.loads(l) for l in (log_dir / "compression.jsonl").read_text().splitlines()]
        assert len(compression) == 1
        assert compression[0]["strategy"] == "summarize"
        assert compression[0]["summarized"] is True
        assert compression[0]["auto"] is False

        assert (log_dir / "summaries.jsonl").exists()

    def test_auto_manage_logged_once(self, log_dir):
        ctx = ContextManager(ContextConfig(max_tokens=10000, log_path=str(log_dir)))
        ctx.auto_manage_context(make_messages(40))

        entries = [json.loads(l) for l in (log_dir / "compression.jsonl").read_text().splitlines()]
        assert len(entries) == 1
        assert entries[0]["auto"] is True

    def test_health_check(self, log_dir):
        ctx = ContextManager(ContextConfig(max_tokens=10000, log_path=str(log_dir)))
        ctx.compress_messages(make_messages(20, chars=100), CompressionConfig(
            strategy="remove_old", target_tokens=100,
        ))
        ctx.compress_messages(make_messages(20, chars=100), CompressionConfig(
            strategy="remove_old", target_tokens=100,
        ))

        health = ctx.health_check()
        assert health["last_compression"] is not None
        assert health["compression_stats"]["compression_count"] == 2
        assert health["compression_stats"]["compressions_by_strategy"] == {"remove_old": 2}
        assert health["compression_stats"]["total_saved_tokens"] > 0
        assert health["config"]["max_tokens"] == 10000


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
