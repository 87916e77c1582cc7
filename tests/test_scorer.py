"""Tests for message importance scoring."""

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from agent_ctxwin import ContextConfig, ScoringConfig, ImportanceScorer, Message, ToolUseBlock


@pytest.fixture
def scorer():
    return ImportanceScorer(ContextConfig(max_tokens=10000))


class TestScoreMessages:
    """Test scoring across a sequence."""

    def test_system_scores_highest(self, scorer):
        messages = [
            Message(role="system", content="System instruction"),
            Message(role="user", content="User message"),
            Message(role="assistant", content="Assistant response"),
        ]
        scored = scorer.score_messages(messages)

        assert scored[0].score > scored[1].score
        assert scored[0].score > scored[2].score
        assert scored[0].importance == "critical"

    def test_recent_scores_higher(self, scorer):
        messages = [
            Message(role="user", content="Old message"),
            Message(role="assistant", content="Old response"),
            Message(role="user", content="Recent message"),
            Message(role="assistant", content="Recent response"),
        ]
        scored = scorer.score_messages(messages)

        assert scored[3].score > scored[0].score
        assert scored[2].score > scored[0].score

    def test_preserves_order_and_identity(self, scorer):
        messages = [Message(role="user", content=f"m{i}") for i in range(5)]
        scored = scorer.score_messages(messages)
        assert [s.message for s in scored] == messages

    def test_same_role_recency_monotonic(self, scorer):
        messages = []
        for i in range(10):
            role = "user" if i % 2 == 0 else "assistant"
            content = f"Turn {i}"
            if i in (0, 3):
                content += "\n```\nTraceback: error in main\n```"
            messages.append(Message(role=role, content=content))

        scored = scorer.score_messages(messages)
        for role in ("user", "assistant"):
            role_scores = [s.score for s in scored if s.message.role == role]
            assert role_scores == sorted(role_scores)

    def test_empty_sequence(self, scorer):
        assert scorer.score_messages([]) == []


class TestScoreMessage:
    """Test single-message scoring."""

    def test_system_is_critical(self, scorer):
        scored = scorer.score_message(Message(role="system", content="Critical system message"), 0, 1)
        assert scored.importance == "critical"

    def test_importance_is_valid_tier(self, scorer):
        scored = scorer.score_message(Message(role="user", content="Hi"), 0, 3)
        assert scored.importance in ("critical", "high", "medium", "low")

    def test_includes_token_estimate(self, scorer):
        scored = scorer.score_message(Message(role="user", content="Test message"), 0, 1)
        assert scored.estimated_tokens > 0

    def test_single_message_gets_full_recency(self, scorer):
        scored = scorer.score_message(Message(role="user", content="Test message"), 0, 1)
        assert scored.score == pytest.approx(70.0)
        assert scored.importance == "high"

    def test_oldest_message_is_low(self, scorer):
        scored = scorer.score_message(Message(role="assistant", content="plain reply"), 0, 10)
        assert scored.score == pytest.approx(30.0)
        assert scored.importance == "low"

    def test_code_fence_bonus(self, scorer):
        plain = scorer.score_message(Message(role="assistant", content="Here you go"), 2, 5)
        code = scorer.score_message(Message(role="assistant", content="Here:\n```py\nprint(1)\n```"), 2, 5)
        assert code.score == pytest.approx(plain.score + 10)

    def test_error_keyword_bonus(self, scorer):
        plain = scorer.score_message(Message(role="user", content="It works"), 1, 5)
        error = scorer.score_message(Message(role="user", content="It failed with an Error"), 1, 5)
        assert error.score > plain.score

    def test_tool_block_bonus(self, scorer):
        plain = scorer.score_message(Message(role="assistant", content="Reading"), 1, 5)
        tool = scorer.score_message(Message(role="assistant", content=[
            ToolUseBlock(id="tu_1", name="read_file", input={"path": "a.py"}),
        ]), 1, 5)
        assert tool.score > plain.score

    def test_marker_bonus_capped(self, scorer):
        content = "```\nerror\n```\n[tool_use run]"
        scored = scorer.score_message(Message(role="user", content=content), 0, 10)
        assert scored.score == pytest.approx(50.0)


class TestClassify:
    """Test tier mapping."""

    def test_thresholds(self, scorer):
        assert scorer.classify(96) == "critical"
        assert scorer.classify(75) == "high"
        assert scorer.classify(55) == "medium"
        assert scorer.classify(40) == "low"

    def test_monotonic(self, scorer):
        order = {"low": 0, "medium": 1, "high": 2, "critical": 3}
        tiers = [order[scorer.classify(s)] for s in range(0, 101)]
        assert tiers == sorted(tiers)

    def test_system_always_critical(self, scorer):
        assert scorer.classify(0, "system") == "critical"

    def test_custom_thresholds(self):
        config = ContextConfig(scoring=ScoringConfig(high_threshold=60.0, medium_threshold=40.0))
        scorer = ImportanceScorer(config)
        assert scorer.classify(65) == "high"
        assert scorer.classify(45) == "medium"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
