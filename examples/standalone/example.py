#!/usr/bin/env python3
"""
Standalone example of agent-ctxwin usage.

Run from this directory:
    python example.py
"""

from pathlib import Path
import sys

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from agent_ctxwin import CompressionConfig, ContextConfig, ContextManager, Message


SOURCE = '''import json


def load_settings(path):
    with open(path) as f:
        return json.load(f)


def save_settings(path, settings):
    with open(path, "w") as f:
        json.dump(settings, f)
'''


def main():
    # Small budget so compression kicks in quickly
    ctx = ContextManager(ContextConfig(max_tokens=4000, keep_recent_messages=4))

    print("=== agent-ctxwin Example ===\n")

    history = [Message(role="system", content="You are a careful coding assistant.")]
    for turn in range(12):
        history.append(Message(role="user", content=f"Question {turn}: how do I fix step {turn}? " + "detail " * 60))
        history.append(Message(role="assistant", content=f"Answer {turn}. I updated step {turn}. " + "context " * 60))

    # Window state
    state = ctx.get_context_window_state(history)
    print(f"Messages: {len(history)}")
    print(f"Used:     {state.used_tokens} / {state.max_tokens} tokens ({state.usage_percent:.0%} of budget)")
    print(f"Needs compression: {state.needs_compression}\n")

    # Compare strategies on the same history
    print("--- Strategies ---\n")
    for strategy in ("remove_old", "truncate", "summarize", "smart"):
        result = ctx.compress_messages(history, CompressionConfig(strategy=strategy, target_tokens=1200))
        print(f"{strategy:<10} {result.original_tokens} → {result.compressed_tokens} tokens, "
              f"{len(result.messages)} messages")

    # Automatic management, as an agent loop would call it
    print("\n--- Auto manage ---\n")
    managed = ctx.auto_manage_context(history)
    print(f"Compressed: {managed.compressed}")
    print(f"Messages:   {len(history)} → {len(managed.messages)}")

    summaries = ctx.get_summaries()
    if summaries:
        print("\nLatest summary:")
        print(summaries[-1].content)

    # File fragments for a query
    print("\n--- Fragments for 'save settings' ---\n")
    for fragment in ctx.extract_file_fragments(SOURCE, "settings.py", "save settings", 2, 10):
        print(f"[{fragment.path}:{fragment.start_line}-{fragment.end_line}] score {fragment.relevance_score:.0f}")
        print(fragment.content)
        print()

    print("=== Done ===")


if __name__ == "__main__":
    main()
