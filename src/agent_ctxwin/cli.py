#!/usr/bin/env python3
"""
Command-line interface for agent-ctxwin.

Transcripts are JSON files holding a list of messages, or an object
with a "messages" list. Each message has role, content and optional
id / timestamp.

Usage:
    ctxwin tokens session.json
    ctxwin status session.json --system-prompt prompt.txt
    ctxwin compress session.json -s smart -t 4000 -o compact.json
    ctxwin summarize session.json
    ctxwin fragments src/app.py "load config" -n 3 -l 20
    ctxwin init
"""

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from .config import ContextConfig
from .manager import ContextManager
from .types import STRATEGIES, CompressionConfig, Message


def load_transcript(path: str) -> List[Message]:
    """Load messages from a JSON transcript file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("messages", [])
    return [Message.from_dict(m) for m in data]


def save_transcript(path: str, messages: List[Message]):
    """Write messages to a JSON transcript file."""
    data = {"messages": [m.to_dict() for m in messages]}
    Path(path).write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def _read_system_prompt(args) -> Optional[str]:
    if getattr(args, "system_prompt", None):
        return Path(args.system_prompt).read_text(encoding="utf-8")
    return None


def _manager(args) -> ContextManager:
    return ContextManager(ContextConfig.load(args.config))


def cmd_tokens(args):
    """Show token counts for a transcript."""
    ctx = _manager(args)
    messages = load_transcript(args.transcript)
    count = ctx.count_tokens(messages, _read_system_prompt(args))
    print(f"Messages:      {len(messages)}")
    print(f"Message tokens: {count.messages}")
    print(f"System prompt:  {count.system_prompt}")
    print(f"Total:          {count.total}")
    print(f"Available:      {count.available}")


def cmd_status(args):
    """Show context window state for a transcript."""
    ctx = _manager(args)
    messages = load_transcript(args.transcript)
    state = ctx.get_context_window_state(messages, _read_system_prompt(args))

    if args.json:
        print(json.dumps(asdict(state), indent=2))
        return

    print(f"Used: {state.used_tokens} / {state.max_tokens} tokens ({state.usage_percent:.1%} of budget)")
    if state.needs_compression:
        print("⚠ Compression needed")
    elif state.near_limit:
        print("⚠ Near limit")
    else:
        print("✓ Within budget")


def cmd_compress(args):
    """Compress a transcript with a strategy."""
    ctx = _manager(args)
    messages = load_transcript(args.transcript)

    target = args.target
    if target is None:
        target = int(ctx.config.effective_budget * ctx.config.compression_target_ratio)

    result = ctx.compress_messages(messages, CompressionConfig(
        strategy=args.strategy,
        target_tokens=target,
        keep_recent_messages=args.keep_recent,
        keep_system_messages=not args.drop_system,
        generate_summary=not args.no_summary,
    ))

    print(f"Strategy: {result.strategy}")
    print(f"Messages: {len(messages)} → {len(result.messages)} ({result.removed_count} removed)")
    print(f"Tokens:   {result.original_tokens} → {result.compressed_tokens} (saved {result.saved_tokens})")
    if result.compressed_tokens > target:
        print(f"⚠ Target of {target} tokens not reached")
    if result.summary:
        print(f"Summary of {result.summary.message_count} messages added")

    if args.output:
        save_transcript(args.output, result.messages)
        print(f"✓ Wrote: {args.output}")


def cmd_summarize(args):
    """Print a summary of a transcript."""
    ctx = _manager(args)
    messages = load_transcript(args.transcript)
    summary = ctx.generate_summary(messages)
    print(summary.content)
    print()
    print(f"({summary.message_count} messages, {summary.original_tokens} → {summary.summary_tokens} tokens)")


def cmd_fragments(args):
    """Extract query-relevant fragments from a file."""
    ctx = _manager(args)
    text = Path(args.file).read_text(encoding="utf-8", errors="replace")
    fragments = ctx.extract_file_fragments(
        text, args.file, " ".join(args.query), args.limit, args.lines
    )

    if args.json:
        print(json.dumps([asdict(f) for f in fragments], indent=2, ensure_ascii=False))
        return

    if not fragments:
        print("No fragments (empty file).")
        return

    for f in fragments:
        print(f"[{f.path}:{f.start_line}-{f.end_line}] (score: {f.relevance_score:.1f})")
        print(f.content)
        print()


def cmd_init(args):
    """Write a default config file."""
    config_path = Path(args.output or "ctxwin.yaml")

    if config_path.exists() and not args.force:
        print(f"Config already exists: {config_path}")
        print("Use --force to overwrite.")
        return

    ContextConfig().save(str(config_path))
    print(f"✓ Created config: {config_path}")


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="ctxwin - context window management for AI agents",
        prog="ctxwin"
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to config file (default: ./ctxwin.yaml if present)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # tokens
    p_tokens = subparsers.add_parser("tokens", help="Count transcript tokens")
    p_tokens.add_argument("transcript", help="JSON transcript file")
    p_tokens.add_argument("-p", "--system-prompt", help="File holding the system prompt")
    p_tokens.set_defaults(func=cmd_tokens)

    # status
    p_status = subparsers.add_parser("status", help="Show context window state")
    p_status.add_argument("transcript", help="JSON transcript file")
    p_status.add_argument("-p", "--system-prompt", help="File holding the system prompt")
    p_status.add_argument("--json", action="store_true", help="Output as JSON")
    p_status.set_defaults(func=cmd_status)

    # compress
    p_compress = subparsers.add_parser("compress", help="Compress a transcript")
    p_compress.add_argument("transcript", help="JSON transcript file")
    p_compress.add_argument("-s", "--strategy", choices=STRATEGIES, default="smart", help="Compression strategy")
    p_compress.add_argument("-t", "--target", type=int, help="Target tokens (default: from config)")
    p_compress.add_argument("-k", "--keep-recent", type=int, help="Recent messages kept verbatim")
    p_compress.add_argument("--drop-system", action="store_true", help="Allow dropping system messages")
    p_compress.add_argument("--no-summary", action="store_true", help="Never generate summaries")
    p_compress.add_argument("-o", "--output", help="Write compressed transcript here")
    p_compress.set_defaults(func=cmd_compress)

    # summarize
    p_summarize = subparsers.add_parser("summarize", help="Summarize a transcript")
    p_summarize.add_argument("transcript", help="JSON transcript file")
    p_summarize.set_defaults(func=cmd_summarize)

    # fragments
    p_fragments = subparsers.add_parser("fragments", help="Extract relevant file fragments")
    p_fragments.add_argument("file", help="File to extract from")
    p_fragments.add_argument("query", nargs="+", help="Relevance query")
    p_fragments.add_argument("-n", "--limit", type=int, default=3, help="Max fragments")
    p_fragments.add_argument("-l", "--lines", type=int, default=50, help="Max lines per fragment")
    p_fragments.add_argument("--json", action="store_true", help="Output as JSON")
    p_fragments.set_defaults(func=cmd_fragments)

    # init
    p_init = subparsers.add_parser("init", help="Write a default config")
    p_init.add_argument("-o", "--output", help="Config file path")
    p_init.add_argument("-f", "--force", action="store_true", help="Overwrite existing")
    p_init.set_defaults(func=cmd_init)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except FileNotFoundError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)
    except (json.JSONDecodeError, ValueError) as e:
        print(f"✗ Invalid input: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nAborted.")
        sys.exit(1)


if __name__ == "__main__":
    main()
