"""
Query-relevant fragment extraction from file contents.
"""

from typing import List, Optional, Tuple
import re

from .config import ContextConfig
from .types import FileFragment


def query_terms(query: str) -> List[str]:
    """Lowercase word terms of a query, de-duplicated in order."""
    seen = []
    for term in re.findall(r"\w+", (query or "").lower()):
        if term not in seen:
            seen.append(term)
    return seen


class FragmentExtractor:
    """
    Extracts ranked line-range excerpts from a file.

    Lines are scored by query term occurrences, nearby matching
    lines are merged into windows, windows get a little surrounding
    context and are ranked by aggregate score.
    """

    def __init__(self, config: Optional[ContextConfig] = None):
        self.config = config or ContextConfig()

    def extract(
        self,
        file_text: str,
        file_path: str,
        query: str,
        max_fragments: int = 3,
        max_lines_per_fragment: int = 50,
    ) -> List[FileFragment]:
        """
        Extract the most relevant fragments of a file.

        Args:
            file_text: Full file contents
            file_path: Path recorded on each fragment
            query: Free-text relevance query
            max_fragments: Maximum fragments to return
            max_lines_per_fragment: Maximum lines per fragment

        Returns:
            Fragments ranked by relevance. When nothing matches, a single
            fragment covering the start of the file with score 0.
        """
        if not file_text or max_fragments <= 0:
            return []
        max_lines = max(1, max_lines_per_fragment)

        lines = file_text.split("\n")
        terms = query_terms(query)
        line_scores = [self._score_line(line, terms) for line in lines]

        matches = [i for i, s in enumerate(line_scores) if s > 0]
        if not matches:
            end = min(max_lines, len(lines))
            return [FileFragment(
                path=file_path,
                content="\n".join(lines[:end]),
                start_line=1,
                end_line=end,
                relevance_score=0.0,
            )]

        windows = self._pad(self._merge(matches, max_lines), len(lines), max_lines)

        ranked = sorted(
            windows,
            key=lambda w: (-sum(line_scores[w[0]:w[1] + 1]), w[0]),
        )

        fragments = []
        for start, end in ranked[:max_fragments]:
            fragments.append(FileFragment(
                path=file_path,
                content="\n".join(lines[start:end + 1]),
                start_line=start + 1,
                end_line=end + 1,
                relevance_score=float(sum(line_scores[start:end + 1])),
            ))
        return fragments

    def _score_line(self, line: str, terms: List[str]) -> int:
        if not terms:
            return 0
        lowered = line.lower()
        return sum(lowered.count(term) for term in terms)

    def _merge(self, matches: List[int], max_lines: int) -> List[Tuple[int, int]]:
        """Group matching line indexes into 0-based inclusive windows."""
        gap = max(1, self.config.fragment_merge_gap)
        windows = []
        start = prev = matches[0]

        for idx in matches[1:]:
            fits = idx - start + 1 <= max_lines
            if fits and idx - prev <= gap:
                prev = idx
                continue
            windows.append((start, prev))
            start = prev = idx

        windows.append((start, prev))
        return windows

    def _pad(
        self,
        windows: List[Tuple[int, int]],
        line_count: int,
        max_lines: int,
    ) -> List[Tuple[int, int]]:
        """Add context lines around windows without overlap or overflow."""
        context = max(0, self.config.fragment_context_lines)
        padded = []

        for i, (start, end) in enumerate(windows):
            lower = padded[-1][1] + 1 if padded else 0
            upper = windows[i + 1][0] - 1 if i + 1 < len(windows) else line_count - 1

            room = max_lines - (end - start + 1)
            before = min(context, start - lower, room // 2 + room % 2)
            after = min(context, upper - end, room - before)
            padded.append((start - max(0, before), end + max(0, after)))

        return padded
