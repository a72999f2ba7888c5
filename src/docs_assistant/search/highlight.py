"""
Highlight Extractor

Produces a bounded, highlight-annotated excerpt of a string for display.

The excerpt is built greedily left to right. Plain spans longer than the
whole budget are cut down to a window next to the neighbouring match, and
once the cumulative length exceeds the budget nothing further is emitted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Tuple


ELLIPSIS = "..."

DEFAULT_MAX_CHARS = 300
DEFAULT_WINDOW_CHARS = 50


@dataclass(frozen=True)
class Fragment:
    text: str
    is_match: bool = False
    is_ellipsis: bool = False


_ELLIPSIS_FRAGMENT = Fragment(ELLIPSIS, is_ellipsis=True)


def find_chunks(terms: Iterable[str], text: str) -> List[Tuple[int, int, bool]]:
    """
    Split `text` into (start, end, is_match) chunks covering it entirely.

    Terms are matched literally and case-insensitively. Overlapping or
    touching matches are merged into a single match chunk.
    """
    spans: List[Tuple[int, int]] = []
    for term in terms:
        if not term:
            continue
        pattern = re.compile(re.escape(term), re.IGNORECASE)
        spans.extend(m.span() for m in pattern.finditer(text) if m.end() > m.start())

    spans.sort()
    merged: List[List[int]] = []
    for start, end in spans:
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])

    chunks: List[Tuple[int, int, bool]] = []
    cursor = 0
    for start, end in merged:
        if start > cursor:
            chunks.append((cursor, start, False))
        chunks.append((start, end, True))
        cursor = end
    if cursor < len(text):
        chunks.append((cursor, len(text), False))

    return chunks


def highlight(
    terms: Iterable[str],
    text: str,
    max_chars: int = DEFAULT_MAX_CHARS,
    window: int = DEFAULT_WINDOW_CHARS,
) -> List[Fragment]:
    """
    Return display fragments for `text` with every occurrence of `terms`
    marked as a match.

    The total length of non-ellipsis fragments never exceeds `max_chars`.
    """
    chunks = find_chunks(list(terms), text)
    fragments: List[Fragment] = []
    used = 0

    for i, (start, end, is_match) in enumerate(chunks):
        part = text[start:end]

        if not is_match and len(part) > max_chars:
            next_is_match = i + 1 < len(chunks) and chunks[i + 1][2]
            prev_is_match = i > 0 and chunks[i - 1][2]
            if not (next_is_match or prev_is_match):
                continue

            used += window
            if used > max_chars:
                break
            if next_is_match:
                fragments.extend([_ELLIPSIS_FRAGMENT, Fragment(part[len(part) - window:])])
            else:
                fragments.extend([Fragment(part[:window]), _ELLIPSIS_FRAGMENT])
            continue

        used += len(part)
        if used > max_chars:
            break
        fragments.append(Fragment(part, is_match=is_match))

    return fragments
