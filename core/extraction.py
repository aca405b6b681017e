"""
Extraction of candidate file mentions from transcribed text.

Extraction casts a wide net and relies on the index to filter it: a span only
becomes a candidate when it names a known filename or stem. Three passes run in
order, and later passes never claim a span overlapping an earlier find:

1. Literal dotted filenames ("fixtures.go", "gen/fixtures.go"). This runs first
   because word tokenization splits on ".".
2. Spoken "X [Y [Z]] dot ext" forms, trying the shortest word prefix first.
3. Sliding windows of 1 to 3 consecutive words matching a filename or stem,
   as-is or with the spaces removed.
"""

import os
import re
from typing import Iterator

from constants import (
    CANONICAL_PLACEHOLDER_PATTERN,
    LITERAL_FILENAME_PATTERN,
    MAX_EXTRACTION_WINDOW,
    SPOKEN_DOT_PATTERN,
    SPOKEN_EXTENSION_PATTERN,
    WORD_PATTERN,
)
from core.file_index import WorkspaceFileIndex
from core.models import ExtractedMention
from core.resolver import normalize_mention

# A spoken word starts at a word character, so "@app" or "(app" yields "app" and
# a leading mention prefix stays outside the span. "foo-bar" is still one word.
_PREFIX_WORD_PATTERN = re.compile(r"\w\S*")


def extract_mention_candidates(
    text: str, index: WorkspaceFileIndex
) -> list[ExtractedMention]:
    """
    Find spans of `text` that plausibly mention an indexed file.

    Spans inside canonical placeholders (`[[:path:]]`) are left alone, so running
    extraction over already-rewritten text finds nothing new there.

    Args:
        text: Transcribed text.
        index: A built workspace index.

    Returns:
        Non-overlapping mentions sorted by position.
    """
    protected = [m.span() for m in CANONICAL_PLACEHOLDER_PATTERN.finditer(text)]
    mentions: list[ExtractedMention] = []

    def accept(start: int, end: int) -> None:
        if any(start < p_end and p_start < end for p_start, p_end in protected):
            return
        if any(existing.overlaps(start, end) for existing in mentions):
            return
        mentions.append(ExtractedMention(start=start, end=end, text=text[start:end]))

    for start, end in _literal_filename_spans(text, index):
        accept(start, end)

    for start, end in _spoken_dot_spans(text, index):
        accept(start, end)

    for start, end in _word_window_spans(text, index):
        accept(start, end)

    mentions.sort(key=lambda m: m.start)
    return mentions


def _names_indexed_file(query: str, index: WorkspaceFileIndex) -> bool:
    return bool(
        index.files_matching_filename(query) or index.files_matching_stem(query)
    )


def _literal_filename_spans(
    text: str, index: WorkspaceFileIndex
) -> Iterator[tuple[int, int]]:
    for match in LITERAL_FILENAME_PATTERN.finditer(text):
        filename = match.group().rsplit("/", 1)[-1]
        stem = os.path.splitext(filename)[0]
        if index.files_matching_filename(filename) or index.files_matching_stem(stem):
            yield match.span()


def _spoken_dot_spans(
    text: str, index: WorkspaceFileIndex
) -> Iterator[tuple[int, int]]:
    for dot in SPOKEN_DOT_PATTERN.finditer(text):
        extension = SPOKEN_EXTENSION_PATTERN.match(text, dot.end())
        if extension is None:
            continue

        prefix_words = list(_PREFIX_WORD_PATTERN.finditer(text, 0, dot.start()))
        if not prefix_words:
            continue

        # Shortest prefix first, so "open the app coordinator dot swift" stops at
        # "app coordinator" as soon as that names a file.
        for length in range(1, min(MAX_EXTRACTION_WINDOW, len(prefix_words)) + 1):
            start = prefix_words[-length].start()
            compact = normalize_mention(text[start : extension.end()]).replace(" ", "")
            if _names_indexed_file(compact, index):
                yield start, extension.end()
                break


def _word_window_spans(
    text: str, index: WorkspaceFileIndex
) -> Iterator[tuple[int, int]]:
    words = list(WORD_PATTERN.finditer(text))

    for window in range(1, min(MAX_EXTRACTION_WINDOW, len(words)) + 1):
        for first in range(len(words) - window + 1):
            chunk = words[first : first + window]
            if _inside_path_token(text, chunk[0].start(), chunk[-1].end()):
                continue

            normalized = normalize_mention(" ".join(w.group() for w in chunk))
            compact = normalized.replace(" ", "")

            if _names_indexed_file(normalized, index) or index.files_matching_stem(
                compact
            ):
                yield chunk[0].start(), chunk[-1].end()


def _inside_path_token(text: str, start: int, end: int) -> bool:
    """
    True when the span is a piece of a larger path-like token ("Services" in
    "/Services/Foo.swift"), which the literal pass owns.
    """
    before = text[start - 1] if start > 0 else ""
    after = text[end] if end < len(text) else ""

    if before == "/" or after == "/":
        return True
    if before == "." and start > 1 and text[start - 2].isalnum():
        return True
    if after == "." and end + 1 < len(text) and text[end + 1].isalnum():
        return True
    return False
