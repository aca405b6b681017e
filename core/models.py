"""
Core data models for the mention resolution and rewrite pipeline.

This module defines the indexed file entries, the scored candidates produced by
the resolver, and the tagged result types returned by each pipeline stage.
Result types are small frozen dataclasses joined into unions, meant to be
consumed with `match` so every outcome is handled explicitly.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath


@dataclass(frozen=True)
class IndexedFile:
    """
    A single file in the workspace index.

    Instances are created while the index is built and discarded wholesale on the
    next rebuild.

    Attributes:
        absolute_path: Absolute path on disk.
        relative_path: Path relative to the owning root, always with "/" separators.
        workspace_root: The workspace root this file belongs to.
        filename: Full filename including extension (e.g. "AppCoordinator.swift").
        stem: Filename without its last extension (e.g. "AppCoordinator").
            Note: for "file.test.ts" the stem is "file.test".
        extension: Extension without the dot (e.g. "swift"), empty if none.
        path_segments: Components of `relative_path`, used for tokenized matching.
        lowercased_filename: Precomputed key for case-insensitive filename lookup.
        lowercased_stem: Precomputed key for case-insensitive stem lookup.
    """

    absolute_path: str
    relative_path: str
    workspace_root: str
    filename: str
    stem: str
    extension: str
    path_segments: tuple[str, ...]
    lowercased_filename: str
    lowercased_stem: str

    @classmethod
    def from_path(cls, absolute_path: str, root: str) -> "IndexedFile":
        """
        Build an entry for `absolute_path` as seen from `root`.

        When the path does not live under `root`, the relative path falls back to
        the bare filename.
        """
        root_prefix = root.rstrip("/\\") + os.sep
        if absolute_path.startswith(root_prefix):
            relative = absolute_path[len(root_prefix) :]
        else:
            relative = os.path.basename(absolute_path)

        relative_path = PurePath(relative).as_posix()
        path = PurePath(absolute_path)
        filename = path.name
        stem = path.stem

        return cls(
            absolute_path=absolute_path,
            relative_path=relative_path,
            workspace_root=root,
            filename=filename,
            stem=stem,
            extension=path.suffix[1:],
            path_segments=tuple(s for s in relative_path.split("/") if s),
            lowercased_filename=filename.lower(),
            lowercased_stem=stem.lower(),
        )


@dataclass(frozen=True)
class PathCandidate:
    """A scored candidate file. Scores fall in [0, ~1.1] (stage weight plus recency)."""

    file: IndexedFile
    score: float

    @property
    def sort_key(self) -> tuple[float, str]:
        """Deterministic order: score descending, then relative path ascending."""
        return (-self.score, self.file.relative_path)


# --- Resolution results -------------------------------------------------------


@dataclass(frozen=True)
class Resolved:
    """A single candidate won, either outright or through a tie-break."""

    candidate: PathCandidate


@dataclass(frozen=True)
class Ambiguous:
    """Several candidates sit within the ambiguity margin of the top score."""

    candidates: tuple[PathCandidate, ...]


@dataclass(frozen=True)
class Unresolved:
    """Nothing scored above the minimum threshold."""

    query: str


PathResolutionResult = Resolved | Ambiguous | Unresolved


# --- Formatting results -------------------------------------------------------


class PreservationReason(Enum):
    """Why a mention was left as-is instead of being rewritten."""

    LOW_CONFIDENCE = "low_confidence"
    AMBIGUOUS_IN_STRICT_MODE = "ambiguous_in_strict_mode"
    UNRESOLVED = "unresolved"
    UNSUPPORTED_BY_ADAPTER = "unsupported_by_adapter"
    ALREADY_FORMATTED = "already_formatted"


@dataclass(frozen=True)
class Formatted:
    """The mention was rewritten into app-specific syntax."""

    text: str
    relative_path: str
    confidence: float

    @property
    def output_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class Preserved:
    """The mention was kept verbatim. `detail` carries reason-specific context for logs."""

    original_text: str
    reason: PreservationReason
    detail: str = ""

    @property
    def output_text(self) -> str:
        return self.original_text


FormattedMentionResult = Formatted | Preserved


@dataclass(frozen=True)
class MentionFormatReport:
    """
    Result of formatting a batch of mentions.

    Attributes:
        formatted_text: Every mention's output text joined with a single space.
        mention_results: One result per input mention, in input order.
    """

    formatted_text: str
    mention_results: tuple[FormattedMentionResult, ...]

    @property
    def formatted_mentions(self) -> list[Formatted]:
        return [r for r in self.mention_results if isinstance(r, Formatted)]

    @property
    def preserved_mentions(self) -> list[Preserved]:
        return [r for r in self.mention_results if isinstance(r, Preserved)]

    @property
    def has_preserved_mentions(self) -> bool:
        return bool(self.preserved_mentions)


# --- Rewriting ----------------------------------------------------------------


@dataclass(frozen=True)
class ExtractedMention:
    """
    A candidate mention span inside source text.

    Attributes:
        start: Offset of the first character of the span.
        end: Offset one past the last character of the span.
        text: The raw span text (e.g. "app coordinator dot swift").
    """

    start: int
    end: int
    text: str

    def overlaps(self, start: int, end: int) -> bool:
        return self.start < end and start < self.end


@dataclass(frozen=True)
class MentionRewriteResult:
    """
    Result of one rewrite pass over transcribed text.

    Attributes:
        text: The text after rewriting (may be unchanged).
        rewritten_count: Mentions replaced with app syntax or placeholders.
        preserved_count: Candidate mentions found but left as-is.
    """

    text: str
    rewritten_count: int = 0
    preserved_count: int = 0

    @property
    def did_rewrite(self) -> bool:
        return self.rewritten_count > 0

    @classmethod
    def unchanged(cls, text: str) -> "MentionRewriteResult":
        return cls(text=text)


@dataclass(frozen=True)
class WorkspaceContextInsights:
    """
    Workspace summary handed to prompt construction.

    Attributes:
        normalized_workspace_roots: Roots after normalization and project-root climbing.
        workspace_confidence: How much the roots can be trusted (higher when indexed).
        active_document_relative_path: Active document relative to a root, if it is under one.
        active_document_confidence: 1.0 inside a root, lower when only the raw path is known.
        file_tag_candidates: Relative paths (and the active filename) worth offering as tags.
    """

    normalized_workspace_roots: list[str] = field(default_factory=list)
    workspace_confidence: float = 0.0
    active_document_relative_path: str | None = None
    active_document_confidence: float = 0.0
    file_tag_candidates: list[str] = field(default_factory=list)

    @classmethod
    def none(cls) -> "WorkspaceContextInsights":
        return cls()
