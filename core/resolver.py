"""
Resolution of spoken path mentions against the workspace index.

The resolver runs a fixed, weighted pipeline and stops at the first stage that
produces candidates:

1. Exact filename match ("AppCoordinator.swift")
2. Exact stem match ("AppCoordinator" -> AppCoordinator.swift)
3. Tokenized segment match ("app coordinator" -> AppCoordinator.swift)
4. Fuzzy subsequence match over the lowercased filename

Every candidate also gets a small recency boost for files recently recorded as
accessed. When the top two candidates are closer than the ambiguity margin, the
active document is used as a tie-break before the result is reported as
ambiguous.
"""

import os
from pathlib import PurePosixPath
import time
from typing import Callable

import structlog

from constants import (
    CAMEL_CASE_PATTERN,
    RECENCY_WINDOW_SECONDS,
    TRAILING_DOT_WORD_PATTERN,
)
from core.config import PathResolverConfig, PathScoringWeights
from core.file_index import WorkspaceFileIndex
from core.models import (
    Ambiguous,
    IndexedFile,
    PathCandidate,
    PathResolutionResult,
    Resolved,
    Unresolved,
)

log = structlog.get_logger(__name__)

# Scores are sums of float weights; comparisons against configured boundaries
# must treat 0.85 + 0.15 as exactly 1.0.
SCORE_EPSILON = 1e-9


def normalize_mention(mention: str) -> str:
    """
    Convert a spoken mention into a filesystem-style query.

    "App Coordinator dot Swift" -> "app coordinator.swift"
    "services slash app coordinator" -> "services/app coordinator"
    """
    result = mention.strip().lower()
    result = result.replace(" dot ", ".")
    result = TRAILING_DOT_WORD_PATTERN.sub(r".\1", result)
    result = result.replace(" slash ", "/")
    return result


def tokenize(mention: str) -> list[str]:
    return mention.split()


def camel_case_split(name: str) -> list[str]:
    """Split camelCase/PascalCase into lowercase parts: "AppCoordinator" -> ["app", "coordinator"]."""
    return [part.lower() for part in CAMEL_CASE_PATTERN.findall(name)]


def tokenized_segment_score(tokens: list[str], file: IndexedFile) -> float:
    """
    Fraction of `tokens` found in the file's path.

    A token counts when it is a substring of any lowercased path segment, or a
    prefix of one of the camelCase parts of the stem.
    """
    if not tokens:
        return 0.0

    segments = [segment.lower() for segment in file.path_segments]
    stem_parts = camel_case_split(file.stem)

    matched = 0
    for token in tokens:
        in_segment = any(token in segment for segment in segments)
        in_stem = any(part.startswith(token) for part in stem_parts)
        if in_segment or in_stem:
            matched += 1

    return matched / len(tokens)


def fuzzy_match_score(query: str, target: str) -> float:
    """
    Score `query` as an in-order subsequence of `target`.

    Returns matched characters over target length, or 0 when `query` is not a
    complete subsequence.
    """
    if not query or not target:
        return 0.0

    query_index = 0
    for char in target:
        if query_index < len(query) and char == query[query_index]:
            query_index += 1

    if query_index != len(query):
        return 0.0

    return query_index / len(target)


class PathResolverMetrics:
    """Running counts of resolution outcomes."""

    def __init__(self) -> None:
        self.resolve_count = 0
        self.resolved_count = 0
        self.ambiguous_count = 0
        self.unresolved_count = 0

    @property
    def ambiguity_rate(self) -> float:
        return self.ambiguous_count / self.resolve_count if self.resolve_count else 0.0

    @property
    def unresolved_rate(self) -> float:
        return self.unresolved_count / self.resolve_count if self.resolve_count else 0.0

    def record(self, result: PathResolutionResult) -> None:
        self.resolve_count += 1
        match result:
            case Resolved():
                self.resolved_count += 1
            case Ambiguous():
                self.ambiguous_count += 1
            case Unresolved():
                self.unresolved_count += 1

    def reset(self) -> None:
        self.resolve_count = 0
        self.resolved_count = 0
        self.ambiguous_count = 0
        self.unresolved_count = 0


class PathMentionResolver:
    """
    Resolves spoken or transcribed path mentions to indexed workspace files.

    Resolution is deterministic: given the same mention, index, recency state
    and active document, it always returns the same result.
    """

    def __init__(
        self,
        config: PathResolverConfig | None = None,
        weights: PathScoringWeights | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            config: Thresholds. Defaults to `PathResolverConfig()`.
            weights: Stage weights. Defaults to `PathScoringWeights()`.
            clock: Returns the current time in seconds; drives recency decay.
        """
        self.config = config or PathResolverConfig()
        self.weights = weights or PathScoringWeights()
        self.clock = clock
        self.metrics = PathResolverMetrics()
        self._recent_access_times: dict[str, float] = {}

    # --- Public API -------------------------------------------------------------

    def resolve(
        self,
        mention: str,
        index: WorkspaceFileIndex,
        active_document_path: str | None = None,
    ) -> PathResolutionResult:
        """
        Resolve `mention` against `index`.

        Args:
            mention: Raw mention text, spoken or literal.
            index: A built workspace index.
            active_document_path: Absolute path of the document open in the target
                app, used to break ties between near-equal candidates.

        Returns:
            Resolved, Ambiguous or Unresolved.
        """
        normalized = normalize_mention(mention)
        if not normalized:
            return self._finish(Unresolved(query=mention))

        threshold = self.config.minimum_threshold - SCORE_EPSILON
        candidates = [
            c for c in self._score_candidates(normalized, index) if c.score >= threshold
        ]
        if not candidates:
            return self._finish(Unresolved(query=mention))

        candidates.sort(key=lambda c: c.sort_key)
        top = candidates[0]
        margin = self.config.ambiguity_margin - SCORE_EPSILON

        if len(candidates) == 1 or top.score - candidates[1].score >= margin:
            return self._finish(Resolved(top))

        near_top = [c for c in candidates if top.score - c.score < margin]

        if active_document_path:
            winner = self._break_tie(near_top, active_document_path)
            if winner is not None:
                return self._finish(Resolved(winner))

        return self._finish(Ambiguous(tuple(near_top)))

    # --- Recency ---------------------------------------------------------------

    def record_access(self, file: IndexedFile, at: float | None = None) -> None:
        """Mark `file` as accessed at `at` (defaults to now)."""
        self._recent_access_times[file.absolute_path] = (
            at if at is not None else self.clock()
        )

    def clear_recency_data(self) -> None:
        self._recent_access_times.clear()

    def recency_boost(self, file: IndexedFile) -> float:
        """Up to `recency_boost_max`, decaying linearly to 0 over one hour."""
        accessed_at = self._recent_access_times.get(file.absolute_path)
        if accessed_at is None:
            return 0.0

        age = self.clock() - accessed_at
        decay = min(1.0, max(0.0, 1.0 - age / RECENCY_WINDOW_SECONDS))
        return self.weights.recency_boost_max * decay

    # --- Scoring ---------------------------------------------------------------

    def _score_candidates(
        self, normalized: str, index: WorkspaceFileIndex
    ) -> list[PathCandidate]:
        for stage in (
            self._exact_filename_stage,
            self._exact_stem_stage,
            self._tokenized_segment_stage,
            self._fuzzy_stage,
        ):
            candidates = stage(normalized, index)
            if candidates:
                return candidates
        return []

    def _candidate(self, file: IndexedFile, base_score: float) -> PathCandidate:
        return PathCandidate(file=file, score=base_score + self.recency_boost(file))

    def _exact_filename_stage(
        self, normalized: str, index: WorkspaceFileIndex
    ) -> list[PathCandidate]:
        query_path = PurePosixPath(normalized)
        files = index.files_matching_filename(query_path.name)

        if "/" in normalized:
            # "gen/fixtures.go" only matches files whose relative path ends with it
            suffix = normalized.strip("/")
            files = tuple(
                f
                for f in files
                if f.relative_path.lower() == suffix
                or f.relative_path.lower().endswith("/" + suffix)
            )

        return [self._candidate(f, self.weights.exact_filename) for f in files]

    def _exact_stem_stage(
        self, normalized: str, index: WorkspaceFileIndex
    ) -> list[PathCandidate]:
        stem = PurePosixPath(normalized).stem if "." in normalized else normalized
        return [
            self._candidate(f, self.weights.exact_stem)
            for f in index.files_matching_stem(stem)
        ]

    def _tokenized_segment_stage(
        self, normalized: str, index: WorkspaceFileIndex
    ) -> list[PathCandidate]:
        tokens = tokenize(normalized)
        if not tokens:
            return []

        candidates = []
        for file in index.all_files:
            coverage = tokenized_segment_score(tokens, file)
            if coverage > 0:
                candidates.append(
                    self._candidate(file, self.weights.tokenized_segment * coverage)
                )
        return candidates

    def _fuzzy_stage(
        self, normalized: str, index: WorkspaceFileIndex
    ) -> list[PathCandidate]:
        compact = normalized.replace(" ", "")

        candidates = []
        for file in index.all_files:
            coverage = fuzzy_match_score(compact, file.lowercased_filename)
            if coverage > 0:
                candidates.append(self._candidate(file, self.weights.fuzzy * coverage))
        return candidates

    # --- Tie-breaking ----------------------------------------------------------

    def _break_tie(
        self, near_top: list[PathCandidate], active_document_path: str
    ) -> PathCandidate | None:
        active_document = os.path.normpath(active_document_path)

        for candidate in near_top:
            if candidate.file.absolute_path == active_document:
                log.info(
                    "path_resolve.tie_break",
                    via="active_document",
                    relative_path=candidate.file.relative_path,
                )
                return candidate

        active_directory = os.path.dirname(active_document)
        if not active_directory:
            return None

        same_directory = [
            c
            for c in near_top
            if os.path.dirname(c.file.absolute_path) == active_directory
        ]
        if len(same_directory) == 1:
            log.info(
                "path_resolve.tie_break",
                via="active_document_directory",
                relative_path=same_directory[0].file.relative_path,
            )
            return same_directory[0]

        return None

    def _finish(self, result: PathResolutionResult) -> PathResolutionResult:
        self.metrics.record(result)
        match result:
            case Resolved(candidate):
                log.info(
                    "path_resolve.outcome",
                    outcome="resolved",
                    score=round(candidate.score, 2),
                    total=self.metrics.resolve_count,
                    ambiguity_rate=round(self.metrics.ambiguity_rate, 2),
                    unresolved_rate=round(self.metrics.unresolved_rate, 2),
                )
            case Ambiguous(candidates):
                log.info(
                    "path_resolve.outcome",
                    outcome="ambiguous",
                    candidate_count=len(candidates),
                    total=self.metrics.resolve_count,
                    ambiguity_rate=round(self.metrics.ambiguity_rate, 2),
                )
            case Unresolved():
                log.info(
                    "path_resolve.outcome",
                    outcome="unresolved",
                    total=self.metrics.resolve_count,
                    unresolved_rate=round(self.metrics.unresolved_rate, 2),
                )
        return result
