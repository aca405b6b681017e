"""
Conversion of resolution results into app-specific mention syntax.

The formatter is deterministic and idempotent:
- Already-formatted mentions are detected and preserved.
- Unresolved and low-confidence mentions are never rewritten.
- Strict mode prevents rewriting ambiguous resolutions.
"""

import structlog

from core.config import MentionFormatterConfig
from core.models import (
    Ambiguous,
    Formatted,
    FormattedMentionResult,
    MentionFormatReport,
    PathCandidate,
    PathResolutionResult,
    PreservationReason,
    Preserved,
    Resolved,
    Unresolved,
)
from core.resolver import SCORE_EPSILON
from models import PATH_TOKEN, AppAdapterCapabilities

log = structlog.get_logger(__name__)


def is_already_formatted(text: str, prefix: str, template: str | None = None) -> bool:
    """
    Detect whether `text` is already in mention syntax for `prefix`.

    A mention counts as formatted when it starts with the prefix followed by
    path-like content (containing "/" or "."), which distinguishes "@foo.swift"
    from an ordinary word that happens to start with the prefix. When a
    `template` is given, its text before `{path}` is accepted as a lead too, so
    "[@a.swift](a.swift)" is recognized for a "[@{path}]({path})" template.
    """
    trimmed = text.strip()
    leads = [prefix]
    if template and PATH_TOKEN in template:
        leads.append(template.split(PATH_TOKEN, 1)[0])

    for lead in leads:
        if not lead or not trimmed.startswith(lead):
            continue
        after_lead = trimmed[len(lead) :]
        if "/" in after_lead or "." in after_lead:
            return True

    return False


class MentionFormatterMetrics:
    """Running counts of formatting outcomes, broken down by preservation reason."""

    def __init__(self) -> None:
        self.total_mentions = 0
        self.formatted_count = 0
        self.preserved_count = 0
        self.preserved_by_reason: dict[PreservationReason, int] = {
            reason: 0 for reason in PreservationReason
        }

    @property
    def preserved_rate(self) -> float:
        return self.preserved_count / self.total_mentions if self.total_mentions else 0.0

    def record(self, result: FormattedMentionResult) -> None:
        self.total_mentions += 1
        match result:
            case Formatted():
                self.formatted_count += 1
            case Preserved(reason=reason):
                self.preserved_count += 1
                self.preserved_by_reason[reason] += 1

    def reset(self) -> None:
        self.total_mentions = 0
        self.formatted_count = 0
        self.preserved_count = 0
        self.preserved_by_reason = {reason: 0 for reason in PreservationReason}


class MentionFormatter:
    """
    Turns `PathResolutionResult`s into formatted or preserved mentions for one app.
    """

    def __init__(self, config: MentionFormatterConfig | None = None):
        self.config = config or MentionFormatterConfig()
        self.metrics = MentionFormatterMetrics()

    def format_mention(
        self,
        original_text: str,
        resolution: PathResolutionResult,
        capabilities: AppAdapterCapabilities,
    ) -> FormattedMentionResult:
        """
        Format a single mention for the target app.

        Args:
            original_text: The raw transcribed mention text.
            resolution: What the resolver made of the mention.
            capabilities: The target app's declared mention syntax.

        Returns:
            Formatted with the rendered text, or Preserved with the reason.
        """
        if is_already_formatted(
            original_text, capabilities.mention_prefix, capabilities.mention_template
        ):
            log.debug("mention_format.already_formatted", text=original_text)
            return self._record(
                Preserved(original_text, PreservationReason.ALREADY_FORMATTED)
            )

        if not capabilities.supports_file_mentions:
            log.info(
                "mention_format.unsupported",
                app=capabilities.display_name,
                text=original_text,
            )
            return self._record(
                Preserved(
                    original_text,
                    PreservationReason.UNSUPPORTED_BY_ADAPTER,
                    detail=capabilities.display_name,
                )
            )

        match resolution:
            case Resolved(candidate):
                result = self._format_candidate(original_text, candidate, capabilities)
            case Ambiguous(candidates):
                result = self._format_ambiguous(original_text, candidates, capabilities)
            case Unresolved():
                log.debug("mention_format.unresolved", text=original_text)
                result = Preserved(original_text, PreservationReason.UNRESOLVED)

        return self._record(result)

    def format_mentions(
        self,
        mentions: list[tuple[str, PathResolutionResult]],
        capabilities: AppAdapterCapabilities,
    ) -> MentionFormatReport:
        """
        Format `(original_text, resolution)` pairs in order.

        Returns:
            A report whose text is every output joined with a single space.
        """
        results = tuple(
            self.format_mention(text, resolution, capabilities)
            for text, resolution in mentions
        )
        report = MentionFormatReport(
            formatted_text=" ".join(r.output_text for r in results),
            mention_results=results,
        )

        log.info(
            "mention_format.batch",
            total=len(results),
            formatted=len(report.formatted_mentions),
            preserved=len(report.preserved_mentions),
            cumulative_total=self.metrics.total_mentions,
            preserved_rate=round(self.metrics.preserved_rate, 2),
        )
        return report

    def _format_candidate(
        self,
        original_text: str,
        candidate: PathCandidate,
        capabilities: AppAdapterCapabilities,
    ) -> FormattedMentionResult:
        threshold = self.config.confidence_threshold
        if candidate.score < threshold - SCORE_EPSILON:
            log.info(
                "mention_format.low_confidence",
                score=round(candidate.score, 3),
                threshold=threshold,
                text=original_text,
            )
            return Preserved(
                original_text,
                PreservationReason.LOW_CONFIDENCE,
                detail=f"score={candidate.score:.3f} threshold={threshold:.3f}",
            )

        relative_path = candidate.file.relative_path
        formatted = capabilities.render_mention(relative_path)
        log.debug(
            "mention_format.formatted",
            text=original_text,
            formatted=formatted,
            confidence=round(candidate.score, 3),
        )
        return Formatted(formatted, relative_path, candidate.score)

    def _format_ambiguous(
        self,
        original_text: str,
        candidates: tuple[PathCandidate, ...],
        capabilities: AppAdapterCapabilities,
    ) -> FormattedMentionResult:
        if self.config.strict_mode:
            log.info(
                "mention_format.ambiguous_strict",
                candidate_count=len(candidates),
                text=original_text,
            )
            return Preserved(
                original_text,
                PreservationReason.AMBIGUOUS_IN_STRICT_MODE,
                detail=f"candidates={len(candidates)}",
            )

        if not candidates:
            return Preserved(original_text, PreservationReason.UNRESOLVED)

        return self._format_candidate(original_text, candidates[0], capabilities)

    def _record(self, result: FormattedMentionResult) -> FormattedMentionResult:
        self.metrics.record(result)
        return result
