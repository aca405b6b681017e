"""
Immutable configuration for path resolution and mention formatting.

Callers pass these into the resolver and formatter constructors; the defaults
are the values the dictation flow ships with.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PathScoringWeights:
    """Per-stage base weights. Stage scores are normalized to [0, 1] before weighting."""

    exact_filename: float = 1.0
    exact_stem: float = 0.9
    tokenized_segment: float = 0.7
    fuzzy: float = 0.5
    recency_boost_max: float = 0.1


@dataclass(frozen=True)
class PathResolverConfig:
    """
    Thresholds for the resolver.

    Attributes:
        minimum_threshold: Candidates scoring below this are discarded.
        ambiguity_margin: The top candidate must lead the runner-up by at least
            this much to be resolved without a tie-break.
    """

    minimum_threshold: float = 0.3
    ambiguity_margin: float = 0.15


@dataclass(frozen=True)
class MentionFormatterConfig:
    """
    Formatter gating.

    Attributes:
        confidence_threshold: Minimum candidate score that may be rewritten.
        strict_mode: When True, ambiguous resolutions are never rewritten. When
            False, the top ambiguous candidate is used if it clears the threshold.
    """

    confidence_threshold: float = 0.5
    strict_mode: bool = True

    @classmethod
    def permissive(cls) -> "MentionFormatterConfig":
        return cls(confidence_threshold=0.3, strict_mode=False)
