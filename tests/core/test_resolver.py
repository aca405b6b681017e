"""
Tests for the path mention resolver (core/resolver.py).

Tests cover:
- Mention normalization, tokenization and camelCase splitting helpers
- Each scoring stage (exact filename, exact stem, tokenized segment, fuzzy)
- Ambiguity detection, active document tie-breaks and margin boundaries
- Recency boosts with an injected clock
- Resolution metrics
"""

import pytest

from core.config import PathResolverConfig, PathScoringWeights
from core.models import Ambiguous, Resolved, Unresolved
from core.resolver import (
    PathMentionResolver,
    camel_case_split,
    fuzzy_match_score,
    normalize_mention,
    tokenize,
)


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def scenario_index(index_factory):
    return index_factory(
        ["/repo/Services/AppCoordinator.swift", "/repo/Services/AudioRecorder.swift"]
    )


@pytest.fixture
def duplicate_stem_index(index_factory):
    return index_factory(["/repo/Foo/Bar.swift", "/repo/Baz/Bar.swift"])


# ============================================================================
# Tests for helpers
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    "mention, expected",
    [
        ("App Coordinator dot Swift", "app coordinator.swift"),
        ("  README.md  ", "readme.md"),
        ("services slash app coordinator", "services/app coordinator"),
        ("main dot swift", "main.swift"),
        ("", ""),
    ],
)
def test_normalize_mention(mention, expected):
    assert normalize_mention(mention) == expected


@pytest.mark.unit
def test_tokenize_splits_on_whitespace():
    assert tokenize("app  coordinator\tswift") == ["app", "coordinator", "swift"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "name, expected",
    [
        ("AppCoordinator", ["app", "coordinator"]),
        ("appCoordinator", ["app", "coordinator"]),
        ("HTTPServerConfig", ["http", "server", "config"]),
        ("file2Name", ["file", "2", "name"]),
        ("readme", ["readme"]),
    ],
)
def test_camel_case_split(name, expected):
    assert camel_case_split(name) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "query, target, expected",
    [
        ("abc", "axbxc", 0.6),
        ("acb", "abc", 0.0),
        ("", "abc", 0.0),
        ("abc", "", 0.0),
        ("abc", "abc", 1.0),
    ],
)
def test_fuzzy_match_score(query, target, expected):
    assert fuzzy_match_score(query, target) == pytest.approx(expected)


# ============================================================================
# Acceptance scenarios
# ============================================================================


@pytest.mark.unit
def test_spoken_filename_resolves_through_tokenized_stage(scenario_index):
    result = PathMentionResolver().resolve("app coordinator dot swift", scenario_index)

    assert isinstance(result, Resolved)
    assert result.candidate.file.relative_path == "Services/AppCoordinator.swift"
    assert result.candidate.score == pytest.approx(0.7)


@pytest.mark.unit
def test_duplicate_stems_are_ambiguous(duplicate_stem_index):
    result = PathMentionResolver().resolve("bar", duplicate_stem_index)

    assert isinstance(result, Ambiguous)
    assert [c.file.relative_path for c in result.candidates] == [
        "Baz/Bar.swift",
        "Foo/Bar.swift",
    ]


@pytest.mark.unit
def test_active_document_breaks_tie(duplicate_stem_index):
    result = PathMentionResolver().resolve(
        "bar", duplicate_stem_index, active_document_path="/repo/Baz/Bar.swift"
    )

    assert isinstance(result, Resolved)
    assert result.candidate.file.relative_path == "Baz/Bar.swift"


@pytest.mark.unit
def test_unknown_file_is_unresolved(scenario_index):
    result = PathMentionResolver().resolve("nonexistentfile.xyz", scenario_index)

    assert result == Unresolved(query="nonexistentfile.xyz")


# ============================================================================
# Tests for scoring stages
# ============================================================================


@pytest.mark.unit
def test_exact_filename_scores_full_weight(scenario_index):
    result = PathMentionResolver().resolve("AppCoordinator.swift", scenario_index)

    assert isinstance(result, Resolved)
    assert result.candidate.score == pytest.approx(1.0)


@pytest.mark.unit
def test_exact_stem_scores_stem_weight(scenario_index):
    result = PathMentionResolver().resolve("audiorecorder", scenario_index)

    assert isinstance(result, Resolved)
    assert result.candidate.file.filename == "AudioRecorder.swift"
    assert result.candidate.score == pytest.approx(0.9)


@pytest.mark.unit
def test_path_qualified_filename_narrows_duplicates(index_factory):
    index = index_factory(["/repo/gen/fixtures.go", "/repo/test/fixtures.go"])

    result = PathMentionResolver().resolve("gen/fixtures.go", index)

    assert isinstance(result, Resolved)
    assert result.candidate.file.relative_path == "gen/fixtures.go"


@pytest.mark.unit
def test_partial_token_coverage_scales_score(scenario_index):
    result = PathMentionResolver().resolve("audio thing", scenario_index)

    assert isinstance(result, Resolved)
    assert result.candidate.file.filename == "AudioRecorder.swift"
    assert result.candidate.score == pytest.approx(0.35)


@pytest.mark.unit
def test_fuzzy_stage_matches_subsequence(index_factory):
    index = index_factory(["/repo/Logger.swift"])

    result = PathMentionResolver().resolve("lggr swft", index)

    assert isinstance(result, Resolved)
    assert result.candidate.score == pytest.approx(0.5 * 8 / 12)


@pytest.mark.unit
def test_earlier_stage_wins_over_later_stages(index_factory):
    """An exact filename hit stops the pipeline before weaker stages run."""
    index = index_factory(["/repo/Bar.swift", "/repo/BarView.swift"])

    result = PathMentionResolver().resolve("bar.swift", index)

    assert isinstance(result, Resolved)
    assert result.candidate.file.filename == "Bar.swift"


@pytest.mark.unit
def test_minimum_threshold_is_inclusive(scenario_index):
    at_threshold = PathMentionResolver(PathResolverConfig(minimum_threshold=0.9))
    above = PathMentionResolver(PathResolverConfig(minimum_threshold=0.91))

    assert isinstance(at_threshold.resolve("audiorecorder", scenario_index), Resolved)
    assert isinstance(above.resolve("audiorecorder", scenario_index), Unresolved)


@pytest.mark.unit
def test_blank_mention_is_unresolved(scenario_index):
    assert isinstance(PathMentionResolver().resolve("   ", scenario_index), Unresolved)


# ============================================================================
# Tests for ambiguity and tie-breaking
# ============================================================================


@pytest.mark.unit
def test_margin_exactly_met_resolves(duplicate_stem_index):
    """A lead of exactly the ambiguity margin counts as a clear winner."""
    clock = FakeClock()
    resolver = PathMentionResolver(
        weights=PathScoringWeights(recency_boost_max=0.15), clock=clock
    )
    files = duplicate_stem_index.files_matching_filename("Bar.swift")
    foo_bar = next(f for f in files if f.relative_path == "Foo/Bar.swift")
    resolver.record_access(foo_bar)

    result = resolver.resolve("bar", duplicate_stem_index)

    assert isinstance(result, Resolved)
    assert result.candidate.file.relative_path == "Foo/Bar.swift"


@pytest.mark.unit
def test_lead_below_margin_is_ambiguous(duplicate_stem_index):
    clock = FakeClock()
    resolver = PathMentionResolver(
        weights=PathScoringWeights(recency_boost_max=0.14), clock=clock
    )
    files = duplicate_stem_index.files_matching_filename("Bar.swift")
    foo_bar = next(f for f in files if f.relative_path == "Foo/Bar.swift")
    resolver.record_access(foo_bar)

    result = resolver.resolve("bar", duplicate_stem_index)

    assert isinstance(result, Ambiguous)
    assert result.candidates[0].file.relative_path == "Foo/Bar.swift"


@pytest.mark.unit
def test_same_directory_tie_break(duplicate_stem_index):
    result = PathMentionResolver().resolve(
        "bar", duplicate_stem_index, active_document_path="/repo/Baz/Other.swift"
    )

    assert isinstance(result, Resolved)
    assert result.candidate.file.relative_path == "Baz/Bar.swift"


@pytest.mark.unit
def test_unrelated_active_document_keeps_ambiguity(duplicate_stem_index):
    result = PathMentionResolver().resolve(
        "bar", duplicate_stem_index, active_document_path="/elsewhere/Bar.swift"
    )

    assert isinstance(result, Ambiguous)


@pytest.mark.unit
def test_ambiguous_only_lists_near_top_candidates(index_factory):
    """Candidates outside the margin of the top score are not part of the ambiguity."""
    index = index_factory(
        [
            "/repo/UI/SettingsWindowView.swift",
            "/repo/Settings/WindowView.swift",
            "/repo/SettingsWindow.swift",
        ]
    )

    result = PathMentionResolver().resolve("settings window view", index)

    assert isinstance(result, Ambiguous)
    assert [c.file.relative_path for c in result.candidates] == [
        "Settings/WindowView.swift",
        "UI/SettingsWindowView.swift",
    ]


@pytest.mark.unit
def test_resolution_is_deterministic(duplicate_stem_index):
    resolver = PathMentionResolver()

    first = resolver.resolve("bar", duplicate_stem_index)
    second = resolver.resolve("bar", duplicate_stem_index)

    assert first == second


# ============================================================================
# Tests for recency
# ============================================================================


@pytest.mark.unit
def test_recency_boost_decays_linearly(scenario_index):
    clock = FakeClock()
    resolver = PathMentionResolver(clock=clock)
    file = scenario_index.all_files[0]
    resolver.record_access(file)

    assert resolver.recency_boost(file) == pytest.approx(0.1)

    clock.now += 1800
    assert resolver.recency_boost(file) == pytest.approx(0.05)

    clock.now += 1800
    assert resolver.recency_boost(file) == pytest.approx(0.0)

    clock.now += 5000
    assert resolver.recency_boost(file) == 0.0


@pytest.mark.unit
def test_recency_orders_ambiguous_candidates(duplicate_stem_index):
    resolver = PathMentionResolver(clock=FakeClock())
    files = duplicate_stem_index.files_matching_stem("bar")
    foo_bar = next(f for f in files if f.relative_path == "Foo/Bar.swift")
    resolver.record_access(foo_bar)

    result = resolver.resolve("bar", duplicate_stem_index)

    assert isinstance(result, Ambiguous)
    assert result.candidates[0].file.relative_path == "Foo/Bar.swift"
    assert result.candidates[0].score == pytest.approx(1.0)


@pytest.mark.unit
def test_clear_recency_data(scenario_index):
    resolver = PathMentionResolver(clock=FakeClock())
    file = scenario_index.all_files[0]
    resolver.record_access(file)

    resolver.clear_recency_data()

    assert resolver.recency_boost(file) == 0.0


# ============================================================================
# Tests for metrics
# ============================================================================


@pytest.mark.unit
def test_metrics_track_outcomes(scenario_index, duplicate_stem_index):
    resolver = PathMentionResolver()

    resolver.resolve("AppCoordinator.swift", scenario_index)
    resolver.resolve("bar", duplicate_stem_index)
    resolver.resolve("nonexistentfile.xyz", scenario_index)
    resolver.resolve("nonexistentfile.xyz", scenario_index)

    assert resolver.metrics.resolve_count == 4
    assert resolver.metrics.resolved_count == 1
    assert resolver.metrics.ambiguity_rate == pytest.approx(0.25)
    assert resolver.metrics.unresolved_rate == pytest.approx(0.5)

    resolver.metrics.reset()
    assert resolver.metrics.resolve_count == 0
    assert resolver.metrics.ambiguity_rate == 0.0
