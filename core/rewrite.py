"""
Orchestration of mention extraction, resolution and formatting.

`MentionRewriteService` is the entry point the dictation pipeline calls with
transcribed text. It normalizes the workspace roots, builds (or reuses) a file
index, finds candidate mentions, and splices formatted mentions back into the
text. Every public coroutine degrades to returning its input unchanged: a
failure to index never costs the user their transcription.
"""

import os

import structlog

from adapters.filesystem import FileSystemProvider, LocalFileSystemProvider
from constants import (
    ACTIVE_DOCUMENT_CONFIDENCE_IN_WORKSPACE,
    ACTIVE_DOCUMENT_CONFIDENCE_OUTSIDE_WORKSPACE,
    CANONICAL_PLACEHOLDER_PATTERN,
    CANONICAL_PLACEHOLDER_TEMPLATE,
    INDEX_BUILD_TIMEOUT_SECONDS,
    KNOWN_MENTION_PREFIXES,
    MAX_FILE_TAG_CANDIDATES,
    MAX_TREE_ENTRIES,
    WORKSPACE_CONFIDENCE_INDEXED,
    WORKSPACE_CONFIDENCE_UNINDEXED,
)
from core import workspace
from core.exceptions import WorkspaceIndexError
from core.extraction import extract_mention_candidates
from core.file_index import WorkspaceFileIndex
from core.formatter import MentionFormatter
from core.models import (
    ExtractedMention,
    Formatted,
    MentionRewriteResult,
    Preserved,
    WorkspaceContextInsights,
)
from core.resolver import PathMentionResolver
from models import PATH_TOKEN, AppAdapterCapabilities

log = structlog.get_logger(__name__)


def is_markdown_link_target(text: str, start: int) -> bool:
    """True when the span at `start` sits right after `](`, i.e. inside a link target."""
    return start >= 2 and text[start - 2 : start] == "]("


def extend_over_mention_prefixes(text: str, start: int) -> int:
    """Move `start` back over any mention prefix characters ("@", "#", "/") before it."""
    while start > 0 and text[start - 1] in KNOWN_MENTION_PREFIXES:
        start -= 1
    return start


class MentionRewriteService:
    """
    Rewrites file mentions in transcribed text into a target app's syntax.

    The service owns a single-slot index cache keyed by the normalized root
    list, so consecutive dictations into the same workspace reuse one index.
    Instances are not safe to share between concurrently running tasks.
    """

    def __init__(
        self,
        resolver: PathMentionResolver | None = None,
        formatter: MentionFormatter | None = None,
        file_system: FileSystemProvider | None = None,
        build_timeout: float = INDEX_BUILD_TIMEOUT_SECONDS,
    ):
        self.resolver = resolver or PathMentionResolver()
        self.formatter = formatter or MentionFormatter()
        self.file_system = file_system or LocalFileSystemProvider()
        self.build_timeout = build_timeout

        self._cached_index: WorkspaceFileIndex | None = None
        self._cached_roots: list[str] = []

    # --- Rewriting -------------------------------------------------------------

    async def rewrite(
        self,
        text: str,
        capabilities: AppAdapterCapabilities,
        workspace_roots: list[str],
        active_document_path: str | None = None,
    ) -> MentionRewriteResult:
        """
        Rewrite every resolvable file mention in `text`.

        Never raises. Any indexing failure, or any unexpected error, yields the
        original text with zero counts.

        Args:
            text: Transcribed text.
            capabilities: Mention syntax of the app receiving the text.
            workspace_roots: Raw workspace roots (`~`, `file://` and file paths accepted).
            active_document_path: Document open in the app, used for tie-breaking.

        Returns:
            MentionRewriteResult: The rewritten text and its counts.
        """
        return await self._rewrite_safely(
            text, capabilities, workspace_roots, active_document_path, None
        )

    async def rewrite_to_canonical_placeholders(
        self,
        text: str,
        capabilities: AppAdapterCapabilities,
        workspace_roots: list[str],
        active_document_path: str | None = None,
    ) -> MentionRewriteResult:
        """
        Like `rewrite`, but emit `[[:relative/path:]]` placeholders.

        The placeholders can be handed to a language model untouched and turned
        into app syntax afterwards with `render_canonical_placeholders`.
        """
        return await self._rewrite_safely(
            text,
            capabilities,
            workspace_roots,
            active_document_path,
            CANONICAL_PLACEHOLDER_TEMPLATE,
        )

    def render_canonical_placeholders(
        self, text: str, capabilities: AppAdapterCapabilities
    ) -> MentionRewriteResult:
        """
        Replace each `[[:path:]]` placeholder with the app's mention syntax.

        Placeholders with a blank path are left in place and counted as
        preserved. Apps without file mention support get the text back as-is.
        """
        if not capabilities.supports_file_mentions:
            return MentionRewriteResult.unchanged(text)

        matches = list(CANONICAL_PLACEHOLDER_PATTERN.finditer(text))
        if not matches:
            return MentionRewriteResult.unchanged(text)

        rendered = text
        rewritten_count = 0
        preserved_count = 0

        for match in reversed(matches):
            relative_path = match.group(1).strip()
            if not relative_path:
                preserved_count += 1
                continue

            rendered = (
                rendered[: match.start()]
                + capabilities.render_mention(relative_path)
                + rendered[match.end() :]
            )
            rewritten_count += 1

        return MentionRewriteResult(rendered, rewritten_count, preserved_count)

    async def _rewrite_safely(
        self,
        text: str,
        capabilities: AppAdapterCapabilities,
        workspace_roots: list[str],
        active_document_path: str | None,
        template_override: str | None,
    ) -> MentionRewriteResult:
        try:
            return await self._rewrite(
                text,
                capabilities,
                workspace_roots,
                active_document_path,
                template_override,
            )
        except Exception:
            log.exception("mention_rewrite.unexpected_error")
            return MentionRewriteResult.unchanged(text)

    async def _rewrite(
        self,
        text: str,
        capabilities: AppAdapterCapabilities,
        workspace_roots: list[str],
        active_document_path: str | None,
        template_override: str | None,
    ) -> MentionRewriteResult:
        if not text:
            return MentionRewriteResult.unchanged(text)

        if not capabilities.supports_file_mentions:
            log.debug("mention_rewrite.unsupported", app=capabilities.display_name)
            return MentionRewriteResult.unchanged(text)

        effective = capabilities
        if template_override and PATH_TOKEN in template_override:
            effective = capabilities.with_mention_template(template_override)

        roots = self.normalize_workspace_roots(workspace_roots)
        if not roots:
            log.debug("mention_rewrite.no_valid_roots", raw_roots=workspace_roots)
            return MentionRewriteResult.unchanged(text)

        try:
            index = await self._get_or_build_index(roots)
        except WorkspaceIndexError as e:
            log.error(
                "mention_rewrite.index_failed",
                error=e.message,
                error_type=type(e).__name__,
            )
            return MentionRewriteResult.unchanged(text)

        if index.file_count == 0:
            log.debug("mention_rewrite.empty_index", roots=roots)
            return MentionRewriteResult.unchanged(text)

        mentions = extract_mention_candidates(text, index)
        if not mentions:
            log.debug("mention_rewrite.no_candidates")
            return MentionRewriteResult.unchanged(text)

        log.info("mention_rewrite.candidates", count=len(mentions))

        active_document = workspace.normalize_active_document_path(active_document_path)
        rewritten = text
        rewritten_count = 0
        preserved_count = 0

        # Reverse order keeps earlier offsets valid while splicing
        for mention in reversed(mentions):
            if is_markdown_link_target(text, mention.start):
                preserved_count += 1
                continue

            start = extend_over_mention_prefixes(text, mention.start)
            original = text[start : mention.end]
            resolution = self.resolver.resolve(mention.text, index, active_document)

            match self.formatter.format_mention(original, resolution, effective):
                case Formatted(text=formatted, relative_path=relative_path, confidence=confidence):
                    log.info(
                        "mention_rewrite.rewritten",
                        original=original,
                        formatted=formatted,
                        relative_path=relative_path,
                        confidence=round(confidence, 2),
                    )
                    rewritten = rewritten[:start] + formatted + rewritten[mention.end :]
                    rewritten_count += 1
                case Preserved(reason=reason):
                    log.debug(
                        "mention_rewrite.preserved",
                        original=original,
                        reason=reason.name,
                    )
                    preserved_count += 1

        log.info(
            "mention_rewrite.complete",
            rewritten=rewritten_count,
            preserved=preserved_count,
        )
        return MentionRewriteResult(rewritten, rewritten_count, preserved_count)

    # --- Workspace context -----------------------------------------------------

    async def derive_workspace_insights(
        self,
        workspace_roots: list[str],
        active_document_path: str | None = None,
        limit: int = MAX_FILE_TAG_CANDIDATES,
    ) -> WorkspaceContextInsights:
        """
        Summarize how much is known about the workspace for prompt construction.

        Args:
            workspace_roots: Raw workspace roots.
            active_document_path: Document open in the app, if known.
            limit: Maximum number of file tag candidates (at least 1).

        Returns:
            WorkspaceContextInsights: `WorkspaceContextInsights.none()` when no
            root is usable; low workspace confidence and no tags when the index
            cannot be built or is empty.
        """
        roots = self.normalize_workspace_roots(workspace_roots)
        if not roots:
            return WorkspaceContextInsights.none()

        try:
            index = await self._get_or_build_index(roots)
        except WorkspaceIndexError as e:
            log.warning("workspace_insights.index_failed", error=e.message)
            index = None

        if index is None or index.file_count == 0:
            return WorkspaceContextInsights(
                normalized_workspace_roots=roots,
                workspace_confidence=WORKSPACE_CONFIDENCE_UNINDEXED,
            )

        active_document = workspace.normalize_active_document_path(active_document_path)
        active_relative = (
            workspace.relative_to_roots(active_document, roots)
            if active_document
            else None
        )

        if active_relative is not None:
            active_confidence = ACTIVE_DOCUMENT_CONFIDENCE_IN_WORKSPACE
        elif active_document is not None:
            active_confidence = ACTIVE_DOCUMENT_CONFIDENCE_OUTSIDE_WORKSPACE
        else:
            active_confidence = 0.0

        return WorkspaceContextInsights(
            normalized_workspace_roots=roots,
            workspace_confidence=WORKSPACE_CONFIDENCE_INDEXED,
            active_document_relative_path=active_relative,
            active_document_confidence=active_confidence,
            file_tag_candidates=_file_tag_candidates(
                index, active_relative, max(1, limit)
            ),
        )

    async def generate_workspace_tree_summary(
        self,
        workspace_roots: list[str],
        active_document_path: str | None = None,
    ) -> str | None:
        """
        Render a compact listing of the workspace for a language model prompt.

        The format is a few `key: value` header lines, a `---` separator and
        then sorted relative paths, capped at `MAX_TREE_ENTRIES`:

            total_files: 3
            active_document: Services/AppCoordinator.swift
            ---
            README.md
            Services/AppCoordinator.swift
            Services/AudioRecorder.swift

        Returns None when there is nothing to summarize.
        """
        roots = self.normalize_workspace_roots(workspace_roots)
        if not roots:
            return None

        try:
            index = await self._get_or_build_index(roots)
        except WorkspaceIndexError as e:
            log.warning("workspace_tree.index_failed", error=e.message)
            return None

        if index.file_count == 0:
            return None

        paths = sorted(f.relative_path for f in index.all_files)
        total = len(paths)
        shown = paths[:MAX_TREE_ENTRIES]

        lines = [f"total_files: {total}"]

        active_document = workspace.normalize_active_document_path(active_document_path)
        if active_document:
            active_relative = workspace.relative_to_roots(active_document, roots)
            if active_relative:
                lines.append(f"active_document: {active_relative}")

        if len(shown) < total:
            lines.append(f"showing: {len(shown)} of {total}")

        lines.append("---")
        lines.extend(shown)
        return "\n".join(lines)

    def normalize_workspace_roots(self, raw_roots: list[str]) -> list[str]:
        return workspace.normalize_workspace_roots(raw_roots, self.file_system)

    # --- Cache and recency -----------------------------------------------------

    def clear_cache(self) -> None:
        self._cached_index = None
        self._cached_roots = []

    def record_access(self, path: str) -> bool:
        """
        Tell the resolver that the file at `path` was just opened.

        `path` may be absolute or relative to a cached workspace root. Returns
        False when no index is cached or the file is not in it.
        """
        if self._cached_index is None:
            return False

        normalized = workspace.normalize_path(path)
        relative = normalized.replace(os.sep, "/")
        for file in self._cached_index.all_files:
            if file.absolute_path == normalized or file.relative_path == relative:
                self.resolver.record_access(file)
                return True
        return False

    async def _get_or_build_index(self, roots: list[str]) -> WorkspaceFileIndex:
        if self._cached_index is not None and self._cached_roots == roots:
            return self._cached_index

        # A failed build must not leave the previous workspace's index cached
        self.clear_cache()

        index = WorkspaceFileIndex(self.file_system, self.build_timeout)
        count = await index.build_index(roots)
        log.info("mention_rewrite.index_built", file_count=count, root_count=len(roots))

        self._cached_index = index
        self._cached_roots = list(roots)
        return index


def _file_tag_candidates(
    index: WorkspaceFileIndex, active_relative: str | None, limit: int
) -> list[str]:
    """
    Pick relative paths worth offering as file tags.

    The active document, its bare filename and its siblings come first, then
    every path in sorted order. Duplicates are dropped and the result is capped
    at `limit`.
    """
    sorted_paths = sorted(f.relative_path for f in index.all_files)
    candidates: list[str] = []

    if active_relative:
        candidates.append(active_relative)
        candidates.append(active_relative.rsplit("/", 1)[-1])

        active_directory = active_relative.rpartition("/")[0]
        if active_directory:
            for path in sorted_paths:
                if path.startswith(active_directory + "/"):
                    candidates.append(path)
                    if len(candidates) >= limit * 2:
                        break

    candidates.extend(sorted_paths)

    deduped: list[str] = []
    for candidate in candidates:
        if candidate and candidate not in deduped:
            deduped.append(candidate)
        if len(deduped) >= limit:
            break
    return deduped
