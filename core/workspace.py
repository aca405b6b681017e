"""
Normalization of workspace roots and active document paths.

Context capture hands over whatever the focused app exposes: `~`-relative paths,
`file://` URLs, or a document path where a directory was expected. These helpers
turn such input into absolute directory paths worth indexing, climbing to the
enclosing project root so the index covers the whole project.
"""

import os
from urllib.parse import unquote, urlparse

import structlog

from adapters.filesystem import FileSystemProvider
from constants import (
    FILE_URL_SCHEME,
    MAX_ROOT_CLIMB,
    PROJECT_MARKER_SUFFIXES,
    PROJECT_MARKERS,
)

log = structlog.get_logger(__name__)


def normalize_path(raw_path: str) -> str:
    """
    Strip a `file://` scheme, expand `~` and normalize the path.

    Returns an empty string for empty input.
    """
    path = raw_path.strip()
    if not path:
        return ""

    if path.startswith(FILE_URL_SCHEME):
        path = unquote(urlparse(path).path) or path[len(FILE_URL_SCHEME) :]

    path = os.path.expanduser(path)
    return os.path.normpath(path)


def normalize_active_document_path(raw_path: str | None) -> str | None:
    if not raw_path:
        return None
    return normalize_path(raw_path) or None


def climb_to_project_root(directory: str, file_system: FileSystemProvider) -> str:
    """
    Walk up from `directory` to the nearest ancestor holding a project marker.

    Exact-name markers (`.git`, `Package.swift`, ...) are checked first, then
    entries ending in a marker suffix (`App.xcodeproj`). At most
    `MAX_ROOT_CLIMB` levels are inspected. Falls back to `directory` itself
    when no marker is found.
    """
    current = directory
    for _ in range(MAX_ROOT_CLIMB):
        if _has_project_marker(current, file_system):
            return current

        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent

    return directory


def _has_project_marker(directory: str, file_system: FileSystemProvider) -> bool:
    for marker in PROJECT_MARKERS:
        if file_system.path_exists(os.path.join(directory, marker)):
            return True

    return any(
        name.endswith(PROJECT_MARKER_SUFFIXES)
        for name in file_system.directory_entries(directory)
    )


def normalize_workspace_roots(
    raw_roots: list[str], file_system: FileSystemProvider
) -> list[str]:
    """
    Turn raw workspace roots into deduplicated, indexable directories.

    Each root is stripped of `file://`, `~`-expanded and normalized. A path that
    is not a directory is replaced by its parent (it usually names the open
    document); when the parent is not a directory either, the root is skipped.
    The directory is then widened to its project root.

    Args:
        raw_roots: Roots as reported by context capture.
        file_system: Used for existence checks.

    Returns:
        Normalized roots, in first-seen order.
    """
    seen: set[str] = set()
    result: list[str] = []

    for raw in raw_roots:
        path = normalize_path(raw)
        if not path:
            continue

        if not file_system.directory_exists(path):
            parent = os.path.dirname(path)
            if not file_system.directory_exists(parent):
                log.warning(
                    "workspace_roots.invalid",
                    raw=raw,
                    resolved=path,
                    parent=parent,
                )
                continue
            path = parent

        path = climb_to_project_root(path, file_system)

        if path in seen:
            continue
        seen.add(path)
        result.append(path)

    if len(result) != len(raw_roots):
        log.debug(
            "workspace_roots.normalized",
            raw_count=len(raw_roots),
            valid_count=len(result),
        )

    return result


def relative_to_roots(path: str, roots: list[str]) -> str | None:
    """Express `path` relative to the first root containing it, with "/" separators."""
    expanded = os.path.expanduser(path)
    for root in roots:
        prefix = root.rstrip("/\\") + os.sep
        if expanded.startswith(prefix):
            relative = expanded[len(prefix) :].strip("/\\")
            if relative:
                return relative.replace(os.sep, "/")
    return None
