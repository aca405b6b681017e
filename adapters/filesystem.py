"""
File system access for the workspace indexer.

The indexer only needs to list files under a root, list the names inside one
directory, and check whether paths exist. `FileSystemProvider` captures that
surface so production code can use the local disk (`LocalFileSystemProvider`)
and tests can inject an in-memory double (`MockFileSystemProvider`).

Enumeration runs on a worker thread and accepts a `threading.Event`. Once the
event is set, providers stop as soon as they notice and raise
`EnumerationCancelledError`; the index build that owns the thread has already
given up on the result.
"""

import os
from pathlib import Path
import threading
import time
from typing import Callable, Protocol

import structlog

from adapters.git import SubprocessGitClient
from constants import BUNDLE_SUFFIXES, MAX_FILES_PER_ROOT
from core.exceptions import EnumerationCancelledError, EnumerationFailedError

log = structlog.get_logger(__name__)


class FileSystemProvider(Protocol):
    """
    Protocol defining the file system operations used by the indexer.

    Paths are plain strings; enumerated paths are absolute.
    """

    def enumerate_files(
        self, root: str, cancel_event: threading.Event | None = None
    ) -> list[str]:
        """
        Return the absolute paths of all files under `root`, recursively.

        Implementations may cap the result and must not fail just because the
        cap was reached. They raise `EnumerationCancelledError` once
        `cancel_event` is set.
        """

    def directory_exists(self, path: str) -> bool:
        """Whether a directory exists at `path`."""

    def path_exists(self, path: str) -> bool:
        """Whether a file or directory exists at `path`."""

    def directory_entries(self, path: str) -> list[str]:
        """Names of the entries directly inside `path`; empty when it cannot be read."""


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def _is_bundle(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in BUNDLE_SUFFIXES


def _check_cancelled(cancel_event: threading.Event | None, root: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise EnumerationCancelledError(root)


class LocalFileSystemProvider:
    """
    Production implementation of FileSystemProvider backed by the local disk.

    Enumeration prefers `git ls-files` so ignored build output stays out of the
    index, and falls back to a bounded `os.walk` when the root is not a
    repository or git fails for any reason.
    """

    def __init__(
        self,
        max_files_per_root: int = MAX_FILES_PER_ROOT,
        git_client_factory: Callable[[Path], SubprocessGitClient] | None = None,
    ):
        """
        Args:
            max_files_per_root: Ceiling on files returned per root.
            git_client_factory: Builds the git client for a root. Defaults to
                `SubprocessGitClient`; tests inject fakes here.
        """
        self.max_files_per_root = max_files_per_root
        self.git_client_factory = git_client_factory or SubprocessGitClient

    def enumerate_files(
        self, root: str, cancel_event: threading.Event | None = None
    ) -> list[str]:
        try:
            git_paths = self._enumerate_with_git(root, cancel_event)
        except EnumerationFailedError as e:
            log.warning(
                "workspace_enumeration.git_failed",
                root=root,
                error=e.message,
            )
            git_paths = None

        if git_paths is not None:
            return git_paths

        return self._enumerate_with_walk(root, cancel_event)

    def directory_exists(self, path: str) -> bool:
        return os.path.isdir(path)

    def path_exists(self, path: str) -> bool:
        return os.path.exists(path)

    def directory_entries(self, path: str) -> list[str]:
        try:
            return sorted(os.listdir(path))
        except OSError:
            return []

    def _enumerate_with_git(
        self, root: str, cancel_event: threading.Event | None
    ) -> list[str] | None:
        """
        List files through git.

        Returns:
            The absolute paths, or None when git is unavailable or `root` is not
            inside a work tree.

        Raises:
            EnumerationFailedError: If `git ls-files` itself fails.
            EnumerationCancelledError: If `cancel_event` is set while listing.
        """
        client = self.git_client_factory(Path(root))
        if not client.is_available() or not client.is_repo():
            return None

        results: list[str] = []
        for relative in client.list_files(cancel_event):
            # git also lists untracked dotfiles; the walk skips them, so do the same here
            if not relative.parts or any(_is_hidden(part) for part in relative.parts):
                continue

            results.append(os.path.normpath(os.path.join(root, relative)))

            if len(results) >= self.max_files_per_root:
                self._warn_truncated(root)
                break

        _check_cancelled(cancel_event, root)
        return results

    def _enumerate_with_walk(
        self, root: str, cancel_event: threading.Event | None
    ) -> list[str]:
        results: list[str] = []

        for dirpath, dirnames, filenames in os.walk(root):
            _check_cancelled(cancel_event, root)

            # Pruning in place stops os.walk from descending into hidden dirs and bundles
            dirnames[:] = sorted(
                d for d in dirnames if not _is_hidden(d) and not _is_bundle(d)
            )

            for name in sorted(filenames):
                if _is_hidden(name):
                    continue

                full_path = os.path.join(dirpath, name)
                if not os.path.isfile(full_path):
                    continue

                results.append(full_path)

                if len(results) >= self.max_files_per_root:
                    self._warn_truncated(root)
                    return results

        return results

    def _warn_truncated(self, root: str) -> None:
        log.warning(
            "workspace_enumeration.truncated",
            root=root,
            limit=self.max_files_per_root,
        )


class MockFileSystemProvider:
    """
    In-memory implementation of FileSystemProvider for testing.

    Directories and files are configured up front. Enumeration can be made to
    fail or to block for a while, which is how tests exercise the indexer's
    error handling and its build timeout. A blocked enumeration wakes up as
    soon as its cancel event is set.

    Attributes (for test inspection):
        enumerate_calls: Roots passed to enumerate_files(), in call order.
        active_enumerations: enumerate_files() calls still running.
        cancelled_calls: Roots whose enumeration ended through cancellation.
    """

    def __init__(
        self,
        directories: set[str] | None = None,
        files_by_root: dict[str, list[str]] | None = None,
        enumerate_error: Exception | None = None,
        enumerate_delay: float = 0.0,
    ):
        """
        Args:
            directories: Paths that `directory_exists` reports as directories.
            files_by_root: Absolute file paths returned for each root.
            enumerate_error: If set, raised by every enumerate_files() call.
            enumerate_delay: Seconds to block inside enumerate_files().
        """
        self.directories: set[str] = set(directories or ())
        self.files_by_root: dict[str, list[str]] = {
            root: list(paths) for root, paths in (files_by_root or {}).items()
        }
        self.enumerate_error = enumerate_error
        self.enumerate_delay = enumerate_delay

        self.enumerate_calls: list[str] = []
        self.active_enumerations = 0
        self.cancelled_calls: list[str] = []
        self._lock = threading.Lock()

    def enumerate_files(
        self, root: str, cancel_event: threading.Event | None = None
    ) -> list[str]:
        with self._lock:
            self.enumerate_calls.append(root)
            self.active_enumerations += 1

        try:
            if self.enumerate_delay:
                if cancel_event is not None:
                    cancel_event.wait(self.enumerate_delay)
                else:
                    time.sleep(self.enumerate_delay)

            if cancel_event is not None and cancel_event.is_set():
                with self._lock:
                    self.cancelled_calls.append(root)
                raise EnumerationCancelledError(root)

            if self.enumerate_error is not None:
                raise self.enumerate_error
            return list(self.files_by_root.get(root, []))
        finally:
            with self._lock:
                self.active_enumerations -= 1

    def directory_exists(self, path: str) -> bool:
        return path in self.directories

    def path_exists(self, path: str) -> bool:
        if path in self.directories:
            return True
        return any(path in paths for paths in self.files_by_root.values())

    def directory_entries(self, path: str) -> list[str]:
        prefix = path.rstrip("/") + "/"
        known = self.directories.union(*self.files_by_root.values())

        names = set()
        for candidate in known:
            if candidate.startswith(prefix):
                name = candidate[len(prefix) :].split("/", 1)[0]
                if name:
                    names.add(name)
        return sorted(names)
