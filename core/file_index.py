"""
In-memory workspace file index.

The index is built on demand for a set of workspace roots and is read-only once
built. It answers exact filename and stem lookups in O(1) and substring lookups
over path segments by a linear scan. It does not watch the file system; callers
rebuild when the workspace may have changed.
"""

import asyncio
import threading
from collections import defaultdict
from dataclasses import dataclass

import structlog

from adapters.filesystem import FileSystemProvider, LocalFileSystemProvider
from constants import INDEX_BUILD_TIMEOUT_SECONDS
from core.exceptions import (
    EnumerationCancelledError,
    IndexBuildTimeoutError,
    RootNotFoundError,
    WorkspaceIndexError,
)
from core.models import IndexedFile

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class _BuildOutput:
    workspace_roots: tuple[str, ...]
    all_files: tuple[IndexedFile, ...]
    files_by_name: dict[str, tuple[IndexedFile, ...]]
    files_by_stem: dict[str, tuple[IndexedFile, ...]]


class WorkspaceFileIndex:
    """
    Index of the files under one or more workspace roots.

    All tables are swapped in a single assignment after a successful build, so
    readers never observe a half-built index.
    """

    def __init__(
        self,
        file_system: FileSystemProvider | None = None,
        build_timeout: float = INDEX_BUILD_TIMEOUT_SECONDS,
    ):
        """
        Args:
            file_system: Where files are enumerated from. Defaults to the local disk.
            build_timeout: Seconds a build may take before it is abandoned.
        """
        self.file_system = file_system or LocalFileSystemProvider()
        self.build_timeout = build_timeout
        self._state = _empty_output()

    @property
    def workspace_roots(self) -> tuple[str, ...]:
        return self._state.workspace_roots

    @property
    def all_files(self) -> tuple[IndexedFile, ...]:
        return self._state.all_files

    @property
    def file_count(self) -> int:
        return len(self._state.all_files)

    async def build_index(self, roots: list[str]) -> int:
        """
        Rebuild the index for `roots`, replacing any previous index entirely.

        Roots that are not existing directories are logged and skipped. The
        build runs in a worker thread and races a timer; whichever finishes
        first decides the outcome and the other task is cancelled. A losing
        build thread is told to stop through a `threading.Event` that the file
        system provider polls, so it exits without finishing its walk.

        Args:
            roots: Absolute paths to workspace root directories.

        Returns:
            int: Number of files indexed.

        Raises:
            RootNotFoundError: If none of the roots exists.
            IndexBuildTimeoutError: If the build does not finish in time.
        """
        try:
            output = await self._race_build(list(roots))
        except WorkspaceIndexError:
            # A failed build never leaves a stale index behind
            self.clear_index()
            raise

        self._state = output

        log.info(
            "workspace_index.built",
            file_count=len(output.all_files),
            root_count=len(output.workspace_roots),
        )
        return len(output.all_files)

    async def _race_build(self, roots: list[str]) -> _BuildOutput:
        cancel_event = threading.Event()
        build_task = asyncio.create_task(
            asyncio.to_thread(self._build_tables, roots, cancel_event)
        )
        timeout_task = asyncio.create_task(asyncio.sleep(self.build_timeout))

        try:
            done, _ = await asyncio.wait(
                {build_task, timeout_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if not build_task.done():
                # Cancelling the task does not stop its thread; the event does
                cancel_event.set()
            for task in (build_task, timeout_task):
                task.cancel()

        if build_task in done:
            return build_task.result()

        log.warning("workspace_index.timeout", timeout=self.build_timeout, roots=roots)
        raise IndexBuildTimeoutError(self.build_timeout)

    def _build_tables(
        self, roots: list[str], cancel_event: threading.Event | None = None
    ) -> _BuildOutput:
        valid_roots = []
        for root in roots:
            if self.file_system.directory_exists(root):
                valid_roots.append(root)
            else:
                log.warning("workspace_index.root_not_found", root=root)

        if not valid_roots:
            raise RootNotFoundError(roots)

        indexed: list[IndexedFile] = []
        for root in valid_roots:
            try:
                paths = self.file_system.enumerate_files(root, cancel_event)
            except EnumerationCancelledError:
                # Nobody is waiting for this build any more
                log.debug("workspace_index.build_abandoned", root=root)
                return _empty_output()
            except (WorkspaceIndexError, OSError) as e:
                log.error("workspace_index.enumeration_failed", root=root, error=str(e))
                continue

            indexed.extend(IndexedFile.from_path(path, root) for path in paths)

        by_name: defaultdict[str, list[IndexedFile]] = defaultdict(list)
        by_stem: defaultdict[str, list[IndexedFile]] = defaultdict(list)
        for file in indexed:
            by_name[file.lowercased_filename].append(file)
            by_stem[file.lowercased_stem].append(file)

        return _BuildOutput(
            workspace_roots=tuple(valid_roots),
            all_files=tuple(indexed),
            files_by_name={k: tuple(v) for k, v in by_name.items()},
            files_by_stem={k: tuple(v) for k, v in by_stem.items()},
        )

    def clear_index(self) -> None:
        self._state = _empty_output()

    # --- Lookup ---------------------------------------------------------------

    def files_matching_filename(self, filename: str) -> tuple[IndexedFile, ...]:
        """Files whose full filename equals `filename`, case-insensitively."""
        return self._state.files_by_name.get(filename.lower(), ())

    def files_matching_stem(self, stem: str) -> tuple[IndexedFile, ...]:
        """Files whose stem (filename without extension) equals `stem`, case-insensitively."""
        return self._state.files_by_stem.get(stem.lower(), ())

    def files_containing_segment(self, segment: str) -> list[IndexedFile]:
        """Files where any path segment contains `segment`, case-insensitively."""
        query = segment.lower()
        return [
            file
            for file in self._state.all_files
            if any(query in part.lower() for part in file.path_segments)
        ]


def _empty_output() -> _BuildOutput:
    return _BuildOutput(
        workspace_roots=(),
        all_files=(),
        files_by_name={},
        files_by_stem={},
    )
