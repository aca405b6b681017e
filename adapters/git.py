"""
Git repository adapter for version-control-aware file listing.

This module wraps the two git invocations the workspace indexer needs: checking
that a root is inside a work tree, and listing tracked plus untracked-but-not-
ignored files. Listing failures are raised as `EnumerationFailedError` so the
caller can fall back to a plain directory walk. A listing in progress can be
abandoned through a `threading.Event`, which kills the git process.
"""

from pathlib import Path
import shutil
import subprocess
import threading
from typing import Optional

from constants import (
    GIT_EXECUTABLE,
    GIT_LS_FILES_ARGS,
    GIT_POLL_INTERVAL_SECONDS,
    GIT_REPO_CHECK_TIMEOUT_SECONDS,
)
from core.exceptions import EnumerationCancelledError, EnumerationFailedError


class SubprocessGitClient:
    """
    Client for querying a Git repository through the `git` executable.

    Attributes:
        root: The directory this client runs git against (via `git -C`).
        cmd: The full `ls-files` command used to list files.
    """

    def __init__(self, root: Path, executable: Optional[str] = None):
        """
        Initialize a client for the specified directory.

        Args:
            root: Directory inside (or at the top of) a Git work tree.
            executable: Path or name of the git binary. Defaults to "git" on PATH.
        """
        self.root = root
        self.executable = executable or GIT_EXECUTABLE
        self.cmd = [self.executable, "-C", str(root), *GIT_LS_FILES_ARGS]

    def is_available(self) -> bool:
        """Return True if the git executable can be found."""
        return shutil.which(self.executable) is not None

    def is_repo(self) -> bool:
        """
        Check if the root path is inside a Git work tree.

        Runs `git rev-parse --is-inside-work-tree` and requires it to succeed and
        print "true". A missing binary or a check that hangs counts as "not a
        repository".

        Returns:
            bool: True if the root is inside a work tree, False otherwise.
        """
        try:
            result = subprocess.run(
                [self.executable, "-C", str(self.root), "rev-parse", "--is-inside-work-tree"],
                capture_output=True,
                text=True,
                check=True,
                timeout=GIT_REPO_CHECK_TIMEOUT_SECONDS,
            )
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError):
            return False

        return result.stdout.strip() == "true"

    def list_files(self, cancel_event: threading.Event | None = None) -> list[Path]:
        """
        List files from the Git index and working tree.

        Uses `git ls-files -z --cached --others --exclude-standard`, so the result
        contains tracked files and untracked files that are not ignored. Output is
        NUL-separated, which keeps unusual filenames intact.

        Args:
            cancel_event: When set while git is still running, the process is
                killed and the listing abandoned.

        Returns:
            list[Path]: Paths relative to the repository root, in git's order.

        Raises:
            EnumerationFailedError: If git cannot be launched or exits non-zero.
            EnumerationCancelledError: If `cancel_event` was set first.
        """
        try:
            process = self._create_subprocess(self.cmd)
        except OSError as e:
            raise EnumerationFailedError(
                f"Unable to launch git: {e}", original_exception=e
            ) from e

        with process:
            while True:
                try:
                    stdout, stderr = process.communicate(
                        timeout=GIT_POLL_INTERVAL_SECONDS
                    )
                    break
                except subprocess.TimeoutExpired:
                    if cancel_event is not None and cancel_event.is_set():
                        process.kill()
                        process.communicate()
                        raise EnumerationCancelledError(str(self.root))

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise EnumerationFailedError(
                message or f"git ls-files exited with status {process.returncode}"
            )

        raw_paths = stdout.split(b"\0")
        return [
            Path(raw.decode("utf-8", errors="replace")) for raw in raw_paths if raw
        ]

    def _create_subprocess(self, cmd: list[str]) -> subprocess.Popen[bytes]:
        return subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
