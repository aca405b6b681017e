"""
Custom exception classes for workspace indexing.

Only the indexing layer raises. Resolution and formatting outcomes such as
ambiguity or low confidence are result values, not exceptions. The rewrite
service catches `WorkspaceIndexError` at the single place where it builds an
index and degrades to returning the original text.
"""

import os
from typing import Optional


class WorkspaceIndexError(Exception):
    """
    Base exception for failures while building the workspace file index.

    Attributes:
        message: What failed, suitable for logs and the CLI.
        original_exception: The OS or subprocess error behind the failure, if any.
        diagnostic_info: Type and text of `original_exception` plus the OS name,
            printed by the CLI's indexing error handler.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        self.message = message or "Failed to build the workspace file index"
        super().__init__(self.message)
        self.original_exception = original_exception
        self.diagnostic_info = {
            "type": (
                type(original_exception).__name__ if original_exception else "Unknown"
            ),
            "details": str(original_exception) if original_exception else "No details",
            "os_name": os.name,
        }


class RootNotFoundError(WorkspaceIndexError):
    """
    Raised when none of the requested workspace roots is an existing directory.

    A single missing root is only logged; this is raised when every root is invalid.

    Attributes:
        roots: The roots that were requested.
    """

    def __init__(self, roots: list[str]):
        self.roots = list(roots)
        super().__init__(
            message=f"Workspace root directory not found: {', '.join(self.roots)}"
        )


class EnumerationFailedError(WorkspaceIndexError):
    """
    Raised when files under a root cannot be listed.

    Typical causes are git exiting with a non-zero status or the git binary
    failing to launch. The local file system provider catches this and falls
    back to walking the directory tree.
    """

    def __init__(
        self,
        reason: str,
        original_exception: Optional[Exception] = None,
    ):
        self.reason = reason
        super().__init__(
            message=f"Failed to enumerate workspace files: {reason}",
            original_exception=original_exception,
        )


class EnumerationCancelledError(WorkspaceIndexError):
    """
    Raised inside the build thread when listing stops because the build was abandoned.

    Unlike `EnumerationFailedError` this never triggers the walk fallback.

    Attributes:
        root: The root whose listing was interrupted.
    """

    def __init__(self, root: str):
        self.root = root
        super().__init__(message=f"Enumeration of {root} was cancelled")


class IndexBuildTimeoutError(WorkspaceIndexError):
    """
    Raised when building the index loses the race against its deadline.

    Attributes:
        timeout: The deadline in seconds that was exceeded.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(message=f"Indexing exceeded {timeout:g} seconds")
