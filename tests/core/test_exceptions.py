"""
Tests for the exceptions module using pytest.

Tests cover:
- WorkspaceIndexError: base exception for indexing failures with diagnostic info
- RootNotFoundError: raised when no requested root exists
- EnumerationFailedError: raised when a root's files cannot be listed
- EnumerationCancelledError: raised when an abandoned build stops listing
- IndexBuildTimeoutError: raised when a build loses the race against its deadline
"""

import os
import pytest

from core.exceptions import (
    EnumerationCancelledError,
    EnumerationFailedError,
    IndexBuildTimeoutError,
    RootNotFoundError,
    WorkspaceIndexError,
)


# ============================================================================
# Tests for WorkspaceIndexError
# ============================================================================


@pytest.mark.unit
def test_workspace_index_error_default_message():
    """WorkspaceIndexError should have a default message when none provided."""
    error = WorkspaceIndexError()
    assert str(error) == "Failed to build the workspace file index"
    assert error.message == "Failed to build the workspace file index"
    assert error.original_exception is None


@pytest.mark.unit
def test_workspace_index_error_with_original_exception():
    """The original exception should be kept and described in diagnostic info."""
    original = PermissionError("Permission denied")
    error = WorkspaceIndexError(message="Listing failed", original_exception=original)

    assert str(error) == "Listing failed"
    assert error.original_exception is original
    assert error.diagnostic_info["type"] == "PermissionError"
    assert error.diagnostic_info["details"] == "Permission denied"
    assert error.diagnostic_info["os_name"] == os.name


@pytest.mark.unit
def test_workspace_index_error_diagnostic_info_without_exception():
    error = WorkspaceIndexError()

    assert error.diagnostic_info["type"] == "Unknown"
    assert error.diagnostic_info["details"] == "No details"


# ============================================================================
# Tests for subclasses
# ============================================================================


@pytest.mark.unit
def test_root_not_found_error_lists_roots():
    error = RootNotFoundError(["/missing/a", "/missing/b"])

    assert isinstance(error, WorkspaceIndexError)
    assert error.roots == ["/missing/a", "/missing/b"]
    assert error.message == "Workspace root directory not found: /missing/a, /missing/b"


@pytest.mark.unit
def test_enumeration_failed_error_keeps_reason_and_cause():
    cause = OSError("No such file or directory")
    error = EnumerationFailedError("git crashed", original_exception=cause)

    assert isinstance(error, WorkspaceIndexError)
    assert error.reason == "git crashed"
    assert error.message == "Failed to enumerate workspace files: git crashed"
    assert error.original_exception is cause


@pytest.mark.unit
def test_enumeration_cancelled_error_is_not_a_listing_failure():
    """A cancelled listing must not look like a git failure that falls back to the walk."""
    error = EnumerationCancelledError("/repo")

    assert isinstance(error, WorkspaceIndexError)
    assert not isinstance(error, EnumerationFailedError)
    assert error.root == "/repo"
    assert error.message == "Enumeration of /repo was cancelled"


@pytest.mark.unit
@pytest.mark.parametrize(
    "timeout, expected",
    [(2.0, "Indexing exceeded 2 seconds"), (0.25, "Indexing exceeded 0.25 seconds")],
)
def test_index_build_timeout_error_message(timeout, expected):
    error = IndexBuildTimeoutError(timeout)

    assert isinstance(error, WorkspaceIndexError)
    assert error.timeout == timeout
    assert str(error) == expected


@pytest.mark.unit
def test_subclasses_are_caught_by_base_class():
    """The rewrite service relies on a single except clause for all indexing failures."""
    for error in (
        RootNotFoundError(["/x"]),
        EnumerationFailedError("boom"),
        IndexBuildTimeoutError(1.0),
    ):
        with pytest.raises(WorkspaceIndexError):
            raise error
